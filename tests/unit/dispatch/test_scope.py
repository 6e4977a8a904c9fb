"""Unit tests for upstream forwarding policy."""

from __future__ import annotations

import pytest

from mp_bus.dispatch import Scope, resolve_upstream, should_forward


class TestShouldForward:
    @pytest.mark.parametrize(
        ("scope", "flag", "expected"),
        [
            (Scope.PURE, True, False),
            (Scope.PURE, False, False),
            (Scope.LOCAL, True, True),
            (Scope.LOCAL, False, False),
            (Scope.GLOBAL, True, False),
            (Scope.GLOBAL, False, False),
        ],
    )
    def test_matrix(self, scope: Scope, flag: bool, expected: bool) -> None:
        assert should_forward(scope, flag) is expected


class TestResolveUpstream:
    def test_provider_not_called_when_not_forwarding(self) -> None:
        calls: list[int] = []

        def provider() -> object:
            calls.append(1)
            return object()

        assert resolve_upstream(Scope.PURE, True, provider) is None
        assert resolve_upstream(Scope.LOCAL, False, provider) is None
        assert resolve_upstream(Scope.GLOBAL, True, provider) is None
        assert calls == []

    def test_returns_provided_upstream(self) -> None:
        upstream = object()
        assert resolve_upstream(Scope.LOCAL, True, lambda: upstream) is upstream

    def test_missing_provider(self) -> None:
        assert resolve_upstream(Scope.LOCAL, True, None) is None
        assert resolve_upstream(Scope.LOCAL, True, lambda: None) is None


class TestScopeEnum:
    def test_values(self) -> None:
        assert [scope.value for scope in Scope] == ["pure", "local", "global"]
        assert Scope("local") is Scope.LOCAL
