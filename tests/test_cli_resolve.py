"""Tests for keel.cli._resolve — App import resolution."""

import sys
import types

import pytest

from keel.app import App
from keel.cli._resolve import resolve_app


@pytest.fixture
def _fake_app_module(monkeypatch: pytest.MonkeyPatch) -> None:
    """Register a fake module with a keel App on sys.modules."""
    mod = types.ModuleType("_fake_keel_app")
    mod.app = App()  # type: ignore[attr-defined]
    mod.custom = App()  # type: ignore[attr-defined]
    mod.factory = lambda: App()  # type: ignore[attr-defined]
    mod.broken_factory = lambda: 1 / 0  # type: ignore[attr-defined]
    mod.not_an_app = "just a string"  # type: ignore[attr-defined]
    monkeypatch.setitem(sys.modules, "_fake_keel_app", mod)


@pytest.mark.usefixtures("_fake_app_module")
class TestResolveApp:
    def test_explicit_attribute(self) -> None:
        assert resolve_app("_fake_keel_app:custom") is sys.modules["_fake_keel_app"].custom

    def test_default_attribute(self) -> None:
        """Omitting :attr defaults to 'app'."""
        assert resolve_app("_fake_keel_app") is sys.modules["_fake_keel_app"].app

    def test_factory_called(self) -> None:
        assert isinstance(resolve_app("_fake_keel_app:factory"), App)

    def test_failing_factory(self) -> None:
        with pytest.raises(TypeError, match="raised an error"):
            resolve_app("_fake_keel_app:broken_factory")

    def test_not_an_app(self) -> None:
        with pytest.raises(TypeError, match="not a keel.App instance"):
            resolve_app("_fake_keel_app:not_an_app")

    def test_missing_attribute(self) -> None:
        with pytest.raises(AttributeError):
            resolve_app("_fake_keel_app:nope")

    def test_missing_module(self) -> None:
        with pytest.raises(ModuleNotFoundError):
            resolve_app("_no_such_keel_module:app")
