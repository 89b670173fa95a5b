"""Locate the App named on the command line (``"package.module:attribute"``)."""

import importlib
import os
import sys

from keel.app import App

DEFAULT_ATTRIBUTE = "app"


def resolve_app(import_string: str) -> App:
    """Import *import_string* and return the keel App it names.

    ``"billing"`` means ``billing:app``. The current directory is put on
    ``sys.path`` first so a project's own modules import without
    installation. An attribute that is callable but not an App is treated
    as an application factory and called without arguments.

    Raises:
        ModuleNotFoundError: The module part does not import.
        AttributeError: The module has no such attribute.
        TypeError: The factory failed, or the result is not an App.
    """
    module_name, _, attribute = import_string.partition(":")
    attribute = attribute or DEFAULT_ATTRIBUTE

    cwd = os.getcwd()
    if cwd not in sys.path:
        sys.path.insert(0, cwd)

    target = getattr(importlib.import_module(module_name), attribute)

    if callable(target) and not isinstance(target, App):
        try:
            target = target()
        except Exception as exc:
            msg = f"Factory function {import_string!r} raised an error: {exc}"
            raise TypeError(msg) from exc

    if not isinstance(target, App):
        msg = f"{import_string!r} resolved to {type(target).__name__}, not a keel.App instance"
        raise TypeError(msg)
    return target
