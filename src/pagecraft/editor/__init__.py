"""Editor package containing the content model, history, gallery and widgets."""

from importlib import import_module
from typing import Any

from . import commands, document_model, gallery, history, mutator, session

__all__ = ["commands", "document_model", "editor_widget", "gallery", "history", "mutator", "session"]


def __getattr__(name: str) -> Any:
	if name == "editor_widget":
		module = import_module(f"{__name__}.{name}")
		globals()[name] = module
		return module
	raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
