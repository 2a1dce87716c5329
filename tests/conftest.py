"""Shared pytest fixtures."""

from __future__ import annotations

import os

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """Keep logs and settings out of the real home directory."""

    for name in list(os.environ):
        if name.startswith("PAGECRAFT_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("PAGECRAFT_LOG_DIR", str(tmp_path / "logs"))


class ScriptedPrompt:
    """MetadataPrompt double answering from a fixed script."""

    def __init__(self, *answers):
        self.answers = list(answers)
        self.fields = []

    def ask(self, field):
        self.fields.append(field)
        if not self.answers:
            return None
        return self.answers.pop(0)


@pytest.fixture
def scripted_prompt():
    return ScriptedPrompt
