"""Interactive prompting behind an injectable interface."""

from __future__ import annotations

from typing import Protocol

import typer


class Prompter(Protocol):
    """Protocol for asking the operator a question and reading one answer."""

    def ask(self, question: str) -> str:
        """Return the operator's raw answer to `question`."""


class TyperPrompter:
    """Prompt on the terminal via Typer, blocking until a line is entered."""

    def ask(self, question: str) -> str:
        answer = typer.prompt(question, default="", show_default=False)
        return str(answer).strip().lower()


def confirm(prompter: Prompter, question: str) -> bool:
    """Ask a y/n question; only an explicit `y` counts as yes."""
    return prompter.ask(f"{question} (y/n)").strip().lower() == "y"
