"""
prompts.py

Responsibility: interactive input for the `generate` command.
"""

from __future__ import annotations

from typing import Sequence

from rich.console import Console
from rich.prompt import Prompt

from starli.catalog import Question
from starli.errors import TemplateNotFound


def choose_template(names: Sequence[str], *, console: Console) -> str:
    if not names:
        raise TemplateNotFound("No templates are available in the specs cache")
    return Prompt.ask(
        "Which template do you want to use?",
        choices=list(names),
        default=names[0],
        console=console,
    )


def ask_project_name(default: str, *, console: Console) -> str:
    while True:
        answer = Prompt.ask("Project name", default=default, console=console).strip()
        if answer:
            return answer
        console.print("[red]Project name must not be empty[/red]")


def ask_questions(
    questions: Sequence[Question],
    *,
    console: Console,
    assume_defaults: bool = False,
) -> dict[str, str]:
    """
    Ask each question in order and return `{question.name: answer}`.

    With `assume_defaults`, nothing is shown and every default is used.
    """
    answers: dict[str, str] = {}
    for q in questions:
        if assume_defaults:
            answers[q.name] = q.default
        else:
            answers[q.name] = Prompt.ask(q.message, default=q.default, console=console)
    return answers
