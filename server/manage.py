from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, List, Optional

import typer

from server.core.db import db_conn
from server.core.errors import GradingError
from server.services.code_execution import CodeExecutionService
from server.services.dispatcher import grade_question
from server.services.judge import LANGUAGE_IDS, build_judge_client, resolve_language
from server.services.models import AnswerOption, GradedQuestionInput

app = typer.Typer(help="Assessment grading utilities")

logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s %(message)s")


def _load_options(path: Optional[Path]) -> List[AnswerOption]:
    if path is None:
        return []
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise typer.BadParameter(f"{path} is not valid JSON: {exc}", param_hint="--options") from exc
    if not isinstance(raw, list):
        raise typer.BadParameter("Options file must hold a JSON list", param_hint="--options")

    options: List[AnswerOption] = []
    for entry in raw:
        if not isinstance(entry, dict) or "text" not in entry:
            raise typer.BadParameter(f"Invalid option entry: {entry!r}", param_hint="--options")
        options.append(
            AnswerOption(
                text=str(entry["text"]),
                is_correct=bool(entry.get("isCorrect", entry.get("is_correct", False))),
                rank=entry.get("rank"),
                placement=entry.get("placement"),
            )
        )
    return options


def _parse_response(raw: str) -> Any:
    # Bare words are accepted as plain text answers.
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def _echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))


@app.callback()
def main(
    verbose: bool = typer.Option(
        False,
        "--verbose/--no-verbose",
        help="Enable debug logging",
    )
) -> None:
    _configure_logging(verbose)


@app.command()
def grade(
    question_type: str = typer.Option(..., "--type", "-t", help='Question type tag, e.g. "Multiple Choice"'),
    response: str = typer.Option(..., "--response", "-r", help="User response as JSON (plain text allowed)"),
    options: Optional[Path] = typer.Option(
        None,
        "--options",
        "-o",
        exists=True,
        readable=True,
        dir_okay=False,
        help="JSON file with the answer options",
    ),
    points: float = typer.Option(1.0, "--points", "-p", min=0, help="Points possible"),
) -> None:
    """Grade a single response against an answer key."""

    try:
        result = grade_question(
            GradedQuestionInput(
                question_type=question_type,
                user_response=_parse_response(response),
                answer_options=tuple(_load_options(options)),
                points_possible=points,
            )
        )
    except GradingError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)
    _echo_json(result.to_dict())


@app.command("submit-code")
def submit_code(
    user_id: int = typer.Option(..., "--user-id", "-u", help="Submitting user id"),
    problem_id: int = typer.Option(..., "--problem-id", "-p", help="Programming question id"),
    language: str = typer.Option(..., "--language", "-l", help="Language name or judge language id"),
    source: Path = typer.Option(..., "--file", "-f", exists=True, readable=True, dir_okay=False, help="Source file to run"),
    test_run: bool = typer.Option(
        False,
        "--test-run/--submit",
        help="Run the first test case only without recording a submission",
    ),
) -> None:
    """Execute a source file against a problem's test cases."""

    language_id = resolve_language(language)
    if language_id is None:
        raise typer.BadParameter(f"Unsupported language '{language}'", param_hint="--language")

    code = source.read_text(encoding="utf-8")
    try:
        with db_conn() as conn:
            service = CodeExecutionService(conn, judge=build_judge_client())
            result = service.submit(
                user_id, problem_id, code, language_id, is_test_run=test_run
            )
    except GradingError as exc:
        logger.debug("Submission failed", exc_info=exc)
        typer.echo(f"Error: {exc.user_message}", err=True)
        raise typer.Exit(code=1)
    _echo_json(result)


@app.command()
def languages() -> None:
    """List the languages the judge accepts."""

    for name, language_id in sorted(LANGUAGE_IDS.items(), key=lambda item: item[1]):
        typer.echo(f"{language_id}\t{name}")


@app.command()
def usage(
    user_id: int = typer.Option(..., "--user-id", "-u", help="User id to report on"),
) -> None:
    """Show today's code submissions against the daily cap."""

    with db_conn() as conn:
        report = CodeExecutionService(conn).daily_usage(user_id)
    typer.echo(
        f"User {user_id}: {report['used']}/{report['limit']} code submissions today "
        f"({report['remaining']} remaining)."
    )


if __name__ == "__main__":
    app()
