"""CLI interface for the Assessment Session Engine."""
import asyncio
import sys
import time
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .models.enums import Difficulty, SessionStatus, SessionType
from .models.question import QuestionView
from .models.session import SessionSettings
from .services.configuration_manager import ConfigurationManager
from .services.session_manager import SessionManager
from .utils.exceptions import AssessmentEngineError
from .utils.logging import get_logger, setup_logging


HINT_COMMAND = ":hint"
QUIT_COMMAND = ":quit"

console = Console()
logger = get_logger("cli")


@click.group()
@click.version_option(version="1.0.0")
@click.option("--config", "-c", "config_path", type=click.Path(exists=True, file_okay=False), default=None,
              help="Configuration directory")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[str], verbose: bool):
    """Assessment Session Engine - timed interview practice sessions with scoring and feedback."""
    ctx.ensure_object(dict)

    try:
        config_manager = ConfigurationManager(config_path or "config")
        config_manager.initialize()
    except AssessmentEngineError as e:
        console.print(f"[red]Failed to load configuration: {escape(str(e))}[/red]")
        sys.exit(1)

    logging_config = config_manager.get_logging_config()
    if verbose:
        logging_config["level"] = "DEBUG"
    setup_logging(**logging_config)

    ctx.obj["config_manager"] = config_manager


def _run(ctx: click.Context, operation):
    """Build a session manager, run ``operation`` with it and report surfaced errors."""
    async def runner():
        manager = await SessionManager.from_config(ctx.obj["config_manager"])
        try:
            return await operation(manager)
        finally:
            await manager.close()

    try:
        return asyncio.run(runner())
    except AssessmentEngineError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        logger.error(f"Command failed: {e}")
        sys.exit(1)


@cli.command()
@click.option("--type", "-t", "session_type", type=click.Choice([t.value for t in SessionType]),
              default=SessionType.TECHNICAL.value, show_default=True, help="Session type")
@click.option("--difficulty", "-d", type=click.Choice([d.value for d in Difficulty]),
              default=Difficulty.MEDIUM.value, show_default=True, help="Question difficulty")
@click.option("--count", "-n", "question_count", type=int, default=None, help="Number of questions")
@click.option("--company", default=None, help="Company to target")
@click.option("--role", default=None, help="Role to target")
@click.option("--user", "-u", "user_id", default=None, help="User identifier")
@click.option("--no-ai", is_flag=True, help="Use only the question bank and deterministic scoring")
@click.option("--no-hints", is_flag=True, help="Disable hints for this session")
@click.pass_context
def start(ctx: click.Context, session_type: str, difficulty: str, question_count: Optional[int],
          company: Optional[str], role: Optional[str], user_id: Optional[str], no_ai: bool, no_hints: bool):
    """Start a new session and answer its questions interactively."""
    async def operation(manager: SessionManager):
        result = await manager.start_session(
            session_type=session_type,
            difficulty=difficulty,
            question_count=question_count,
            company=company,
            role=role,
            use_ai=not no_ai,
            user_id=user_id,
            settings=SessionSettings(hints_enabled=not no_hints),
        )

        welcome_content = "\n".join([
            f"Session: {result.session_id}",
            f"Type: {session_type} | Difficulty: {difficulty}",
            f"Questions: {result.total_questions}" + (" (AI generated)" if result.ai_generated else ""),
            f"Type '{HINT_COMMAND}' for a hint or '{QUIT_COMMAND}' to pause the session.",
        ])
        console.print(Panel(welcome_content, title="Assessment Session", border_style="blue"))

        await _session_loop(manager, result.session_id, result.first_question, 1, result.total_questions, not no_ai)

    _run(ctx, operation)


@cli.command()
@click.argument("session_id")
@click.option("--no-ai", is_flag=True, help="Use deterministic scoring only")
@click.pass_context
def resume(ctx: click.Context, session_id: str, no_ai: bool):
    """Resume an in-progress session."""
    async def operation(manager: SessionManager):
        current = await manager.get_current_question(session_id)
        console.print(f"[bold]Resuming session {session_id}[/bold] ({current.elapsed_seconds}s elapsed)")
        await _session_loop(
            manager, session_id, current.question, current.question_index, current.total_questions, not no_ai,
        )

    _run(ctx, operation)


async def _session_loop(manager: SessionManager, session_id: str, question: QuestionView,
                        index: int, total: int, use_ai: bool) -> None:
    """Ask questions until the session completes or the candidate pauses."""
    while question is not None:
        _print_question(question, index, total)
        started = time.monotonic()

        while True:
            answer = click.prompt("Your answer", prompt_suffix=" > ").strip()
            if answer.lower() == HINT_COMMAND:
                try:
                    hint = await manager.reveal_hint(session_id)
                except AssessmentEngineError as e:
                    console.print(f"[yellow]{escape(e.message)}[/yellow]")
                    continue
                console.print(f"[cyan]Hint {hint.hint_number}:[/cyan] {escape(hint.hint)}")
                continue
            if answer.lower() == QUIT_COMMAND:
                console.print(f"[yellow]Session paused. Resume with: assessment-engine resume {session_id}[/yellow]")
                return
            if answer:
                break

        result = await manager.submit_answer(
            session_id, answer, time_spent_seconds=round(time.monotonic() - started, 1), use_ai=use_ai,
        )

        verdict = {True: "[green]Correct[/green]", False: "[red]Incorrect[/red]", None: "Recorded"}[result.is_correct]
        evaluation_content = f"{verdict} | Score: {result.score}\n\n{escape(result.feedback)}"
        if result.ai_evaluation:
            for heading, items in (
                ("Strengths", result.ai_evaluation.strengths),
                ("Improvements", result.ai_evaluation.improvements),
                ("Suggestions", result.ai_evaluation.suggestions),
            ):
                if items:
                    evaluation_content += f"\n\n[bold]{heading}:[/bold]\n- " + "\n- ".join(escape(item) for item in items)
        console.print(Panel(evaluation_content, title="Evaluation", border_style="cyan"))

        if result.session_complete:
            summary = result.session_summary
            report_lines = [
                f"Correct answers: {summary.correct_answers}/{summary.total_questions}",
                f"Overall score: {summary.overall_score}",
                f"Confidence score: {summary.confidence_score}",
                f"Total time: {summary.total_time_spent:.0f}s",
            ]
            for heading, items in (
                ("Strengths", summary.feedback.strengths),
                ("Improvements", summary.feedback.improvements),
                ("Recommendations", summary.feedback.recommendations),
            ):
                if items:
                    report_lines.append(f"\n[bold]{heading}:[/bold]\n- " + "\n- ".join(escape(item) for item in items))
            console.print(Panel("\n".join(report_lines), title="Final Report", border_style="green"))
            return

        question = result.next_question
        index += 1


def _print_question(question: QuestionView, index: int, total: int) -> None:
    content = escape(question.content)
    if question.options:
        content += "\n\n" + "\n".join(f"  {escape(f'[{o.option_id}]')} {escape(o.text)}" for o in question.options)
    if question.hints_available:
        content += f"\n\n[dim]{question.hints_available} hint(s) available[/dim]"

    title = f"Question {index}/{total} | {question.type.value} | {question.difficulty.value}"
    if question.category:
        title += f" | {escape(question.category)}"
    console.print(Panel(content, title=title, border_style="green"))


@cli.command()
@click.argument("session_id")
@click.pass_context
def show(ctx: click.Context, session_id: str):
    """Show a session's status and scores."""
    async def operation(manager: SessionManager):
        details = await manager.get_session(session_id)

        table = Table(title=f"Session {details.session_id}", show_header=False)
        table.add_column("Field", style="bold")
        table.add_column("Value")
        table.add_row("Type", details.session_type.value)
        table.add_row("Difficulty", details.difficulty.value)
        table.add_row("Status", details.status.value)
        table.add_row("Progress", f"{details.answered_questions}/{details.total_questions} ({details.progress_percentage}%)")
        table.add_row("Started", details.started_at.isoformat(timespec="seconds"))
        if details.completed_at:
            table.add_row("Completed", details.completed_at.isoformat(timespec="seconds"))
        if details.overall_score is not None:
            table.add_row("Overall score", str(details.overall_score))
            table.add_row("Confidence score", str(details.confidence_score))
            table.add_row("Total time", f"{details.total_time_spent:.0f}s")
        console.print(table)

    _run(ctx, operation)


@cli.command()
@click.option("--user", "-u", "user_id", required=True, help="User identifier")
@click.option("--status", type=click.Choice([s.value for s in SessionStatus]), default=None, help="Filter by status")
@click.option("--type", "-t", "session_type", type=click.Choice([t.value for t in SessionType]), default=None,
              help="Filter by session type")
@click.option("--page", type=int, default=1, show_default=True)
@click.option("--limit", type=int, default=10, show_default=True)
@click.pass_context
def sessions(ctx: click.Context, user_id: str, status: Optional[str], session_type: Optional[str],
             page: int, limit: int):
    """List a user's sessions, newest first."""
    async def operation(manager: SessionManager):
        result = await manager.list_user_sessions(
            user_id, status=status, session_type=session_type, page=page, limit=limit,
        )

        pagination = result.pagination
        table = Table(title=f"Sessions for {user_id} (page {pagination.current_page}/{max(pagination.total_pages, 1)})")
        for column in ("Session", "Type", "Status", "Progress", "Score", "Started"):
            table.add_column(column)
        for item in result.sessions:
            table.add_row(
                item.session_id,
                item.session_type.value,
                item.status.value,
                f"{item.answered_questions}/{item.total_questions}",
                "-" if item.overall_score is None else str(item.overall_score),
                item.started_at.isoformat(timespec="seconds"),
            )
        console.print(table)
        console.print(f"{pagination.total_sessions} session(s) in total")

    _run(ctx, operation)


@cli.command()
@click.option("--user", "-u", "user_id", required=True, help="User identifier")
@click.pass_context
def stats(ctx: click.Context, user_id: str):
    """Show aggregate statistics of a user's completed sessions."""
    async def operation(manager: SessionManager):
        user_stats = await manager.get_user_stats(user_id)

        lines = [
            f"Completed sessions: {user_stats.total_sessions}",
            f"Average score: {user_stats.average_score}",
            f"Average confidence: {user_stats.average_confidence}",
            f"Total time: {user_stats.total_time_spent:.0f}s",
            f"Improvement trend: {user_stats.improvement_trend:+.0f}",
        ]
        for name, type_stats in sorted(user_stats.sessions_by_type.items()):
            lines.append(f"- {name}: {type_stats.count} session(s), average {type_stats.average_score}")
        console.print(Panel("\n".join(lines), title=f"Statistics for {user_id}", border_style="blue"))

    _run(ctx, operation)


@cli.command()
@click.pass_context
def metadata(ctx: click.Context):
    """Show the filter values available in the question bank."""
    async def operation(manager: SessionManager):
        values = manager.get_question_metadata()
        lines = [
            f"Types: {', '.join(values.types) or '-'}",
            f"Categories: {', '.join(values.categories) or '-'}",
            f"Companies: {', '.join(values.companies) or '-'}",
            f"Roles: {', '.join(values.roles) or '-'}",
            f"Difficulties: {', '.join(values.difficulties)}",
        ]
        console.print(Panel("\n".join(lines), title="Question Bank", border_style="blue"))

    _run(ctx, operation)


@cli.command()
@click.option("--idle-minutes", type=int, default=None, help="Inactivity threshold (defaults to configuration)")
@click.pass_context
def housekeeping(ctx: click.Context, idle_minutes: Optional[int]):
    """Mark idle in-progress sessions as abandoned."""
    async def operation(manager: SessionManager):
        abandoned = await manager.abandon_idle_sessions(idle_minutes=idle_minutes)
        console.print(f"Abandoned {len(abandoned)} idle session(s)")
        for session_id in abandoned:
            console.print(f"- {session_id}")

    _run(ctx, operation)


@cli.command()
@click.pass_context
def status(ctx: click.Context):
    """Show configuration, provider and agent health."""
    summary = ctx.obj["config_manager"].get_configuration_summary()

    async def operation(manager: SessionManager):
        lines = [
            f"{summary['app_name']} {summary['version']} ({summary['environment']})",
            f"Storage: {summary['storage_backend']} | Analytics: {summary['analytics_backend']}",
            f"Questions in bank: {len(manager.question_bank)}",
            "Features: " + ", ".join(f"{name}={'on' if enabled else 'off'}" for name, enabled in sorted(summary["features"].items())),
        ]
        console.print(Panel("\n".join(lines), title="Configuration", border_style="blue"))

        table = Table(title="Health")
        for column in ("Component", "Status", "Details"):
            table.add_column(column)
        for agent in (manager.question_source, manager.evaluator):
            health = agent.health_status
            table.add_row(health["agent_name"], health["status"], "")
        provider_health = manager.llm_manager.get_provider_health() if manager.llm_manager else {}
        for name, health in provider_health.items():
            table.add_row(
                name,
                health["health_status"],
                f"circuit {health['circuit_breaker_state']}, avg {health['avg_response_time']:.2f}s",
            )
        if not provider_health:
            table.add_row("llm", "disabled", "No LLM providers configured")
        console.print(table)

    _run(ctx, operation)


def main():
    """Main entry point for the CLI."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]Session interrupted by user.[/yellow]")
        sys.exit(0)


if __name__ == "__main__":
    main()
