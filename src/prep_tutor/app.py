"""Interactive CLI application."""
import asyncio
import logging

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import IntPrompt, Prompt
from rich.table import Table

from prep_tutor.db import DEFAULT_DB_PATH, init_db
from prep_tutor.errors import (
    LoadError, PermanentGradingError, SessionStateError, TransientGradingError, ValidationError,
)
from prep_tutor.models import Rating, ReviewMode, SessionConfig, Subject
from prep_tutor.seed import is_seeded, seed_all
from prep_tutor.session import PracticeSession
from prep_tutor.settings import load_settings, save_settings
from prep_tutor.stores import (
    AnswerKeyGrader, SqliteHintTracker, SqliteItemProvider, SqliteReviewCardStore,
    SqliteSessionPersistence,
)
from prep_tutor.ticker import format_time

console = Console()
logger = logging.getLogger(__name__)

SUBJECT_COMMANDS = {
    "math": Subject.MATH,
    "reading": Subject.ENGLISH,
    "vocab": Subject.VOCABULARY,
}
RATING_CHOICES = [r.value for r in Rating]


def configure_logging(level: str = "WARNING") -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def show_welcome():
    console.print(Panel(
        "[bold]Exam Prep Tutor[/bold]\n[dim]Timed practice and vocabulary review[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("math", "Timed math practice"),
        ("reading", "Reading comprehension practice"),
        ("vocab", "Vocabulary review (spaced repetition)"),
        ("history", "Recent sessions"),
        ("settings", "Defaults for new sessions"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


async def ask(prompt: str, **kwargs) -> str:
    """Prompt.ask on a worker thread so the session ticker keeps running."""
    return await asyncio.to_thread(Prompt.ask, prompt, **kwargs)


def build_session(db_path: str, config: SessionConfig, policy=None) -> PracticeSession:
    return PracticeSession(
        config,
        grader=AnswerKeyGrader(db_path),
        persistence=SqliteSessionPersistence(db_path),
        card_store=SqliteReviewCardStore(db_path),
        hint_tracker=SqliteHintTracker(db_path),
        policy=policy,
    )


def show_item(session: PracticeSession) -> None:
    item = session.current_item
    title = f"Item {session.current_index + 1}/{len(session.items)}"
    if session.time_limit_seconds:
        remaining = max(session.time_limit_seconds - session.elapsed_seconds, 0)
        title += f"  [dim]{format_time(remaining)} left[/dim]"
    if session.current_mode == "flashcards":
        console.print(Panel(f"[bold]{item.prompt}[/bold]", title=title, border_style="cyan"))
        return
    body = item.prompt
    if session.current_mode == "quiz":
        body = f"Which definition matches [bold]{item.prompt}[/bold]?"
    console.print(Panel(body, title=title, border_style="cyan"))
    for label, text in sorted(item.choices.items()):
        console.print(f"  [cyan]{label})[/cyan] {text}")


def show_feedback(session: PracticeSession, record) -> None:
    if record.correct is None:
        card = session.cards.get(record.item_id)
        if card is not None:
            console.print(f"[dim]Next review in {card.interval_days} day(s)[/dim]")
        return
    feedback = session.last_feedback
    if record.correct:
        console.print("[green]Correct![/green]")
    else:
        console.print(f"[red]Incorrect.[/red] Answer: [green]{feedback.correct_answer}[/green]")
    if feedback.explanation:
        console.print(f"[dim]{feedback.explanation}[/dim]")


def show_summary(summary) -> None:
    if summary is None:
        return
    reason = {"timeout": "Time's up!", "user": "Session ended.", "completed": "Session complete!"}
    console.print(Panel(
        f"{reason.get(summary.end_reason, '')}\n"
        f"Answered: [bold]{summary.questions_attempted}[/bold]  |  "
        f"Correct: [bold]{summary.questions_correct}[/bold]  |  "
        f"Accuracy: [bold]{summary.accuracy}%[/bold]  |  "
        f"Time: [bold]{format_time(summary.elapsed_seconds)}[/bold]",
        title="Summary", border_style="green",
    ))
    if summary.failed_submissions:
        console.print(
            f"[yellow]{len(summary.failed_submissions)} answer(s) could not be graded "
            "and were saved for later.[/yellow]"
        )


async def read_answer(session: PracticeSession) -> str:
    if session.current_mode == "flashcards":
        await ask("[dim]Press Enter to reveal[/dim]", default="")
        if session.is_finished:
            return ""
        item = session.current_item
        console.print(Panel(item.choices.get(item.correct_answer, item.correct_answer), border_style="green"))
        if item.explanation:
            console.print(f"[dim]{item.explanation}[/dim]")
        return await ask(
            "Rate yourself (p=pause, q=end)", choices=RATING_CHOICES + ["p", "q"],
        )
    return await ask("\nYour answer [dim](h=hint, p=pause, q=end)[/dim]")


async def run_practice_session(session: PracticeSession):
    """Drive a started session until it completes. Returns the summary."""
    while not session.is_finished:
        show_item(session)
        raw = await read_answer(session)
        if session.is_finished:
            break
        command = raw.strip().lower()
        if command == "q":
            await session.end()
            break
        if command == "p":
            session.pause()
            await ask("[yellow]Paused.[/yellow] Press Enter to resume", default="")
            session.resume()
            continue
        if command == "h":
            try:
                hint = await session.request_hint()
            except SessionStateError as e:
                console.print(f"[yellow]{e}[/yellow]")
            else:
                console.print(f"[magenta]Hint:[/magenta] {hint}")
            continue
        try:
            record = await session.submit_answer(raw)
        except ValidationError as e:
            console.print(f"[red]{e}[/red]")
            continue
        except PermanentGradingError as e:
            console.print(f"[red]Answer rejected: {e}[/red]")
            continue
        except TransientGradingError:
            console.print("[yellow]Could not reach the grader. Your answer was saved; try again.[/yellow]")
            continue
        if record is None:
            break
        show_feedback(session, record)
        await ask("[dim]Press Enter to continue[/dim]", default="")
        if session.is_finished:
            break
        await session.advance()
    show_summary(session.summary)
    return session.summary


async def practice(db_path: str, config: SessionConfig, policy=None):
    session = build_session(db_path, config, policy)
    await session.start(SqliteItemProvider(db_path))
    return await run_practice_session(session)


def cmd_practice(db_path: str, subject: Subject):
    settings = load_settings(db_path)
    count = IntPrompt.ask("Number of items", default=settings.item_count)
    minutes = IntPrompt.ask("Time limit in minutes (0 = none)", default=settings.time_limit_seconds // 60)
    review_mode = settings.review_mode
    if subject == Subject.VOCABULARY:
        review_mode = Prompt.ask(
            "Review mode", choices=[m.value for m in ReviewMode], default=settings.review_mode,
        )
    try:
        config = SessionConfig(
            subject=subject,
            item_count=count,
            time_limit_seconds=minutes * 60,
            review_mode=review_mode,
            user_id=settings.user_id,
        )
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        return
    try:
        asyncio.run(practice(db_path, config, settings.retry_policy()))
    except LoadError as e:
        console.print(f"[yellow]{e}[/yellow]")


def cmd_history(db_path: str):
    settings = load_settings(db_path)
    sessions = SqliteSessionPersistence(db_path).list_sessions(settings.user_id)
    if not sessions:
        console.print("[yellow]No completed sessions yet.[/yellow]")
        return
    table = Table(title="Recent Sessions")
    table.add_column("Ended")
    table.add_column("Subject", style="cyan")
    table.add_column("Score", justify="right")
    table.add_column("Time", justify="right")
    table.add_column("Reason")
    for s in sessions:
        table.add_row(
            (s["ended_at"] or "")[:16].replace("T", " "),
            s["subject"],
            f"{s['questions_correct']}/{s['questions_attempted']}",
            format_time(s["elapsed_seconds"]),
            s["end_reason"] or "",
        )
    console.print(table)


def cmd_settings(db_path: str):
    settings = load_settings(db_path)
    settings.user_id = Prompt.ask("Name", default=settings.user_id)
    settings.item_count = IntPrompt.ask("Items per session", default=settings.item_count)
    minutes = IntPrompt.ask("Time limit in minutes", default=settings.time_limit_seconds // 60)
    settings.time_limit_seconds = minutes * 60
    settings.review_mode = Prompt.ask(
        "Vocabulary review mode", choices=[m.value for m in ReviewMode], default=settings.review_mode,
    )
    save_settings(db_path, settings)
    console.print("[green]Settings saved.[/green]")


def main():
    configure_logging()
    db_path = DEFAULT_DB_PATH
    init_db(db_path)
    first_run = not is_seeded(db_path)
    if first_run:
        console.print("[dim]Setting up for first use...[/dim]")
    seed_all(db_path)
    if first_run:
        console.print("[green]Ready![/green]\n")

    show_welcome()

    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="math").strip().lower()
        try:
            if choice in SUBJECT_COMMANDS:
                cmd_practice(db_path, SUBJECT_COMMANDS[choice])
            elif choice == "history":
                cmd_history(db_path)
            elif choice == "settings":
                cmd_settings(db_path)
            elif choice in ("quit", "exit", "q"):
                console.print("[dim]Good luck on your exam![/dim]")
                break
            else:
                console.print("[red]Unknown command. Try again.[/red]")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except Exception as e:
            logger.exception("Command %s failed", choice)
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
