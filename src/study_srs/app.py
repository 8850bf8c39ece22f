"""Interactive CLI application."""
import logging
import os
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from study_srs.config import DEFAULT_DB_PATH, LOG_LEVEL_ENV
from study_srs.dashboard import get_retention_color, get_retention_label, get_review_stats
from study_srs.db import init_db
from study_srs.flashcards import create_flashcard, get_due_cards, record_review
from study_srs.importer import import_deck
from study_srs.settings import get_review_limit, set_setting

console = Console()
logger = logging.getLogger(__name__)

EXIT_WORDS = ("q", "menu")
GRADES = ["0", "1", "2", "3", "4", "5"]


class SessionExitRequested(Exception):
    """Raised when the learner leaves a session early."""


def session_prompt(prompt: str, **kwargs) -> str:
    answer = Prompt.ask(prompt, **kwargs)
    if answer.strip().lower() in EXIT_WORDS:
        raise SessionExitRequested()
    return answer


def session_int_prompt(prompt: str, choices: list[str]) -> int:
    # choices are validated here so "q" can get through Prompt
    while True:
        answer = session_prompt(prompt).strip()
        if answer in choices:
            return int(answer)
        console.print(f"[red]Please enter one of {', '.join(choices)} (or q to stop)[/red]")


def configure_logging() -> None:
    level = os.environ.get(LOG_LEVEL_ENV, "WARNING").upper()
    if not isinstance(logging.getLevelName(level), int):
        level = "WARNING"
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def show_welcome():
    console.print(Panel(
        "[bold]Study SRS[/bold]\n[dim]Spaced repetition flashcards[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("review", "Review due flashcards"),
        ("add", "Add a flashcard"),
        ("import", "Import a deck file"),
        ("stats", "Retention + due counts"),
        ("settings", "Review batch size"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def run_review_session(db_path: str, cards: list, now=None) -> int:
    """Grade each card in turn. Returns how many were graded."""
    if not cards:
        console.print("[yellow]No flashcards due right now![/yellow]")
        return 0
    console.print(f"\n[bold]Review Session[/bold] - {len(cards)} cards [dim](q to stop)[/dim]\n")
    graded = 0
    for i, card in enumerate(cards, 1):
        console.print(Panel(card.question, title=f"Card {i}/{len(cards)}", border_style="cyan"))
        session_prompt("[dim]Press Enter to reveal answer[/dim]", default="", show_default=False)
        console.print(Panel(card.answer, border_style="green"))
        quality = session_int_prompt(
            "Rate yourself (0=blackout, 2=wrong but familiar, 3=hard, 4=good, 5=easy)", choices=GRADES,
        )
        state = record_review(db_path, card.id, quality, now=now)
        graded += 1
        if state.lapsed:
            console.print("[red]Lapsed[/red] - back tomorrow")
        else:
            console.print(f"[green]Next review in {state.interval_days} day(s)[/green] "
                          f"[dim]({state.due_at:%Y-%m-%d})[/dim]")
        console.print()
    return graded


def cmd_review(db_path: str):
    cards = get_due_cards(db_path, limit=get_review_limit(db_path))
    try:
        run_review_session(db_path, cards)
    except SessionExitRequested:
        console.print("[dim]Session stopped. Graded cards are saved.[/dim]")


def cmd_add(db_path: str):
    question = Prompt.ask("Question").strip()
    answer = Prompt.ask("Answer").strip()
    if not question or not answer:
        console.print("[red]A card needs both a question and an answer.[/red]")
        return
    raw_tags = Prompt.ask("Tags (comma separated)", default="", show_default=False)
    tags = [t.strip() for t in raw_tags.split(",") if t.strip()]
    card_id = create_flashcard(db_path, question, answer, tags=tags)
    console.print(f"[green]Added card {card_id}. It is due now.[/green]")


def cmd_import(db_path: str):
    file_path = Prompt.ask("File path")
    if not Path(file_path).exists():
        console.print(f"[red]File not found: {file_path}[/red]")
        return
    result = import_deck(db_path, file_path)
    console.print(f"[green]Imported {result['imported']} cards from {result['filename']}[/green]"
                  + (f" [yellow]({result['skipped']} skipped)[/yellow]" if result["skipped"] else ""))


def cmd_stats(db_path: str):
    stats = get_review_stats(db_path)
    color = get_retention_color(stats["retention"])
    label = get_retention_label(stats["retention"])

    table = Table(title="Review Stats")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Cards", str(stats["total_cards"]))
    table.add_row("Due now", str(stats["due_cards"]))
    table.add_row("New", str(stats["new_cards"]))
    table.add_row("Mature", str(stats["mature_cards"]))
    table.add_row("Reviews", str(stats["reviews"]))
    table.add_row("Lapses", str(stats["lapses"]))
    console.print(table)

    if stats["reviews"]:
        console.print(f"\n  Retention: [bold]{stats['retention']}%[/bold] [{color}]{label}[/{color}]")


def cmd_settings(db_path: str):
    current = get_review_limit(db_path)
    value = Prompt.ask("Cards per review session", default=str(current))
    if not value.isdigit() or int(value) <= 0:
        console.print("[red]Enter a positive whole number.[/red]")
        return
    set_setting(db_path, "review_limit", value)
    console.print(f"[green]Review sessions will pull up to {value} cards.[/green]")


def main():
    configure_logging()
    db_path = DEFAULT_DB_PATH
    init_db(db_path)
    show_welcome()

    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="review").strip().lower()
        try:
            if choice == "review":
                cmd_review(db_path)
            elif choice == "add":
                cmd_add(db_path)
            elif choice == "import":
                cmd_import(db_path)
            elif choice == "stats":
                cmd_stats(db_path)
            elif choice == "settings":
                cmd_settings(db_path)
            elif choice in ("quit", "exit", "q"):
                console.print("[dim]See you next session![/dim]")
                break
            else:
                console.print("[red]Unknown command. Try again.[/red]")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except Exception as e:
            logger.debug("Command %s failed", choice, exc_info=True)
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
