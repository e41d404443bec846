"""Interactive CLI application."""
import logging
import random
import time
from datetime import date
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Table

from vocab_tutor.checker import correct_answer_text
from vocab_tutor.dashboard import get_accuracy_color, get_accuracy_label
from vocab_tutor.db import (
    DEFAULT_DB_PATH, get_category_accuracy, get_practice_history, get_setting, set_setting,
)
from vocab_tutor.models import (
    DRAG_ORDER, FILL_BLANK, LISTENING, MULTIPLE_CHOICE, UNLOCKED, Question, SessionResult,
)
from vocab_tutor.tutor import DEFAULT_QUESTIONS_PER_SESSION, Tutor
from vocab_tutor.vocabulary import CATEGORIES, load_vocabulary, search_vocabulary

console = Console()

EXIT_WORDS = ("q", "menu")


class SessionExitRequested(Exception):
    """Raised when the user asks to leave a session mid-way."""


def session_prompt(prompt: str, **kwargs) -> str:
    answer = Prompt.ask(prompt, **kwargs)
    if answer.strip().lower() in EXIT_WORDS:
        raise SessionExitRequested()
    return answer


def session_int_prompt(prompt: str, choices: list[str]) -> int:
    answer = Prompt.ask(prompt, choices=choices + list(EXIT_WORDS), show_choices=False)
    if answer.strip().lower() in EXIT_WORDS:
        raise SessionExitRequested()
    return int(answer)


def show_welcome():
    console.print(Panel(
        "[bold]Web3 & DeFi Vocabulary[/bold]\n[dim]Practice, streaks and achievements[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("practice", "Start a practice session"),
        ("dashboard", "Streak, level and accuracy"),
        ("achievements", "Achievement progress"),
        ("search", "Look up terms"),
        ("words", "Vocabulary progress"),
        ("import", "Load extra vocabulary"),
        ("export", "Export vocabulary as JSON or CSV"),
        ("backup", "Save a progress backup"),
        ("restore", "Restore a progress backup"),
        ("settings", "Session length"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def ask_answer(question: Question):
    """Prompt for an answer in the shape the question's checker expects."""
    body = question.body
    console.print(f"[bold]{question.prompt}[/bold]\n")
    if question.kind == MULTIPLE_CHOICE:
        for i, option in enumerate(body.options, 1):
            console.print(f"  [cyan]{i})[/cyan] {option}")
        choice = session_int_prompt("\nYour answer", [str(i) for i in range(1, len(body.options) + 1)])
        return choice - 1
    elif question.kind == FILL_BLANK:
        console.print(f"  {body.template}")
        return [session_prompt(f"Blank {i}", default="") for i in range(1, len(body.blanks) + 1)]
    elif question.kind == LISTENING:
        console.print(f"  [dim]Audio: {body.audio_url}[/dim]")
        return session_prompt("What did you hear?", default="")
    elif question.kind == DRAG_ORDER:
        shuffled = list(body.items)
        random.shuffle(shuffled)
        labels = "abcdefghij"
        for label, item in zip(labels, shuffled):
            console.print(f"  [cyan]{label})[/cyan] {item.content}")
        order = session_prompt("Order (e.g. 'b a c')", default="")
        picked = []
        for token in order.replace(",", " ").split():
            index = labels.find(token.lower())
            if 0 <= index < len(shuffled):
                picked.append(shuffled[index].id)
        return picked
    return session_prompt("Your answer", default="")


def show_result(result: SessionResult) -> None:
    pct = result.accuracy * 100
    color = get_accuracy_color(pct)
    console.print(Panel(
        f"Score: [bold]{result.total_score}/{result.max_score}[/bold]   "
        f"Correct: [bold]{result.correct}/{result.total}[/bold]   "
        f"Accuracy: [{color}]{pct:.0f}% {get_accuracy_label(pct)}[/{color}]\n"
        f"Time: {result.elapsed_seconds}s (avg {result.average_seconds}s)",
        title="Session Result", border_style="green",
    ))
    table = Table(title="By Category")
    table.add_column("Category", style="cyan")
    table.add_column("Correct", justify="right")
    for name, bucket in sorted(result.by_category.items()):
        table.add_row(name, f"{bucket.correct}/{bucket.total}")
    console.print(table)
    if result.weak_categories:
        console.print(f"[yellow]Review: {', '.join(result.weak_categories)}[/yellow]")


def run_practice_session(tutor: Tutor, questions: list | None = None) -> SessionResult | None:
    """Run one session to completion and record it.

    Raises SessionExitRequested when the user quits mid-way; the session is
    discarded or partially recorded depending on their choice.
    """
    session = tutor.start_session(questions=questions)
    total = len(session.questions)
    console.print(f"\n[bold]Practice[/bold]: {total} questions (type 'q' to stop)\n")
    while session.is_active():
        index = session.index
        question = session.current_question
        console.print(f"[dim]Q{index + 1}/{total} · {question.category} · {question.time_limit}s[/dim]")
        started = time.monotonic()
        try:
            value = ask_answer(question)
        except SessionExitRequested:
            record = bool(session.answers) and Confirm.ask("Record the questions you answered?", default=False)
            tutor.exit_session(record_partial=record)
            if tutor.save_warning:
                console.print(f"[red]{tutor.save_warning}[/red]")
            raise
        elapsed = int(time.monotonic() - started)
        if elapsed >= question.time_limit:
            answer = tutor.timeout_current_question()
            console.print("[red]Time's up![/red]")
        else:
            answer = tutor.submit_answer(value, index=index, time_spent=elapsed)
            if answer.is_correct:
                console.print(f"[green]Correct! +{answer.points}[/green]")
            else:
                console.print(f"[red]Incorrect.[/red] Answer: [green]{correct_answer_text(question)}[/green]")
        if question.explanation:
            console.print(f"[dim]{question.explanation}[/dim]")
        console.print()

    result = tutor.get_session_result()
    unlocked = tutor.record_session_into_ledger()
    if tutor.save_warning:
        console.print(f"[red]{tutor.save_warning}[/red]")
    show_result(result)
    for achievement in unlocked:
        console.print(f"[bold magenta]Achievement unlocked: {achievement.name}[/bold magenta] "
                      f"(+{achievement.reward_points} points)")
    return result


def cmd_practice(tutor: Tutor):
    try:
        run_practice_session(tutor)
    except SessionExitRequested:
        console.print("[dim]Session ended.[/dim]")


def cmd_dashboard(tutor: Tutor):
    stats = tutor.get_stats()
    level = stats["level_info"]
    console.print(Panel(
        f"Level [bold]{level['level']}[/bold]  ({level['current_exp']}/{level['next_level_exp']} exp, "
        f"{level['total_points']} points)\n"
        f"Streak: [bold]{stats['streak_days']}[/bold] days (best {stats['max_streak_days']})",
        title="Progress Dashboard", border_style="blue",
    ))
    bar_filled = int(level["progress"] * 20)
    console.print(f"  [cyan]{'█' * bar_filled}{'░' * (20 - bar_filled)}[/cyan]\n")

    table = Table(title="Study Summary")
    table.add_column("Period", style="cyan")
    table.add_column("Words", justify="right")
    table.add_column("Minutes", justify="right")
    table.add_column("Sessions", justify="right")
    table.add_column("Accuracy", justify="right")
    today = stats["today"]
    today_acc = (today.correct_answers / today.total_answers * 100) if today.total_answers else 0.0
    table.add_row("Today", str(today.words_studied), str(today.study_time_minutes),
                  str(today.practice_sessions), f"{today_acc:.1f}%")
    for label, key in (("This week", "this_week"), ("This month", "this_month"), ("All time", "all_time")):
        agg = stats[key]
        color = get_accuracy_color(agg["average_accuracy"])
        table.add_row(label, str(agg["total_words"]), str(agg["total_time"]), str(agg["sessions_count"]),
                      f"[{color}]{agg['average_accuracy']}%[/{color}]")
    console.print(table)
    console.print(f"\n  Mastered: [bold]{stats['total_mastered']}[/bold]  |  "
                  f"Needs review: [bold]{stats['total_weak']}[/bold]  |  "
                  f"Study time: [bold]{stats['total_study_time']}[/bold] min")

    category_scores = get_category_accuracy(tutor.db_path)
    if category_scores:
        table = Table(title="Accuracy by Category")
        table.add_column("Category", style="cyan")
        table.add_column("Accuracy", justify="right")
        table.add_column("Status")
        for category, score in sorted(category_scores.items(), key=lambda item: item[1]):
            color = get_accuracy_color(score)
            table.add_row(category or "-", f"[{color}]{score}%[/{color}]", get_accuracy_label(score))
        console.print(table)

    history = get_practice_history(tutor.db_path, limit=5)
    if history:
        table = Table(title="Recent Sessions")
        table.add_column("Ended", style="dim")
        table.add_column("Score", justify="right")
        table.add_column("Correct", justify="right")
        table.add_column("Finished")
        for row in history:
            table.add_row(row["ended_at"], f"{row['total_score']}/{row['max_score']}",
                          f"{row['correct']}/{row['total']}", "yes" if row["completed"] else "no")
        console.print(table)


def cmd_achievements(tutor: Tutor):
    table = Table(title="Achievements")
    table.add_column("Name", style="cyan")
    table.add_column("Progress", justify="right")
    table.add_column("Reward", justify="right")
    table.add_column("Status")
    for a in tutor.ledger.progress.achievements:
        status = f"[green]{a.status}[/green]" if a.status == UNLOCKED else a.status
        table.add_row(f"{a.name}\n[dim]{a.description}[/dim]", f"{a.progress:g}/{a.target}",
                      str(a.reward_points), status)
    console.print(table)


def cmd_import(tutor: Tutor):
    file_path = Prompt.ask("File path")
    if not Path(file_path).exists():
        console.print(f"[red]File not found: {file_path}[/red]")
        return
    entries = load_vocabulary(file_path)
    known = {e.id for e in tutor.vocabulary}
    added = [e for e in entries if e.id not in known]
    tutor.vocabulary.extend(added)
    console.print(f"[green]Loaded {len(added)} new terms ({len(entries) - len(added)} already known)[/green]")


def cmd_search(tutor: Tutor):
    keyword = Prompt.ask("Keyword", default="")
    category = Prompt.ask("Category", choices=["all"] + list(CATEGORIES), default="all")
    results = search_vocabulary(tutor.vocabulary, keyword, categories=None if category == "all" else [category])
    if not results:
        console.print("[yellow]No matching terms.[/yellow]")
        return
    favorites = set(tutor.ledger.progress.favorite_words)
    table = Table(title=f"{len(results)} terms")
    table.add_column("Term", style="cyan")
    table.add_column("Category")
    table.add_column("Level")
    table.add_column("Definition")
    for entry in results:
        star = " *" if entry.id in favorites else ""
        table.add_row(entry.word + star, entry.category, entry.difficulty, entry.definition)
    console.print(table)


def cmd_words(tutor: Tutor):
    stats = tutor.vocabulary_stats()
    console.print(Panel(
        f"Total: [bold]{stats['total']}[/bold]   Mastered: [green]{stats['mastered']}[/green]   "
        f"Learning: [yellow]{stats['learning']}[/yellow]   Not started: {stats['not_started']}",
        title="Vocabulary", border_style="blue",
    ))
    table = Table(title="Terms by Category")
    table.add_column("Category", style="cyan")
    table.add_column("Terms", justify="right")
    for category, count in sorted(stats["by_category"].items()):
        table.add_row(category, str(count))
    console.print(table)


def cmd_export(tutor: Tutor):
    fmt = Prompt.ask("Format", choices=["json", "csv"], default="json")
    file_path = Prompt.ask("Save to", default=f"vocabulary.{fmt}")
    Path(file_path).write_text(tutor.export_vocabulary(fmt), encoding="utf-8")
    console.print(f"[green]Exported {len(tutor.vocabulary)} terms to {file_path}[/green]")


def cmd_backup(tutor: Tutor):
    data = tutor.export_backup()
    if data is None:
        console.print(f"[red]{tutor.save_warning}[/red]")
        return
    file_path = Prompt.ask("Save to", default=f"vocab-backup-{date.today().isoformat()}.json")
    Path(file_path).write_text(data, encoding="utf-8")
    console.print(f"[green]Backup saved to {file_path}[/green]")


def cmd_restore(tutor: Tutor):
    file_path = Prompt.ask("Backup file")
    if not Path(file_path).exists():
        console.print(f"[red]File not found: {file_path}[/red]")
        return
    if not Confirm.ask("Replace your current progress with this backup?", default=False):
        return
    warning = tutor.import_backup(Path(file_path).read_text(encoding="utf-8"))
    if warning:
        console.print(f"[red]{warning}[/red]")
    else:
        console.print("[green]Progress restored.[/green]")


def cmd_settings(tutor: Tutor):
    current = get_setting(tutor.db_path, "questions_per_session", str(DEFAULT_QUESTIONS_PER_SESSION))
    count = IntPrompt.ask("Questions per session", default=int(current))
    set_setting(tutor.db_path, "questions_per_session", str(max(1, count)))
    console.print("[green]Saved.[/green]")


def main():
    logging.basicConfig(
        level=logging.WARNING, format="%(message)s", handlers=[RichHandler(console=console)],
    )
    tutor = Tutor(DEFAULT_DB_PATH)
    if tutor.load_warning:
        console.print(f"[yellow]{tutor.load_warning}[/yellow]")

    show_welcome()

    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="practice").strip().lower()
        try:
            if choice == "practice":
                cmd_practice(tutor)
            elif choice == "dashboard":
                cmd_dashboard(tutor)
            elif choice == "achievements":
                cmd_achievements(tutor)
            elif choice == "search":
                cmd_search(tutor)
            elif choice == "words":
                cmd_words(tutor)
            elif choice == "import":
                cmd_import(tutor)
            elif choice == "export":
                cmd_export(tutor)
            elif choice == "backup":
                cmd_backup(tutor)
            elif choice == "restore":
                cmd_restore(tutor)
            elif choice == "settings":
                cmd_settings(tutor)
            elif choice in ("quit", "exit", "q"):
                console.print("[dim]Keep your streak alive![/dim]")
                break
            else:
                console.print("[red]Unknown command. Try again.[/red]")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except Exception as e:
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
