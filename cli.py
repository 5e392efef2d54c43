#!/usr/bin/env python3
"""
Wordwise - spaced-repetition flashcard trainer.
CLI interface for managing a deck, reviewing items and taking timed quizzes.
"""

import logging
import random
import time

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from config import Config
from core.answer_payload import PairMatchAnswer
from core.answer_validator import AnswerValidator
from core.assessment_session import AssessmentSession
from core.dto.assessment import AssessmentSettings, QuestionKind, SessionState
from core.dto.items import Difficulty, LearningItem
from core.errors import WordwiseError
from core.question_generator import QuestionGenerator, filter_items
from core.review_bridge import (
    apply_assessment,
    suggest_assessment,
    suggest_difficulties,
    urgent_review_items,
)
from core.sm2 import SM2Algorithm
from core.timers import SystemClock
from storage.json_store import JsonItemRepository

console = Console()

KIND_CHOICES = [k.value.replace("_", "-") for k in QuestionKind]
DIFFICULTY_CHOICES = [d.value for d in Difficulty]


def open_deck(deck_path):
    return JsonItemRepository(deck_path) if deck_path else JsonItemRepository()


def format_answer(payload):
    """Human-readable text of an answer payload."""
    if payload is None:
        return "-"
    return payload.to_text()


@click.group()
@click.version_option(version="0.1.0", prog_name="Wordwise")
@click.option(
    "--deck",
    "deck_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Deck file (default: WORDWISE_DECK_PATH or data/deck.json)",
)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@click.pass_context
def cli(ctx, deck_path, verbose):
    """Wordwise - spaced-repetition flashcards with timed quizzes."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else Config.LOG_LEVEL,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["deck_path"] = deck_path


@cli.command()
@click.pass_context
def init(ctx):
    """Create the data directory and an empty deck."""
    console.print("\n[bold cyan]Initializing Wordwise...[/bold cyan]\n")

    try:
        Config.ensure_dirs()
        deck = open_deck(ctx.obj["deck_path"])
        if deck.path.exists():
            console.print(f"[yellow]Deck already exists at {deck.path}[/yellow]\n")
            return
        deck.flush()

        console.print("[bold green]✨ Wordwise initialized successfully![/bold green]\n")
        console.print(f"Deck: {deck.path}\n")
        console.print("Next steps:")
        console.print("  • wordwise add <WORD> <MEANING> - Add an item")
        console.print("  • wordwise quiz - Take a timed quiz")
        console.print("  • wordwise --help - See all commands\n")

    except (OSError, WordwiseError) as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}\n")
        raise click.Abort()


@cli.command()
@click.argument("prompt")
@click.argument("answer")
@click.option("--folder", "-f", default="general", help="Folder (category) of the item")
@click.option(
    "--difficulty",
    "-d",
    type=click.Choice(DIFFICULTY_CHOICES),
    default="medium",
    help="Item difficulty (default: medium)",
)
@click.option("--note", "-n", default=None, help="Free-form note")
@click.option("--tag", "-t", "tags", multiple=True, help="Tag (repeatable)")
@click.pass_context
def add(ctx, prompt, answer, folder, difficulty, note, tags):
    """Add a learning item to the deck."""
    try:
        deck = open_deck(ctx.obj["deck_path"])
        item = LearningItem(
            item_id=deck.next_item_id(),
            prompt=prompt,
            answer=answer,
            folder_id=folder,
            difficulty=Difficulty(difficulty),
            note=note,
            tags=list(tags),
        )
        deck.save(item)
        console.print(f"[green]✓ Added item {item.item_id}:[/green] {prompt} → {answer}")
    except WordwiseError as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}\n")
        raise click.Abort()


@cli.command()
@click.argument("item_id")
@click.pass_context
def remove(ctx, item_id):
    """Delete an item from the deck."""
    try:
        deck = open_deck(ctx.obj["deck_path"])
        deck.delete(item_id)
        console.print(f"[green]✓ Removed item {item_id}[/green]")
    except WordwiseError as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}\n")
        raise click.Abort()


@cli.command(name="list")
@click.option("--folder", "-f", default=None, help="Only items in this folder")
@click.option("--due", "due_only", is_flag=True, help="Only items due for review")
@click.pass_context
def list_items(ctx, folder, due_only):
    """List items with their review schedule."""
    try:
        deck = open_deck(ctx.obj["deck_path"])
        sm2 = SM2Algorithm()
        items = deck.list_items(folder)
        if due_only:
            items = [item for item in items if sm2.is_due(item)]

        if not items:
            console.print("\n[yellow]No items found. Add some with 'wordwise add'.[/yellow]\n")
            return

        table = Table(title="\n📚 Deck")
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Word", style="white")
        table.add_column("Meaning", style="white")
        table.add_column("Folder", style="magenta")
        table.add_column("Difficulty", style="green")
        table.add_column("Level", style="yellow")
        table.add_column("Next review", style="dim")

        for item in sorted(items, key=lambda i: i.next_review):
            table.add_row(
                item.item_id,
                item.prompt,
                item.answer,
                item.folder_id,
                item.difficulty.value,
                sm2.mastery_level(item).value,
                item.next_review.strftime("%Y-%m-%d"),
            )

        console.print(table)
        console.print(f"\nTotal: {len(items)} items\n")

    except WordwiseError as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}\n")
        raise click.Abort()


@cli.command()
@click.pass_context
def stats(ctx):
    """Show mastery and due counts for the deck."""
    try:
        deck = open_deck(ctx.obj["deck_path"])
        summary = SM2Algorithm().collection_stats(deck.list_items())

        table = Table(title="\n📊 Deck Statistics", show_header=False)
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="white")
        table.add_row("Items", str(summary.total_items))
        table.add_row("Mastered", str(summary.mastered_items))
        table.add_row("Due now", str(summary.due_items))
        table.add_row("Progress", f"{summary.progress:.1f}%")
        table.add_row("Average correct rate", f"{summary.average_correct_rate:.0%}")
        for level, count in summary.by_difficulty.items():
            table.add_row(f"  {level.title()}", str(count))

        console.print(table)
        console.print()

    except WordwiseError as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}\n")
        raise click.Abort()


@cli.command()
@click.argument("item_id")
@click.argument("quality", type=int)
@click.pass_context
def review(ctx, item_id, quality):
    """Rate recall of one item (QUALITY 0-5) and reschedule it."""
    try:
        deck = open_deck(ctx.obj["deck_path"])
        item = deck.get(item_id)
        updated = SM2Algorithm().apply_review(item, quality)
        deck.save(updated)

        console.print(f"\n[bold]{item.prompt}[/bold] rated {quality}")
        console.print(
            f"  Interval: {item.interval}d → [cyan]{updated.interval}d[/cyan]   "
            f"Ease: {item.ease_factor:.2f} → [cyan]{updated.ease_factor:.2f}[/cyan]   "
            f"Streak: {updated.repetition}"
        )
        console.print(f"  Next review: {updated.next_review.strftime('%Y-%m-%d %H:%M')}\n")

    except WordwiseError as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}\n")
        raise click.Abort()


@cli.command()
@click.argument("kind", type=click.Choice(KIND_CHOICES[:-1]))
@click.argument("answer")
@click.argument("canonical")
def check(kind, answer, canonical):
    """Check ANSWER against CANONICAL for a question KIND.

    Pair-matching answers are JSON objects, e.g. '{"cat": "chat"}'.
    """
    question_kind = QuestionKind.from_string(kind)
    correct = AnswerValidator().is_correct(question_kind, answer, canonical)
    if correct:
        console.print("[bold green]✓ Correct[/bold green]")
    else:
        console.print("[bold red]✗ Incorrect[/bold red]")


@cli.command()
@click.pass_context
def advise(ctx):
    """Suggest what to study next from past quiz results."""
    try:
        deck = open_deck(ctx.obj["deck_path"])
        history = deck.history()

        suggestion = suggest_assessment(history)
        difficulties, difficulty_reason = suggest_difficulties(history)
        settings = suggestion.settings

        console.print(
            Panel(
                f"Kind: {suggestion.kind.value.replace('_', '-')}\n"
                f"Questions: {settings.question_count} | Time: {settings.total_time_limit}s\n"
                f"{suggestion.reason}\n\n"
                f"Difficulties: {', '.join(d.value for d in difficulties)}\n"
                f"{difficulty_reason}",
                title="💡 Next quiz",
                style="cyan",
            )
        )

        urgent = urgent_review_items(history, deck.list_items())
        if urgent:
            console.print("\n[bold yellow]Needs urgent review:[/bold yellow]")
            for item in urgent[:10]:
                console.print(f"  • {item.prompt} → {item.answer} [dim](id {item.item_id})[/dim]")
        console.print()

    except WordwiseError as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}\n")
        raise click.Abort()


def ask_question(session, question):
    """Show a question and read the learner's raw answer.

    Returns None when the learner asks to quit.
    """
    progress = session.progress()
    header = f"Question {progress.current_index + 1}/{progress.total_questions}"
    if progress.total_time_remaining is not None:
        header += f" | ⏱ {progress.total_time_remaining}s left"
    if progress.question_time_remaining is not None:
        header += f" | this question: {progress.question_time_remaining}s"

    console.print(f"[bold]{header}[/bold]")
    console.print(Panel(question.prompt, border_style="blue"))

    if question.kind == QuestionKind.PAIR_MATCHING:
        for idx, option in enumerate(question.options, 1):
            console.print(f"  {idx}. {option}")
        pairs = {}
        for word in question.correct_answer.pairs:
            choice = console.input(f"  [cyan]{word}[/cyan] → number: ").strip()
            if choice == ":q":
                return None
            if choice.isdigit() and 1 <= int(choice) <= len(question.options):
                pairs[word] = question.options[int(choice) - 1]
        return PairMatchAnswer(pairs) if pairs else ""

    if question.kind == QuestionKind.SINGLE_CHOICE:
        for idx, option in enumerate(question.options, 1):
            console.print(f"  {idx}. {option}")
    elif question.kind == QuestionKind.BOOLEAN:
        console.print("  [dim]true / false[/dim]")

    answer = console.input("[dim](Enter to skip, :q to quit)[/dim] > ").strip()
    if answer == ":q":
        return None
    if question.kind == QuestionKind.SINGLE_CHOICE and answer.isdigit():
        index = int(answer) - 1
        if 0 <= index < len(question.options):
            return question.options[index]
    return answer


@cli.command()
@click.option(
    "--kind",
    "-k",
    type=click.Choice(KIND_CHOICES),
    default="mixed",
    help="Question kind (default: mixed)",
)
@click.option("--questions", "-n", type=int, default=Config.DEFAULT_QUIZ_LENGTH, help="Number of questions")
@click.option("--time", "total_time", type=int, default=Config.DEFAULT_TOTAL_TIME, help="Total time in seconds (0 = untimed)")
@click.option("--question-time", type=int, default=None, help="Seconds per question")
@click.option("--folder", "-f", "folders", multiple=True, help="Folder filter (repeatable)")
@click.option(
    "--difficulty",
    "-d",
    "difficulties",
    type=click.Choice(DIFFICULTY_CHOICES + ["all"]),
    multiple=True,
    help="Difficulty filter (repeatable)",
)
@click.option("--ordered", is_flag=True, help="Keep deck order instead of shuffling")
@click.option("--instant-feedback", is_flag=True, help="Pause on each answer to show feedback")
@click.option("--no-reveal", is_flag=True, help="Do not reveal correct answers")
@click.option("--no-skip", is_flag=True, help="Disallow skipping")
@click.option("--seed", type=int, default=None, help="Random seed for reproducible quizzes")
@click.option("--no-schedule", is_flag=True, help="Do not update the review schedule afterwards")
@click.pass_context
def quiz(
    ctx,
    kind,
    questions,
    total_time,
    question_time,
    folders,
    difficulties,
    ordered,
    instant_feedback,
    no_reveal,
    no_skip,
    seed,
    no_schedule,
):
    """Take an interactive timed quiz."""
    try:
        deck = open_deck(ctx.obj["deck_path"])
        settings = AssessmentSettings(
            kind=QuestionKind.from_string(kind),
            question_count=questions,
            total_time_limit=total_time or None,
            question_time_limit=question_time,
            folder_ids=list(folders),
            difficulties=list(difficulties),
            random_order=not ordered,
            reveal_correct_answer=not no_reveal,
            instant_feedback=instant_feedback,
            allow_skip=not no_skip,
        )
        pool = filter_items(deck.list_items(), settings.folder_ids, settings.difficulties)
        session = AssessmentSession(
            settings,
            pool,
            clock=SystemClock(),
            generator=QuestionGenerator(rng=random.Random(seed)),
        )
    except WordwiseError as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}\n")
        raise click.Abort()

    console.print(
        Panel(
            f"📝 Quiz: {len(session.questions)} {kind} questions"
            + (f" | {total_time}s" if total_time else "")
            + (f" | {question_time}s per question" if question_time else ""),
            style="cyan",
        )
    )

    session.start()
    last_tick = time.monotonic()

    def catch_up():
        nonlocal last_tick
        whole = int(time.monotonic() - last_tick)
        if whole > 0:
            session.run_for(whole)
            last_tick += whole

    while session.state == SessionState.ACTIVE:
        question = session.current_question()
        raw = ask_question(session, question)
        catch_up()

        if raw is None:
            session.cancel()
            console.print("\n[yellow]Quiz cancelled.[/yellow]\n")
            return
        if session.state != SessionState.ACTIVE:
            break
        if session.current_question() is not question:
            console.print("[yellow]⏱ Time is up for that question.[/yellow]\n")
            continue

        try:
            if raw == "" and not settings.allow_skip:
                console.print("[yellow]Skipping is disabled - please answer.[/yellow]")
                continue
            outcome = session.submit_answer(raw)
        except WordwiseError as e:
            console.print(f"[red]{e}[/red]")
            continue

        if outcome.user_answer is None:
            console.print("[yellow]Skipped[/yellow]")
        elif outcome.is_correct:
            console.print("[bold green]✓ Correct[/bold green]")
        else:
            console.print("[bold red]✗ Incorrect[/bold red]")
        if outcome.correct_answer is not None and not outcome.is_correct:
            console.print(f"  Answer: [cyan]{format_answer(outcome.correct_answer)}[/cyan]")
        console.print()

        while session.revealing and session.state == SessionState.ACTIVE:
            time.sleep(1)
            last_tick += 1
            session.tick()

    if session.state == SessionState.ACTIVE:
        session.complete()
    results = session.results
    if results is None:
        return

    show_results(results)
    deck.add_results(results)
    if not no_schedule:
        updated = apply_assessment(results, deck, question_time_limit=question_time)
        console.print(f"[dim]Rescheduled {len(updated)} items.[/dim]\n")


def show_results(results):
    """Print a results summary with breakdowns."""
    style = "green" if results.percentage >= 70 else "yellow" if results.percentage >= 50 else "red"
    console.print(
        Panel(
            f"Score: {results.total_score}/{results.max_score} ({results.percentage}%)\n"
            f"Correct: {results.correct_answers} | Wrong: {results.wrong_answers} | "
            f"Skipped: {results.skipped_answers}\n"
            f"Time: {results.time_spent}s (avg {results.average_time_per_question}s per question)\n"
            f"Fastest: {results.performance.fastest_time}s | Slowest: {results.performance.slowest_time}s | "
            f"Consistency: {results.performance.consistency:.0%}",
            title="🏁 Results",
            style=style,
        )
    )

    for title, groups in (
        ("Kind", results.breakdown.by_kind),
        ("Difficulty", results.breakdown.by_difficulty),
        ("Folder", results.breakdown.by_category),
    ):
        if not groups:
            continue
        table = Table(title=f"By {title.lower()}")
        table.add_column(title, style="cyan")
        table.add_column("Correct", justify="right")
        table.add_column("%", justify="right")
        for key, entry in groups.items():
            table.add_row(key.replace("_", "-"), f"{entry.correct}/{entry.total}", f"{entry.percentage}%")
        console.print(table)
    console.print()


if __name__ == "__main__":
    cli()
