"""Interactive CLI application."""
import asyncio
import logging
import time
import uuid
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import IntPrompt, Prompt
from rich.table import Table

from cert_tutor.bilingual import BilingualQuestionCache
from cert_tutor.config import (
    ALT_LANGUAGE, ANCHOR_LANGUAGE, DEFAULT_CERTIFICATION, EXAM_DURATION_SECONDS,
    LOG_LEVEL, PASSING_SCORE, QUIZ_SIZES,
)
from cert_tutor.dashboard import get_attempt_stats, get_domain_accuracy, get_score_color, get_score_label
from cert_tutor.db import DEFAULT_DB_PATH, init_db
from cert_tutor.importer import import_file
from cert_tutor.models import QuestionFilter, SessionState
from cert_tutor.persistence import SqliteAttemptRecorder, create_attempt, get_attempt_history
from cert_tutor.repository import get_certification, get_weekly_seed, list_certifications, make_fetcher
from cert_tutor.scheduler import ManualScheduler
from cert_tutor.seed import is_seeded, seed_all
from cert_tutor.session import QuizSession

console = Console()
logger = logging.getLogger(__name__)

EXAM_SIZE = 65


class SessionExitRequested(Exception):
    """Raised when the user abandons a running quiz."""


def session_prompt(prompt: str, **kwargs) -> str:
    answer = Prompt.ask(prompt, **kwargs)
    if answer.strip().lower() in ("q", "menu"):
        raise SessionExitRequested()
    return answer


def format_duration(seconds: int) -> str:
    seconds = max(0, int(seconds))
    return f"{seconds // 3600:02d}:{seconds % 3600 // 60:02d}:{seconds % 60:02d}"


def parse_command(text: str) -> tuple[str, object]:
    """Map one line of quiz input to a command and its argument."""
    text = text.strip()
    lowered = text.lower()
    if lowered in ("n", "next"):
        return "next", None
    if lowered in ("p", "prev"):
        return "prev", None
    if lowered in ("m", "mark"):
        return "mark", None
    if lowered in ("l", "lang"):
        return "language", None
    if lowered in ("f", "finish"):
        return "finalize", None
    if lowered.startswith("j"):
        number = lowered[1:].strip()
        if number.isdigit():
            return "jump", int(number) - 1
        return "unknown", text
    labels = [part for part in text.replace(" ", ",").replace("|", ",").replace(";", ",").split(",") if part]
    if labels and all(len(label) == 1 and label.upper() in "ABCDE" for label in labels):
        return "answer", [label.upper() for label in labels]
    return "unknown", text


def show_welcome():
    console.print(Panel(
        "[bold]Cloud Certification Practice[/bold]\n[dim]Timed exams, weighted domain scores[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("quiz", "Practice quiz or timed exam"),
        ("history", "Past attempts and domain accuracy"),
        ("import", "Add a question bank file"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def show_question(session: QuizSession, certification, language: str):
    q = session.current_question
    header = f"Question {session.current_index + 1}/{len(session)}"
    header += f"  [dim]{certification.domain_labels.get(q.domain, q.domain)}[/dim]"
    if session.remaining_seconds is not None:
        header += f"  [yellow]{format_duration(session.remaining_seconds)}[/yellow]"
    if session.is_current_marked:
        header += "  [magenta]marked[/magenta]"
    body = q.stem
    if q.is_multi_select:
        body += f"\n[dim](Select {q.required_selection_count})[/dim]"
    current = session.current_answer or ()
    for label, text in q.options.items():
        pointer = "[green]>[/green]" if label in current else " "
        body += f"\n{pointer} [cyan]{label})[/cyan] {text}"
    console.print(Panel(body, title=header, subtitle=language, border_style="cyan"))


def show_result(summary, certification, elapsed: float | None = None):
    color = get_score_color(summary.score)
    verdict = "PASS" if summary.score >= PASSING_SCORE else "FAIL"
    console.print(Panel(
        f"Score: [bold {color}]{summary.score}[/bold {color}] / 1000  ({verdict})\n"
        f"Correct: {summary.correct}/{summary.total} ({summary.percentage:.0f}%)  "
        f"[{color}]{get_score_label(summary.score)}[/{color}]"
        + (f"\nTime: {format_duration(elapsed)}" if elapsed is not None else ""),
        title="Result", border_style=color,
    ))
    if summary.by_domain_total:
        table = Table(title="Domain Breakdown")
        table.add_column("Domain", style="cyan")
        table.add_column("Correct", justify="right")
        table.add_column("Weight", justify="right")
        for domain, total in summary.by_domain_total.items():
            weight = certification.domain_weights.get(domain, 0)
            table.add_row(
                certification.domain_labels.get(domain, domain),
                f"{summary.by_domain_correct.get(domain, 0)}/{total}",
                f"{weight * 100:.0f}%",
            )
        console.print(table)
    wrong = [r for r in summary.reviews if not r.is_correct]
    if wrong:
        console.print("\n[bold]Review:[/bold]")
        for r in wrong:
            given = ",".join(r.user_answer) or "-"
            console.print(f"  [red]x[/red] {r.content_id}: yours [red]{given}[/red], "
                          f"correct [green]{','.join(r.correct_answer)}[/green]")


def run_quiz_session(
    db_path: str,
    certification,
    question_set,
    language: str,
    quiz_type: str = "practice",
    duration_limit: int | None = None,
    clock=time.monotonic,
):
    """Drive one session from the terminal and return its ResultSummary."""
    questions = question_set.questions_for(language)
    if not questions:
        console.print("[yellow]No questions available![/yellow]")
        return None

    scheduler = ManualScheduler()
    attempt_id = uuid.uuid4().hex
    create_attempt(db_path, attempt_id, certification.id, quiz_type, len(questions), duration_limit)
    session = QuizSession(scheduler, recorder=SqliteAttemptRecorder(db_path), session_id=attempt_id)
    session.start(questions, certification.domain_weights, duration_limit=duration_limit)

    console.print("[dim]Answer with letters (A or A,C). n/p next/prev, j <n> jump, "
                  "m mark, l language, f finish, q quit.[/dim]\n")
    last = clock()
    try:
        while session.state is SessionState.ACTIVE:
            show_question(session, certification, language)
            raw = session_prompt("Your answer")
            # Pump timer ticks for the time spent at the prompt.
            now = clock()
            scheduler.advance(now - last)
            last = now
            if session.state is not SessionState.ACTIVE:
                console.print("[red]Time is up![/red]")
                break

            command, arg = parse_command(raw)
            if command == "answer":
                q = session.current_question
                if session.answer(q.content_id, arg):
                    session.next()
                else:
                    console.print(f"[red]Select exactly {q.required_selection_count} valid option(s).[/red]")
            elif command == "next":
                session.next()
            elif command == "prev":
                session.prev()
            elif command == "jump":
                session.jump_to(arg)
            elif command == "mark":
                session.toggle_mark(session.current_question.content_id)
            elif command == "language":
                anchor, alt = question_set.languages
                language = alt if language == anchor else anchor
                session.relocalize(question_set.questions_for(language))
            elif command == "finalize":
                unanswered = len(session) - session.answered_count
                if unanswered and Prompt.ask(
                    f"{unanswered} unanswered. Finish anyway?", choices=["y", "n"], default="n",
                ) != "y":
                    continue
                session.finalize()
            else:
                console.print("[red]Unknown command.[/red]")
            scheduler.run_pending()
    except SessionExitRequested:
        session.close()
        scheduler.run_pending()
        raise

    scheduler.run_pending()
    show_result(session.summary, certification, elapsed=session.elapsed_seconds)
    return session.summary


def _choose_certification(db_path: str):
    certs = list_certifications(db_path)
    for c in certs:
        console.print(f"  [cyan]{c['id']}[/cyan]) {c['name']}")
    ids = [c["id"] for c in certs]
    default = DEFAULT_CERTIFICATION if DEFAULT_CERTIFICATION in ids else ids[0]
    return get_certification(db_path, Prompt.ask("Certification", choices=ids, default=default))


def cmd_quiz(db_path: str, cache: BilingualQuestionCache):
    console.print("\n[bold]Practice Quiz[/bold]")
    certification = _choose_certification(db_path)
    mode = Prompt.ask("Quiz mode", choices=["practice", "weekly", "exam"], default="practice")
    language = Prompt.ask("Language", choices=[ANCHOR_LANGUAGE, ALT_LANGUAGE], default=ANCHOR_LANGUAGE)

    duration = None
    seed = None
    if mode == "exam":
        size = EXAM_SIZE
        duration = EXAM_DURATION_SECONDS
    else:
        size = IntPrompt.ask("Number of questions", choices=[str(s) for s in QUIZ_SIZES], default=QUIZ_SIZES[0])
        if mode == "weekly":
            seed = get_weekly_seed(certification.id)

    question_filter = QuestionFilter(certification_id=certification.id, limit=size, seed=seed, language=language)
    question_set = asyncio.run(cache.load(question_filter))
    try:
        run_quiz_session(db_path, certification, question_set, language, quiz_type=mode, duration_limit=duration)
    except SessionExitRequested:
        console.print("[dim]Quiz abandoned.[/dim]")


def cmd_history(db_path: str):
    certification = _choose_certification(db_path)
    stats = get_attempt_stats(db_path, certification.id)
    console.print(f"\n  Attempts: [bold]{stats['attempts_completed']}[/bold]  |  "
                  f"Avg: [bold]{stats['avg_score']}[/bold]  |  "
                  f"Best: [bold]{stats['best_score']}[/bold]  |  "
                  f"Answered: [bold]{stats['questions_answered']}[/bold]\n")

    table = Table(title="Recent Attempts")
    table.add_column("Completed")
    table.add_column("Mode")
    table.add_column("Correct", justify="right")
    table.add_column("Score", justify="right")
    for attempt in get_attempt_history(db_path, certification.id, limit=10):
        color = get_score_color(attempt["score"])
        table.add_row(
            attempt["completed_at"][:16].replace("T", " "),
            attempt["quiz_type"],
            f"{attempt['correct_answers']}/{attempt['questions_count']}",
            f"[{color}]{attempt['score']}[/{color}]",
        )
    console.print(table)

    accuracy = get_domain_accuracy(db_path, certification.id)
    if accuracy:
        weakest = min(accuracy, key=accuracy.get)
        console.print(f"\n  [yellow]Weakest domain: "
                      f"{certification.domain_labels.get(weakest, weakest)} ({accuracy[weakest]}%)[/yellow]")


def cmd_import(db_path: str, cache: BilingualQuestionCache):
    file_path = Prompt.ask("File path")
    if not Path(file_path).exists():
        console.print(f"[red]File not found: {file_path}[/red]")
        return
    certification = _choose_certification(db_path)
    result = import_file(db_path, file_path, certification.id)
    cache.invalidate()
    console.print(f"[green]Imported {result['count']} questions from {result['filename']} "
                  f"into {result['certification_id']}[/green]")


def main():
    logging.basicConfig(
        level=LOG_LEVEL, format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )
    db_path = DEFAULT_DB_PATH
    init_db(db_path)
    first_run = not is_seeded(db_path)
    if first_run:
        console.print("[dim]Setting up for first use...[/dim]")
    seed_all(db_path)
    if first_run:
        console.print("[green]Ready![/green]\n")

    cache = BilingualQuestionCache(make_fetcher(db_path), ANCHOR_LANGUAGE, ALT_LANGUAGE)
    show_welcome()

    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="quiz").strip().lower()
        try:
            if choice == "quiz":
                cmd_quiz(db_path, cache)
            elif choice == "history":
                cmd_history(db_path)
            elif choice == "import":
                cmd_import(db_path, cache)
            elif choice in ("quit", "exit", "q"):
                console.print("[dim]Good luck on your exam![/dim]")
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
