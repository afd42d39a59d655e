"""
tutoria: terminal front-end.

Commands:
- tutoria student add|list   - Register and list students
- tutoria placement          - Run a student's placement test
- tutoria activities         - Refill and list a student's activities
- tutoria play               - Answer an activity and collect rewards
- tutoria review             - Question-by-question results
- tutoria insights           - Tutor progress report (password)
- tutoria create             - Author an activity from instructions (password)
- tutoria badges             - Show unlocked badges
- tutoria goal add|done|list - Study goals
"""
from __future__ import annotations

import asyncio
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import NoReturn, Optional, TypeVar

import typer
from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Table

from config import Settings, get_settings
from tutoria.adaptive import ActivityReplenisher, PlacementTest
from tutoria.auth import TutorGate
from tutoria.authoring import ActivityDraft, create_draft
from tutoria.content import GeminiContentProvider
from tutoria.core import (
    GRADE_OPTIONS,
    ActivityStatus,
    ContentProviderError,
    Question,
    Student,
    StudentNotFoundError,
    TutoriaError,
    is_completed,
)
from tutoria.store import DomainStore, JsonFileRepository
from tutoria.store.domain_store import NO_PROVIDER_MESSAGE

T = TypeVar("T")

# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="tutoria",
    help="tutoria: adaptive practice for elementary students",
    no_args_is_help=True,
)
student_app = typer.Typer(help="Register and list students", no_args_is_help=True)
goal_app = typer.Typer(help="Study goals", no_args_is_help=True)
app.add_typer(student_app, name="student")
app.add_typer(goal_app, name="goal")

console = Console()


# =============================================================================
# Styling
# =============================================================================

STATUS_STYLES = {
    ActivityStatus.COMPLETED: "[green]Concluída[/green]",
    ActivityStatus.IN_PROGRESS: "[yellow]Em andamento[/yellow]",
    ActivityStatus.NOT_STARTED: "[cyan]Nova[/cyan]",
}

BADGE_ICONS = {
    "zap": "⚡",
    "star": "★",
    "trending-up": "↗",
    "medal": "●",
}


# =============================================================================
# Wiring
# =============================================================================


def open_store(settings: Settings | None = None) -> DomainStore:
    """Build the store over the data directory, with AI when a key is configured."""
    settings = settings or get_settings()
    provider = GeminiContentProvider.from_settings(settings) if settings.has_ai_configured() else None
    return DomainStore(JsonFileRepository(settings.data_dir), provider)


def run_async(store: DomainStore, flow: Callable[[], Awaitable[T]]) -> T:
    """Run one async flow, closing the provider's HTTP client afterwards."""

    async def runner() -> T:
        try:
            return await flow()
        finally:
            if isinstance(store.provider, GeminiContentProvider):
                await store.provider.close()

    return asyncio.run(runner())


def require_student(store: DomainStore, student_id: str) -> Student:
    student = store.get_student(student_id)
    if student is None:
        console.print(f"[red]Aluno '{student_id}' não encontrado.[/red]")
        raise typer.Exit(1)
    return student


def tutor_login(store: DomainStore, password: str | None) -> None:
    gate = TutorGate(store, min_length=get_settings().tutor_password_min_length)
    if not gate.has_password:
        console.print("[bold cyan]Primeiro acesso: defina a senha do tutor.[/bold cyan]")
    secret = password if password is not None else Prompt.ask("Senha do tutor", password=True)
    try:
        ok = gate.login(secret)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    if not ok:
        console.print("[red]Senha incorreta.[/red]")
        raise typer.Exit(1)


def fail(error: TutoriaError) -> NoReturn:
    message = error.user_message if isinstance(error, ContentProviderError) else str(error)
    console.print(f"[red]{message}[/red]")
    raise typer.Exit(1)


# =============================================================================
# Display Helpers
# =============================================================================


def ask_question(question: Question, index: int, total: int) -> str:
    """Show a question and read the student's answer."""
    content = question.question
    options = question.options or []
    if question.is_auto_graded and options:
        content += "\n\n" + "\n".join(f"  {i}. {opt}" for i, opt in enumerate(options, 1))

    console.print(
        Panel(
            content,
            title=f"Questão {index}/{total}  |  {question.subject}",
            title_align="left",
            border_style="cyan",
            padding=(1, 2),
        )
    )
    if question.is_auto_graded and options:
        choice = IntPrompt.ask("Sua resposta", choices=[str(i) for i in range(1, len(options) + 1)])
        return options[choice - 1]
    return Prompt.ask("Sua resposta")


def print_draft(draft: ActivityDraft) -> None:
    for number, question in enumerate(draft.questions, 1):
        lines = [f"[bold]{number}. {question.question}[/bold]"]
        for option in question.options or []:
            mark = "[green]✓[/green]" if option == question.correct_answer else " "
            lines.append(f"   {mark} {option}")
        console.print("\n".join(lines))


# =============================================================================
# Students
# =============================================================================


@student_app.command("add")
def student_add(
    name: str = typer.Argument(..., help="Student name"),
    age: int = typer.Argument(..., help="Age in years"),
    grade: str = typer.Argument(..., help=f"School year, one of: {', '.join(GRADE_OPTIONS)}"),
) -> None:
    """Register a new student."""
    if grade not in GRADE_OPTIONS:
        console.print(f"[red]Série inválida. Opções: {', '.join(GRADE_OPTIONS)}[/red]")
        raise typer.Exit(1)
    student = open_store().add_student(name, age, grade)
    console.print(f"[green]Aluno cadastrado:[/green] {student.name} ({student.id})")


@student_app.command("list")
def student_list() -> None:
    """List registered students."""
    students = open_store().list_students()
    if not students:
        console.print("[dim]Nenhum aluno cadastrado.[/dim]")
        return

    table = Table(title="Alunos")
    table.add_column("ID")
    table.add_column("Nome")
    table.add_column("Idade", justify="right")
    table.add_column("Série")
    table.add_column("Nivelamento")
    table.add_column("Pontos", justify="right")
    for s in students:
        table.add_row(
            s.id,
            s.name,
            str(s.age),
            s.grade,
            "[green]feito[/green]" if s.nivelamento_completed else "[yellow]pendente[/yellow]",
            str(s.gamification.points),
        )
    console.print(table)


# =============================================================================
# Student flows
# =============================================================================


@app.command()
def placement(student_id: str = typer.Argument(..., help="Student id")) -> None:
    """Take the one-time placement test."""
    store = open_store()
    student = require_student(store, student_id)
    if student.nivelamento_completed:
        console.print("[yellow]O teste de nivelamento já foi concluído.[/yellow]")
        raise typer.Exit(0)

    async def generate() -> list[Question]:
        if store.provider is None:
            raise ContentProviderError(NO_PROVIDER_MESSAGE)
        with console.status("Preparando seu teste de nivelamento..."):
            return await store.provider.generate_placement_test(student.grade)

    try:
        questions = run_async(store, generate)
    except ContentProviderError as e:
        fail(e)

    test = PlacementTest(questions)
    while not test.finished:
        question = test.current_question
        test.answer(ask_question(question, test.current_index + 1, len(test.questions)))

    try:
        updated = store.complete_nivelamento(student_id, test.results())
    except TutoriaError as e:
        fail(e)

    table = Table(title="Resultado do nivelamento")
    table.add_column("Matéria")
    table.add_column("Acerto", justify="right")
    for subject, value in (updated.nivelamento_results or {}).items():
        table.add_row(subject, f"{value}%")
    console.print(table)


@app.command()
def activities(
    student_id: str = typer.Argument(..., help="Student id"),
    generate: bool = typer.Option(True, "--generate/--no-generate", help="Refill the activity queue first"),
) -> None:
    """List a student's activities, generating new ones when the queue runs low."""
    settings = get_settings()
    store = open_store(settings)
    require_student(store, student_id)

    if generate:
        replenisher = ActivityReplenisher(store, target_depth=settings.activity_queue_depth)

        async def refill() -> int:
            with console.status("Preparando novas atividades..."):
                return len(await replenisher.replenish(student_id))

        created = run_async(store, refill)
        if created:
            console.print(f"[green]{created} nova(s) atividade(s) criada(s).[/green]")

    statuses = store.activity_statuses(student_id)
    if not statuses:
        console.print("[dim]Nenhuma atividade disponível.[/dim]")
        return

    table = Table(title="Atividades")
    table.add_column("ID")
    table.add_column("Título")
    table.add_column("Matéria")
    table.add_column("Questões", justify="right")
    table.add_column("Status")
    for activity, status in statuses:
        table.add_row(
            activity.id,
            activity.title,
            activity.subject,
            str(len(activity.content)),
            STATUS_STYLES[status],
        )
    console.print(table)


@app.command()
def play(
    student_id: str = typer.Argument(..., help="Student id"),
    activity_id: str = typer.Argument(..., help="Activity id"),
) -> None:
    """Answer an activity, then score it and collect rewards."""
    store = open_store()
    require_student(store, student_id)
    activity = store.get_activity(activity_id)
    if activity is None or activity.student_id != student_id:
        console.print(f"[red]Atividade '{activity_id}' não encontrada.[/red]")
        raise typer.Exit(1)
    if not activity.content:
        console.print("[yellow]Esta atividade não tem questões.[/yellow]")
        raise typer.Exit(0)

    answer = store.get_answer(activity_id)
    start = 0
    if is_completed(activity, answer):
        if not Confirm.ask("Atividade já concluída. Refazer?", default=False):
            raise typer.Exit(0)
    elif answer is not None:
        start = next(i for i in range(len(activity.content)) if i not in answer.answers)

    total = len(activity.content)
    for index in range(start, total):
        store.save_student_answer(
            student_id, activity_id, index, ask_question(activity.content[index], index + 1, total)
        )

    score = store.score_activity(activity_id)
    result = store.award_rewards(student_id, activity_id, score)

    console.print(
        Panel(
            f"Você acertou [bold]{score.correct}[/bold] de [bold]{score.total}[/bold] "
            f"({score.percentage}%)\n+{result.awarded_points} pontos",
            title="[bold]Atividade concluída[/bold]",
            border_style="green" if score.is_perfect else "cyan",
        )
    )
    for badge in result.new_badges:
        icon = BADGE_ICONS.get(badge.icon, BADGE_ICONS["medal"])
        console.print(f"[bold yellow]{icon} Nova medalha: {badge.name}[/bold yellow] - {badge.description}")


@app.command()
def review(activity_id: str = typer.Argument(..., help="Activity id")) -> None:
    """Show each question with the submitted and the correct answer."""
    result = open_store().review_activity(activity_id)
    if result is None:
        console.print(f"[red]Atividade '{activity_id}' não encontrada.[/red]")
        raise typer.Exit(1)

    console.print(f"\n[bold]{result.activity.title}[/bold] ({result.activity.subject})")
    console.print(f"Pontuação: {result.score.correct}/{result.score.total} ({result.score.percentage}%)\n")
    for item in result.items:
        submitted = item.submitted or "[dim]sem resposta[/dim]"
        if not item.graded:
            verdict = "[cyan]resposta aberta[/cyan]"
        elif item.is_correct:
            verdict = "[green]✓ correta[/green]"
        else:
            verdict = f"[red]✗ correta: {item.correct_answer}[/red]"
        console.print(f"{item.index + 1}. {item.question.question}\n   {submitted}  {verdict}")


@app.command()
def badges(student_id: str = typer.Argument(..., help="Student id")) -> None:
    """Show a student's points and badges."""
    store = open_store()
    student = require_student(store, student_id)
    console.print(f"[bold]{student.name}[/bold]: {student.gamification.points} pontos")
    unlocked = store.student_badges(student_id)
    if not unlocked:
        console.print("[dim]Nenhuma medalha ainda.[/dim]")
    for badge in unlocked:
        icon = BADGE_ICONS.get(badge.icon, BADGE_ICONS["medal"])
        console.print(f"  {icon} [bold]{badge.name}[/bold] - {badge.description}")


# =============================================================================
# Tutor flows
# =============================================================================


@app.command()
def insights(
    student_id: str = typer.Argument(..., help="Student id"),
    refresh: bool = typer.Option(False, "--refresh", "-r", help="Recompute instead of using the cache"),
    password: Optional[str] = typer.Option(None, "--password", help="Tutor password"),
) -> None:
    """Progress report for a student (tutor only)."""
    store = open_store()
    tutor_login(store, password)
    require_student(store, student_id)

    async def analyze():
        with console.status("Analisando o progresso do aluno..."):
            if refresh:
                return await store.refresh_student_insights(student_id)
            return await store.get_student_insights(student_id)

    try:
        report = run_async(store, analyze)
    except (ContentProviderError, StudentNotFoundError) as e:
        fail(e)

    table = Table(title="Mapa de conhecimento")
    table.add_column("Matéria")
    table.add_column("Nível")
    table.add_column("")
    table.add_column("Resumo")
    table.add_column("Sugestões")
    for info in report.hub_data:
        level = info.proficiency
        if level is None:
            table.add_row(info.subject, info.level, "", info.summary, info.suggestions)
            continue
        bar = "█" * (level.chart_value // 10)
        table.add_row(
            info.subject,
            f"[{level.color}]{level.value}[/{level.color}]",
            f"[{level.color}]{bar}[/{level.color}]",
            info.summary,
            info.suggestions,
        )
    console.print(table)

    if report.lesson_suggestions:
        console.print("\n[bold]Sugestões de aula[/bold]")
        for suggestion in report.lesson_suggestions:
            console.print(f"  • {suggestion}")


@app.command()
def create(
    student_id: str = typer.Argument(..., help="Student id"),
    title: str = typer.Option(..., "--title", "-t", help="Activity title"),
    instructions: str = typer.Option(..., "--instructions", "-i", help="What the activity should cover"),
    source_file: Optional[Path] = typer.Option(None, "--file", "-f", help="PDF or text file to base questions on"),
    password: Optional[str] = typer.Option(None, "--password", help="Tutor password"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Save without review"),
) -> None:
    """Draft an activity from instructions, review it and save it (tutor only)."""
    store = open_store()
    tutor_login(store, password)
    student = require_student(store, student_id)

    async def draft_questions() -> ActivityDraft:
        if store.provider is None:
            raise ContentProviderError(NO_PROVIDER_MESSAGE)
        with console.status("Gerando questões..."):
            return await create_draft(store.provider, student, title, instructions, source_file)

    try:
        draft = run_async(store, draft_questions)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    except ContentProviderError as e:
        fail(e)

    if not yes:
        print_draft(draft)
        to_remove = Prompt.ask("Questões a remover (ex: 1,3)", default="")
        ids = [q.id for q in draft.questions]
        for token in to_remove.replace(" ", "").split(","):
            if token.isdigit() and 1 <= int(token) <= len(ids):
                draft.remove_question(ids[int(token) - 1])
        if not Confirm.ask("Salvar atividade?", default=True):
            raise typer.Exit(0)

    try:
        activity = store.save_draft(draft)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Atividade salva com sucesso![/green] ({activity.id})")


# =============================================================================
# Goals
# =============================================================================


@goal_app.command("add")
def goal_add(
    student_id: str = typer.Argument(..., help="Student id"),
    description: str = typer.Argument(..., help="Goal description"),
) -> None:
    """Add a study goal."""
    store = open_store()
    require_student(store, student_id)
    goal = store.add_goal(student_id, description)
    console.print(f"[green]Meta criada:[/green] {goal.description} ({goal.id})")


@goal_app.command("done")
def goal_done(
    goal_id: str = typer.Argument(..., help="Goal id"),
    undo: bool = typer.Option(False, "--undo", help="Mark as not completed"),
) -> None:
    """Mark a study goal as completed."""
    goal = open_store().set_goal_completed(goal_id, completed=not undo)
    if goal is None:
        console.print(f"[red]Meta '{goal_id}' não encontrada.[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Meta atualizada:[/green] {goal.description}")


@goal_app.command("list")
def goal_list(student_id: str = typer.Argument(..., help="Student id")) -> None:
    """List a student's study goals."""
    goals = open_store().student_goals(student_id)
    if not goals:
        console.print("[dim]Nenhuma meta cadastrada.[/dim]")
        return
    for goal in goals:
        mark = "[green]✓[/green]" if goal.completed else "[dim]○[/dim]"
        console.print(f"{mark} {goal.description} [dim]({goal.id})[/dim]")


# =============================================================================
# Entry Point
# =============================================================================


def main() -> None:
    """CLI entry point."""
    settings = get_settings()
    logger.remove()
    logger.add(
        sys.stderr,
        level=settings.log_level,
        format="<level>{message}</level>",
    )
    if settings.log_file:
        logger.add(settings.log_file, level="DEBUG", rotation="1 MB")

    app()


if __name__ == "__main__":
    main()
