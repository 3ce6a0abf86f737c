"""CLI entry point for NeuroTutor."""

import asyncio
from contextlib import contextmanager
from pathlib import Path

import click

from neurotutor.config.settings import Settings
from neurotutor.errors import NeuroTutorError
from neurotutor.utils.formatting import format_average_time, format_duration
from neurotutor.utils.logging import configure_logging


@contextmanager
def _session(ctx: click.Context):
    from neurotutor.engine.session import PracticeSession

    try:
        with PracticeSession.open(ctx.obj["settings"]) as session:
            yield session
    except NeuroTutorError as e:
        raise click.ClickException(str(e)) from e


def _show_question(question) -> None:
    if question is None:
        click.echo("No question available for this topic.")
        return
    click.echo(f"[{question.id}] {question.title} ({question.difficulty.value}, {question.topic})")
    click.echo()
    click.echo(question.description)
    if question.starter_code:
        click.echo()
        click.echo(question.starter_code)


@click.group()
@click.option("--config", "config_path", type=click.Path(path_type=Path), default=None,
              help="Path to config.yaml")
@click.option("--log-level", default=None, help="Override the configured log level")
@click.pass_context
def main(ctx: click.Context, config_path, log_level) -> None:
    """NeuroTutor: adaptive Python coding practice."""
    ctx.ensure_object(dict)
    try:
        settings = Settings.load(config_path)
    except (ValueError, OSError) as e:
        raise click.ClickException(f"Invalid configuration: {e}") from e
    configure_logging(log_level or settings.log_level)
    ctx.obj["settings"] = settings


@main.command("next")
@click.option("--topic", default=None, help="Topic to practice")
@click.pass_context
def next_question(ctx: click.Context, topic) -> None:
    """Show the next question to work on."""
    with _session(ctx) as session:
        if session.settings.engine.ai_generation:
            question = asyncio.run(session.fetch_generated_question(topic))
        else:
            question = session.next_question(topic)
        _show_question(question)


@main.command()
@click.option("--topic", default=None, help="Topic of the generated question")
@click.pass_context
def generate(ctx: click.Context, topic) -> None:
    """Generate a new question with Claude (falls back to the catalog)."""
    with _session(ctx) as session:
        _show_question(asyncio.run(session.fetch_generated_question(topic)))


@main.command()
@click.argument("question_id")
@click.argument("code_file", type=click.File("r"))
@click.option("--time", "time_spent", type=float, required=True, help="Seconds spent")
@click.option("--confidence", type=click.FloatRange(0, 100), default=None,
              help="Self-rated confidence, 0-100")
@click.pass_context
def submit(ctx: click.Context, question_id, code_file, time_spent, confidence) -> None:
    """Submit CODE_FILE ('-' for stdin) as the answer to QUESTION_ID."""
    code = code_file.read()
    with _session(ctx) as session:
        result = asyncio.run(session.submit(question_id, code, time_spent, confidence))

    click.echo("Correct!" if result.passed else "Not correct.")
    for item in result.evaluation.feedback:
        where = f"line {item.line}: " if item.line else ""
        click.echo(f"  {where}{item.message}")
        if item.suggestion:
            click.echo(f"    {item.suggestion}")
    if result.message:
        click.echo(result.message)
    if result.hint:
        click.echo(f"Hint: {result.hint}")
    if result.downgraded:
        click.echo("Difficulty lowered to help you build momentum.")
    if result.skip_suggested:
        click.echo("Consider moving on with `neurotutor next`.")

    click.echo(f"Difficulty: {result.difficulty.value} (policy: {result.policy_difficulty.value}"
               + (f", rl: {result.rl_action.value}" if result.rl_action else "") + ")")


@main.command()
@click.argument("question_id")
@click.pass_context
def hint(ctx: click.Context, question_id) -> None:
    """Reveal the next hint for QUESTION_ID."""
    with _session(ctx) as session:
        text = session.get_hint(question_id)
    click.echo(text or "No hints for this question.")


@main.command()
@click.argument("question_id")
@click.pass_context
def solution(ctx: click.Context, question_id) -> None:
    """Show the reference solution for QUESTION_ID."""
    with _session(ctx) as session:
        text = session.view_solution(question_id)
    click.echo(text or "No reference solution for this question.")


@main.command()
@click.pass_context
def stats(ctx: click.Context) -> None:
    """Show progress and performance statistics."""
    with _session(ctx) as session:
        profile = session.profile
        answered = session.catalog.answered_stats(profile)

    metrics = profile.performance_metrics
    analytics = profile.learning_analytics
    click.echo(f"Difficulty:      {profile.current_difficulty.value} (level {profile.adaptive_level})")
    click.echo(f"Attempts:        {profile.total_questions_attempted} ({profile.correct_answers} correct)")
    click.echo(f"Questions seen:  {answered.total_answered} "
               + " ".join(f"{k}={v}" for k, v in answered.by_difficulty.items()))
    click.echo(f"Accuracy:        {metrics.accuracy:.0f}%")
    click.echo(f"Consistency:     {metrics.consistency:.0f}")
    click.echo(f"Velocity:        {metrics.learning_velocity:+.0f}")
    click.echo(f"Time practiced:  {format_duration(profile.total_time_spent)} "
               f"(avg {format_average_time(profile.average_time_per_question)})")
    click.echo(f"Streak:          {profile.streak_count} day(s)")
    click.echo(f"Learning style:  {profile.learning_style.value}, "
               f"goal {profile.recommended_daily_goal}/day")
    if analytics.weak_areas:
        click.echo(f"Weak areas:      {', '.join(analytics.weak_areas)}")
    for topic, topic_stats in profile.topic_stats.items():
        done = " (completed)" if topic in profile.topics_completed else ""
        click.echo(f"  {topic}: mastery {topic_stats.mastery_level:.0f}%{done}")


@main.command("import-csv")
@click.argument("csv_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def import_csv(ctx: click.Context, csv_file) -> None:
    """Import a problem dataset from CSV_FILE."""
    with _session(ctx) as session:
        count = session.catalog.import_csv(csv_file)
    click.echo(f"Imported {count} questions.")


@main.command()
@click.option("--regenerate", is_flag=True, help="Generate a new personalized path now")
@click.pass_context
def path(ctx: click.Context, regenerate) -> None:
    """Show the current learning path."""
    with _session(ctx) as session:
        current = asyncio.run(session.refresh_learning_path(force=regenerate))
    if current is None:
        click.echo("No learning path selected.")
        return
    click.echo(f"{current.name}: {current.description}")
    for i, topic in enumerate(current.topics, start=1):
        click.echo(f"  {i}. {topic}")


@main.command()
@click.option("--rl", is_flag=True, help="Also forget the learned adaptation table")
@click.confirmation_option(prompt="Erase all progress?")
@click.pass_context
def reset(ctx: click.Context, rl) -> None:
    """Erase the learner profile."""
    with _session(ctx) as session:
        session.reset(rl=rl)
    click.echo("Progress reset.")
