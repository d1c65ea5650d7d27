"""Typer CLI entrypoint for assessment generation and scoring."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, List, Optional

import typer

from .config import read_settings
from .container import create_container
from .core import build_feedback_report, estimate_minutes, plan_mix, validate
from .errors import Result
from .logging import configure_logging
from .pipeline import EXAMPLE_POSTINGS, AssessmentLoader, OutputWriter, ResultLoader
from .usage import estimate_assessment_cost, format_cost

app = typer.Typer(help="Scenario-based skills assessment CLI.")


def _settings(config: Optional[Path], usage_log: Optional[Path]) -> dict[str, Any]:
    settings: dict[str, Any] = {}
    if config:
        try:
            settings = read_settings(config)
        except ValueError as exc:
            raise typer.BadParameter(str(exc), param_name="config") from exc
    if usage_log:
        settings["usage_log"] = str(usage_log)
    return settings


def _report_failure(result: Result) -> None:
    error = result.error
    typer.echo(f"Error [{error.code}]: {error.message}", err=True)
    raise typer.Exit(code=1)


def _echo_warnings(warnings: tuple[str, ...]) -> None:
    for warning in warnings:
        typer.echo(f"warning: {warning}", err=True)


@app.command()
def generate(
    job: Path = typer.Option(..., exists=True, readable=True, dir_okay=False, help="Job posting (txt, md or pdf)."),
    output: Path = typer.Option(..., dir_okay=False, resolve_path=True, help="Output assessment JSON path."),
    company: Optional[str] = typer.Option(None, help="Company name, if the posting does not make it obvious."),
    role_title: Optional[str] = typer.Option(None, help="Override the extracted role title."),
    questions: Optional[int] = typer.Option(None, min=1, max=50, help="Number of questions."),
    difficulty: Optional[str] = typer.Option(None, help="standard, challenging or senior."),
    focus: Optional[List[str]] = typer.Option(None, help="Focus area; repeat for several."),
    config: Optional[Path] = typer.Option(None, exists=True, readable=True, dir_okay=False, help="YAML config path."),
    log_level: str = typer.Option("INFO", help="Log level for structured logging."),
    usage_log: Optional[Path] = typer.Option(None, dir_okay=False, help="Usage log output (JSONL)."),
) -> None:
    """Generate an assessment from a job posting."""
    settings = _settings(config, usage_log)
    configure_logging(log_level)

    container = create_container(settings=settings)
    pipeline = container.pipeline()

    result = asyncio.run(
        pipeline.run_generate(
            job_path=job,
            output_path=output,
            company_name=company,
            role_title=role_title,
            question_count=questions,
            difficulty=difficulty,
            focus_areas=focus or None,
        )
    )
    if not result.ok:
        _report_failure(result)

    _echo_warnings(result.warnings)
    assessment = result.data
    typer.echo(
        f"Generated {len(assessment.questions)} questions (~{assessment.estimated_minutes} min). "
        f"Assessment saved to {output}."
    )
    cost = container.usage_tracker().total_cost(assessment.id)
    if cost:
        typer.echo(f"Estimated spend: {format_cost(cost)}")


@app.command()
def example(
    role: str = typer.Option(..., help=f"One of: {', '.join(EXAMPLE_POSTINGS)}."),
    output: Path = typer.Option(..., dir_okay=False, resolve_path=True, help="Output assessment JSON path."),
    config: Optional[Path] = typer.Option(None, exists=True, readable=True, dir_okay=False, help="YAML config path."),
    log_level: str = typer.Option("INFO", help="Log level for structured logging."),
) -> None:
    """Generate an assessment from a bundled example posting."""
    settings = _settings(config, None)
    configure_logging(log_level)

    pipeline = create_container(settings=settings).pipeline()
    result = asyncio.run(pipeline.generate_example(role))
    if not result.ok:
        _report_failure(result)

    _echo_warnings(result.warnings)
    OutputWriter().write(output, {"assessment": result.data.model_dump(mode="json")})
    typer.echo(f"Example {role} assessment saved to {output}.")


@app.command()
def score(
    assessment: Path = typer.Option(..., exists=True, readable=True, dir_okay=False, help="Assessment JSON path."),
    responses: Path = typer.Option(..., exists=True, readable=True, dir_okay=False, help="Responses JSON path."),
    output: Path = typer.Option(..., dir_okay=False, resolve_path=True, help="Output result JSON path."),
    report: Optional[Path] = typer.Option(None, dir_okay=False, help="Markdown feedback report path."),
    config: Optional[Path] = typer.Option(None, exists=True, readable=True, dir_okay=False, help="YAML config path."),
    log_level: str = typer.Option("INFO", help="Log level for structured logging."),
    usage_log: Optional[Path] = typer.Option(None, dir_okay=False, help="Usage log output (JSONL)."),
) -> None:
    """Score a candidate's responses against an assessment."""
    settings = _settings(config, usage_log)
    configure_logging(log_level)

    pipeline = create_container(settings=settings).pipeline()
    result = asyncio.run(
        pipeline.run_score(
            assessment_path=assessment,
            responses_path=responses,
            output_path=output,
            report_path=report,
        )
    )
    typer.echo(f"Overall score {result.overall_score}/100 ({result.tier}). Result saved to {output}.")


@app.command("validate")
def validate_command(
    assessment: Path = typer.Option(..., exists=True, readable=True, dir_okay=False, help="Assessment JSON path."),
) -> None:
    """Run quality checks over a saved assessment."""
    try:
        loaded = AssessmentLoader().load(assessment)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_name="assessment") from exc

    checks = validate(loaded)
    if checks.valid:
        typer.echo("Assessment passed all quality checks.")
        return
    for issue in checks.issues:
        typer.echo(issue)
    raise typer.Exit(code=1)


@app.command("plan-mix")
def plan_mix_command(
    category: str = typer.Option("general", help="Role category."),
    questions: int = typer.Option(8, min=1, help="Number of questions."),
) -> None:
    """Show the archetype allocation and estimated duration for a role category."""
    mix = plan_mix(category, questions)
    for archetype, count in mix.items():
        typer.echo(f"{archetype}: {count}")
    typer.echo(f"Estimated minutes: {estimate_minutes(mix)}")


@app.command("estimate-cost")
def estimate_cost_command(
    questions: int = typer.Option(8, min=1, help="Number of questions."),
    model: str = typer.Option("gpt-4o-mini", help="Model name used for pricing."),
) -> None:
    """Estimate the completion spend for one generated and scored assessment."""
    estimate = estimate_assessment_cost(questions, model)
    typer.echo(f"Research: {format_cost(estimate.research)}")
    typer.echo(f"Question generation: {format_cost(estimate.question_generation)}")
    typer.echo(f"Scoring: {format_cost(estimate.scoring)}")
    typer.echo(f"Summary: {format_cost(estimate.summary)}")
    typer.echo(f"Total: {format_cost(estimate.total)}")


@app.command("report")
def report_command(
    assessment: Path = typer.Option(..., exists=True, readable=True, dir_okay=False, help="Assessment JSON path."),
    result: Path = typer.Option(..., exists=True, readable=True, dir_okay=False, help="Result JSON path."),
    output: Optional[Path] = typer.Option(None, dir_okay=False, help="Write the report here instead of stdout."),
) -> None:
    """Render the markdown feedback report for a saved result."""
    loaded_assessment = AssessmentLoader().load(assessment)
    loaded_result = ResultLoader().load(result)
    markdown = build_feedback_report(loaded_result, loaded_assessment)
    if output is None:
        typer.echo(markdown)
    else:
        OutputWriter().write_text(output, markdown)
        typer.echo(f"Report saved to {output}.")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
