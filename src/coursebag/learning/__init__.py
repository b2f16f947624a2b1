from pathlib import Path
from typing import Annotated

import typer
from loguru import logger

from coursebag import app as main_app
from coursebag.api import BaseUrlOption, ConfigOption, connect, echo_json, fail
from coursebag.api.client import unwrap_data
from coursebag.api.errors import ApiError
from coursebag.sources import CertificateData

from .certificate import CertificateNotEligibleError
from .player import LessonPlayer, ProgressionError

# Create a local Typer app for learner commands
app = typer.Typer(help="Follow courses, track progress and collect certificates")

CourseArgument = Annotated[str, typer.Argument(help="Course ID")]


@app.command()
def outline(course: CourseArgument, base_url: BaseUrlOption = None, config: ConfigOption = None) -> None:
    """List the lessons of a course, marking the completed ones."""
    with connect(base_url, config) as client:
        try:
            player = LessonPlayer(client, course).load()
        except (ApiError, ProgressionError) as e:
            fail(e)
    typer.echo(player.course.get("title", course))
    for section, lessons in player.outline.by_section().items():
        typer.echo(f"[{section}]")
        for lesson in lessons:
            done = player.progress is not None and player.progress.is_completed(lesson.lesson_id)
            typer.echo(f"  {'x' if done else ' '} {lesson}")
    if player.progress is not None:
        typer.echo(f"Progress: {player.outline.progress_percentage(player.progress):.0f}%")


@app.command()
def resume(course: CourseArgument, base_url: BaseUrlOption = None, config: ConfigOption = None) -> None:
    """Show the lesson to continue with."""
    with connect(base_url, config) as client:
        try:
            player = LessonPlayer(client, course).load()
        except (ApiError, ProgressionError) as e:
            fail(e)
    lesson = player.resume()
    if lesson is None:
        typer.echo("This course has no lessons yet.")
        return
    kind = player.outline.suggested_kind(lesson)
    typer.echo(f"Next: {lesson} [{kind.value}]")


@app.command()
def enroll(course: CourseArgument, base_url: BaseUrlOption = None, config: ConfigOption = None) -> None:
    """Request enrollment in a course."""
    with connect(base_url, config) as client:
        try:
            result = LessonPlayer(client, course).enroll()
        except (ApiError, ProgressionError) as e:
            fail(e)
    logger.debug(f"Enrollment response: {result}")
    typer.echo("Enrollment requested.")


@app.command("certificate")
def request_certificate(course: CourseArgument, base_url: BaseUrlOption = None, config: ConfigOption = None) -> None:
    """Request the certificate for a finished course."""
    with connect(base_url, config) as client:
        try:
            player = LessonPlayer(client, course).load()
            data = player.request_certificate()
        except CertificateNotEligibleError as e:
            typer.echo(str(e), err=True)
            raise typer.Exit(code=1)
        except (ApiError, ProgressionError) as e:
            fail(e)
    echo_json(data)


@app.command()
def certificates(
    output: Annotated[Path | None, typer.Option(help="Write the list to this CSV file")] = None,
    base_url: BaseUrlOption = None,
    config: ConfigOption = None,
) -> None:
    """List the certificates issued to the logged-in user."""
    with connect(base_url, config) as client:
        try:
            source = CertificateData.fetch(client)
        except (ApiError, ValueError) as e:
            fail(e)
    if output is not None:
        source.to_csv(output)
        typer.echo(f"Wrote {len(source.data)} certificates to {output}")
    elif source.data.empty:
        typer.echo("No certificates yet.")
    else:
        typer.echo(source.data.to_string(index=False))


@app.command()
def verify(
    certificate_id: Annotated[str, typer.Argument(help="Certificate ID")],
    base_url: BaseUrlOption = None,
    config: ConfigOption = None,
) -> None:
    """Check that a certificate ID is genuine."""
    with connect(base_url, config) as client:
        try:
            data = unwrap_data(client.get(f"/certificates/{certificate_id}/verify"))
        except ApiError as e:
            fail(e)
    echo_json(data)


# Register the learning app as a subcommand with the main app
main_app.add_typer(app, name="learn")
