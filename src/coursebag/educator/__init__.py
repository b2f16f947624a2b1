from pathlib import Path
from typing import Annotated, List

import typer
from loguru import logger
from rich.progress import track

from coursebag import app as main_app
from coursebag.api import BaseUrlOption, ConfigOption, connect, fail
from coursebag.api.errors import ApiError

from .reports import ENROLLMENT_STATUSES, EnrollmentReport, set_enrollment_status

# Create a local Typer app for educator subcommands
app = typer.Typer(help="Enrollment reports and approvals for educators")


@app.command()
def enrollments(
    output: Annotated[Path | None, typer.Option(help="Write the report to this CSV file")] = None,
    summary: Annotated[bool, typer.Option(help="Report one row per course instead of per student")] = False,
    base_url: BaseUrlOption = None,
    config: ConfigOption = None,
) -> None:
    """Report the enrollments in your courses."""
    with connect(base_url, config) as client:
        try:
            report = EnrollmentReport.fetch(client)
        except (ApiError, ValueError) as e:
            fail(e)
    if output is not None:
        report.to_csv(output, summary=summary)
        typer.echo(f"Report saved to {output}")
        return
    df = report.summary() if summary else report.enrollments.data
    if df.empty:
        typer.echo("No enrollments found.")
    else:
        typer.echo(df.to_string(index=False))


@app.command("set-status")
def set_status(
    status: Annotated[str, typer.Argument(help=f"New status: {', '.join(ENROLLMENT_STATUSES)}")],
    enrollment_ids: Annotated[List[str], typer.Argument(help="Enrollment IDs to update")],
    base_url: BaseUrlOption = None,
    config: ConfigOption = None,
) -> None:
    """Approve, reject or reset one or more enrollment requests."""
    if status not in ENROLLMENT_STATUSES:
        raise typer.BadParameter(f"Status must be one of {', '.join(ENROLLMENT_STATUSES)}")
    failures = []
    with connect(base_url, config) as client:
        for enrollment_id in track(enrollment_ids, description="Updating enrollments..."):
            try:
                set_enrollment_status(client, enrollment_id, status)
            except ApiError as e:
                logger.error(f"Could not update enrollment {enrollment_id}: {e}")
                failures.append(enrollment_id)
    updated = len(enrollment_ids) - len(failures)
    typer.echo(f"Set {updated} enrollment(s) to {status}.")
    if failures:
        typer.echo(f"Failed: {', '.join(failures)}", err=True)
        raise typer.Exit(code=1)


# Register the educator app as a subcommand with the main app
main_app.add_typer(app, name="educator")
