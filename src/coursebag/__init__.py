"""Top-level package for coursebag."""

import sys
from typing import Annotated

import typer
from loguru import logger

app = typer.Typer(help="Command-line client for the course platform API")


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging")] = False,
) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "INFO")


# Import submodules at the end to register their commands
from coursebag import (  # noqa: E402
    api,  # noqa: F401
    auth,  # noqa: F401
    educator,  # noqa: F401
    learning,  # noqa: F401
)

if __name__ == "__main__":
    app()
