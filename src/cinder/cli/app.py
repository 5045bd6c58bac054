"""Main CLI application."""

from typing import Annotated

import typer
from pydantic import ValidationError

from cinder.cli.commands import doctor, sessions
from cinder.config import ConfigError, get_default_config, load_config_or_default
from cinder.logging import configure_logging

app = typer.Typer(
    name="cinder",
    help="Cinder - session history maintenance",
    no_args_is_help=True,
)


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Show debug logging (repair decisions, saves)",
        ),
    ] = False,
) -> None:
    """Cinder - session history maintenance."""
    try:
        config = load_config_or_default()
    except (ValidationError, ConfigError):
        # Reported by the command itself when it loads the config
        config = get_default_config()

    level = "DEBUG" if verbose else (config.logging.level or "WARNING")
    configure_logging(
        level=level,
        use_rich=True,
        log_to_file=config.logging.log_to_file,
        retention_days=config.logging.retention_days,
    )


sessions.register(app)
doctor.register(app)


if __name__ == "__main__":
    app()
