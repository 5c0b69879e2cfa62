"""Main CLI entry point for clone-n8n.

Parses the command line, loads settings, sets up logging and the session
log file, then hands over to :class:`~clone_n8n.pipeline.ClonePipeline`.
Failures surface as a red message, an optional hint and the exit code the
error carries.
"""

import logging
import sys

import click
import yaml
from rich.markup import escape

from clone_n8n import __version__
from clone_n8n.cli.styles import Messages, Styles, attach_session_console, detach_session_console, echo
from clone_n8n.errors import CloneError, PreconditionError
from clone_n8n.naming import derive_site
from clone_n8n.pipeline import ClonePipeline, resolve_base_dir, session_log_path
from clone_n8n.reporting import render_summary
from clone_n8n.utils.config import load_settings
from clone_n8n.utils.logger import attach_session_log, configure_logging, detach_session_log, get_logger

logger = get_logger("cli")

USAGE_EXIT_CODE = 1


class CloneCommand(click.Command):
    """Command that shows the full help on any usage error and exits with 1."""

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        try:
            return super().parse_args(ctx, args)
        except click.UsageError as e:
            click.echo(ctx.get_help(), err=True)
            click.echo(err=True)
            e.exit_code = USAGE_EXIT_CODE
            raise


def _print_error(error: CloneError) -> None:
    echo(Messages.error(escape(str(error))))
    if error.hint:
        echo()
        echo(f"[{Styles.WARNING}]💡 {escape(error.hint)}[/{Styles.WARNING}]")


@click.command(cls=CloneCommand, context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("infrastructure")
@click.argument("domain")
@click.argument("folder", required=False)
@click.option(
    "--clean",
    is_flag=True,
    help="Remove containers, network, site directory and archive of a previous clone first.",
)
@click.option(
    "--settings",
    "settings_path",
    type=click.Path(dir_okay=False),
    help="Settings file (default: $CLONE_N8N_CONFIG or ~/.config/clone-n8n/config.yml).",
)
@click.option("--verbose", "-v", is_flag=True, help="Show debug output.")
@click.version_option(version=__version__, prog_name="clone-n8n")
@click.pass_context
def cli(
    ctx: click.Context,
    infrastructure: str,
    domain: str,
    folder: str | None,
    clean: bool,
    settings_path: str | None,
    verbose: bool,
):
    """Clone a production n8n site into a local Docker environment.

    \b
    Arguments:
      INFRASTRUCTURE  Infrastructure name (e.g. dev-fi-01)
      DOMAIN          Production domain (e.g. ai.refine.digital)
      FOLDER          Local base folder (default: ~/ProjectFiles/n8n, '.' for current)

    \b
    Naming convention:
      Production:  ai.refine.digital
      Local:       local-ai.refine.digital
      Directory:   local-ai-refine-digital
      Containers:  local-ai-refine-digital-n8n-1, local-ai-refine-digital-nginx-1

    \b
    Examples:
      clone-n8n dev-fi-01 ai.refine.digital
      clone-n8n dev-fi-01 ai.refine.digital .
      clone-n8n dev-fi-01 ai.refine.digital ~/sites --clean
    """
    level = logging.DEBUG if verbose else logging.INFO
    configure_logging(level)

    session_handler = None
    try:
        try:
            settings = load_settings(settings_path)
        except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
            raise PreconditionError(f"Could not load settings: {e}") from e
        configure_logging(level, settings.logging_colors)

        site = derive_site(infrastructure, domain)
        base_dir = resolve_base_dir(folder, settings)

        log_file = session_log_path(base_dir)
        session_handler = attach_session_log(log_file)
        attach_session_console(log_file)
        logger.info(f"Log file: {escape(str(log_file))}")

        pipeline = ClonePipeline(
            site,
            base_dir,
            settings,
            clean=clean,
            log_file=log_file,
            folder=base_dir if folder is not None else None,
        )
        render_summary(pipeline.run())

    except CloneError as e:
        _print_error(e)
        ctx.exit(e.exit_code)
    except KeyboardInterrupt:
        echo(Messages.warning("Interrupted"))
        ctx.exit(130)
    finally:
        detach_session_console()
        if session_handler is not None:
            detach_session_log(session_handler)


def main():
    """Entry point for the clone-n8n CLI."""
    try:
        cli()
    except KeyboardInterrupt:
        click.echo("\nInterrupted", err=True)
        sys.exit(130)
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
