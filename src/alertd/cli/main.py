# src/alertd/cli/main.py

"""
Main CLI entry point for alertd using Click.
Handles global options like logging level.
"""

from importlib.metadata import PackageNotFoundError, version

import click
import structlog

from alertd.cli.config_cmds import config_cli
from alertd.cli.serve_cmds import serve_cli
from alertd.cli.test_cmds import test_rule_cli
from alertd.cli.utils import logging_options, setup_logging_from_context
from alertd.telemetry import StructLogger

try:
    __version__ = version("alertd")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"

log: StructLogger = structlog.get_logger("cli.main")


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(__version__, "-V", "--version", package_name="alertd")
@logging_options
@click.pass_context
def cli(
    ctx: click.Context,
    log_level: str | None,
    log_file: str | None,
    json_logs: bool | None,
):
    """
    alertd: ElastAlert process supervisor and rule tester.

    Runs the ElastAlert engine under supervision and validates rules on demand.
    Configuration precedence: CLI options > Environment Variables > Config File > Defaults.
    """
    ctx.ensure_object(dict)

    ctx.obj["LOG_LEVEL"] = log_level
    ctx.obj["LOG_FILE"] = log_file
    ctx.obj["JSON_LOGS"] = json_logs if json_logs is not None else False

    setup_logging_from_context(ctx, default_log_level="WARNING")
    log.debug(
        "Main CLI group initialized",
        log_level=log_level,
        log_file=log_file,
        json_logs=json_logs,
    )


cli.add_command(config_cli)
cli.add_command(serve_cli)
cli.add_command(test_rule_cli)

if __name__ == "__main__":
    cli()

# 🖥️⚙️
