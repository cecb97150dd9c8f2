# src/alertd/cli/serve_cmds.py

import asyncio
import contextlib
import logging
import signal
import sys
from pathlib import Path

import click
import structlog

from alertd.cli.utils import config_path_option, logging_options, setup_logging_from_context
from alertd.config import ServerConfig, load_config, sync_engine_config
from alertd.exceptions import ConfigurationError
from alertd.runtime import ProcessSupervisor
from alertd.state import ProcessState
from alertd.telemetry import StructLogger

log: StructLogger = structlog.get_logger("cli.serve")


async def _handle_signal_async(sig: int, shutdown_event: asyncio.Event) -> None:
    signame = signal.Signals(sig).name
    log.warning("Received shutdown signal", signal=signame, signal_num=sig)
    if not shutdown_event.is_set():
        shutdown_event.set()
    else:
        log.warning("Shutdown already requested, signal ignored.")


async def serve(config: ServerConfig, shutdown_event: asyncio.Event) -> int:
    """
    Runs ElastAlert until a shutdown is requested or it exits on its own.

    Returns:
        0 after a requested shutdown or a clean engine exit, 1 if the engine
        failed.
    """
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, lambda s=sig: asyncio.create_task(_handle_signal_async(s, shutdown_event)))

    supervisor = ProcessSupervisor(config)
    engine_exited = asyncio.Event()
    supervisor.on_exit(lambda exit_code: engine_exited.set())

    await supervisor.start()
    if supervisor.state is ProcessState.ERROR:
        log.critical("ElastAlert could not be started", error=supervisor.status.error_message)
        return 1

    shutdown_wait = asyncio.create_task(shutdown_event.wait())
    exit_wait = asyncio.create_task(engine_exited.wait())
    try:
        await asyncio.wait({shutdown_wait, exit_wait}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        shutdown_wait.cancel()
        exit_wait.cancel()

    requested = shutdown_event.is_set()
    if supervisor.is_running:
        supervisor.stop()
        await supervisor.wait()

    if requested:
        log.info("ElastAlert stopped on request", exit_code=supervisor.status.last_exit_code)
        return 0
    return 0 if supervisor.state is ProcessState.IDLE else 1


def _run_headless(config: ServerConfig) -> int:
    try:
        return asyncio.run(serve(config, asyncio.Event()))
    except KeyboardInterrupt:
        log.warning("Shutdown initiated by KeyboardInterrupt (CTRL-C).")
        return 130
    except Exception:
        log.critical("Supervisor exited with an unhandled exception.", exc_info=True)
        return 1
    finally:
        logging.shutdown()


@click.command(name="serve")
@config_path_option
@logging_options
@click.pass_context
def serve_cli(ctx: click.Context, config_path: Path, **kwargs):
    """Run ElastAlert under supervision until interrupted."""
    setup_logging_from_context(
        ctx,
        local_log_level=kwargs.get("log_level"),
        local_log_file=kwargs.get("log_file"),
        local_json_logs=kwargs.get("json_logs"),
        headless_mode=True,
    )

    try:
        config = load_config(config_path)
        sync_engine_config(config)
    except ConfigurationError as e:
        log.error("Failed to load or validate configuration", error=str(e))
        click.echo(f"Error: Configuration problem in '{config_path}':\n{e}", err=True)
        ctx.exit(1)

    setup_logging_from_context(
        ctx,
        local_log_level=kwargs.get("log_level"),
        local_log_file=kwargs.get("log_file"),
        local_json_logs=kwargs.get("json_logs"),
        default_log_level=config.global_config.log_level,
        headless_mode=True,
    )
    log.info("Initializing serve command...", engine_path=str(config.engine.path))
    exit_code = _run_headless(config)

    log.info("'serve' command finished.", exit_code=exit_code)
    if exit_code != 0:
        sys.exit(exit_code)

# 🔼⚙️
