# src/alertd/runtime/supervisor.py

"""
Supervises the long-running ElastAlert process: index pre-flight, spawn,
output forwarding, graceful stop with forced-kill escalation, and exit
notification.
"""

import asyncio
import inspect
import signal
from collections.abc import Callable

import structlog
from attrs import define, field

from alertd.config import ServerConfig
from alertd.protocols import ProcessHandle, ProcessSpawner
from alertd.runtime.spawner import AsyncioProcessSpawner
from alertd.state import ProcessState, ProcessStatus
from alertd.telemetry import StructLogger

log: StructLogger = structlog.get_logger("runtime.supervisor")

ExitCallback = Callable[[int], object]

# Time allowed for the output forwarders to drain after the process exited.
OUTPUT_DRAIN_TIMEOUT = 1.0
STREAM_CHUNK_SIZE = 4096

_ACTIVE_STATES = (ProcessState.STARTING, ProcessState.READY, ProcessState.CLOSING)


def _check_exit_callback(callback: ExitCallback) -> None:
    try:
        signature = inspect.signature(callback)
    except (TypeError, ValueError):
        # No introspectable signature.
        return
    try:
        signature.bind(0)
    except TypeError as e:
        raise TypeError(f"Exit callback {callback!r} must accept the exit code as one argument") from e


@define(slots=True, eq=False)
class ExitSubscription:
    """Handle returned by ProcessSupervisor.on_exit; cancel() unregisters this registration only."""

    _registry: list["ExitSubscription"] = field(repr=False)
    callback: ExitCallback | None = field()
    active: bool = field(default=True)

    def cancel(self) -> None:
        if not self.active:
            return
        self.active = False
        for index, entry in enumerate(self._registry):
            if entry is self:
                del self._registry[index]
                break


class ProcessSupervisor:
    """Owns at most one running ElastAlert process and tracks its lifecycle state."""

    def __init__(
        self,
        config: ServerConfig,
        spawner: ProcessSpawner | None = None,
        name: str = "elastalert",
    ):
        self.engine = config.engine
        self.spawner: ProcessSpawner = spawner or AsyncioProcessSpawner()
        self.status = ProcessStatus(name=name)
        self._process: ProcessHandle | None = None
        self._exit_subscriptions: list[ExitSubscription] = []
        self._watch_task: asyncio.Task | None = None
        self._escalation_task: asyncio.Task | None = None
        log.debug("ProcessSupervisor initialized.", engine_path=str(self.engine.path))

    @property
    def state(self) -> ProcessState:
        return self.status.state

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process is not None else None

    @property
    def is_running(self) -> bool:
        return self._process is not None

    def on_exit(self, callback: ExitCallback | None) -> ExitSubscription:
        """
        Registers a callback invoked on every future process exit.

        The callback receives the exit code as its only positional argument.
        None is accepted and never invoked.

        Raises:
            TypeError: If the callback cannot be called with one argument.
        """
        if callback is not None:
            _check_exit_callback(callback)
        subscription = ExitSubscription(self._exit_subscriptions, callback)
        self._exit_subscriptions.append(subscription)
        return subscription

    async def start(self) -> None:
        """Start ElastAlert if it isn't already running."""
        if self._process is not None or self.state in _ACTIVE_STATES:
            log.warning("ElastAlert is already running!", state=self.state.name, pid=self.pid)
            return

        log.info("Starting ElastAlert", engine_path=str(self.engine.path))
        self.status.update_state(ProcessState.STARTING)

        argv = self.engine.module_argv(self.engine.run_module)
        try:
            await self._create_index()
            process = await self.spawner.spawn(argv, cwd=self.engine.path)
        except OSError as e:
            log.error("ElastAlert error", error=str(e), argv=argv, exc_info=True)
            self._process = None
            self.status.update_state(ProcessState.ERROR, f"Failed to start ElastAlert: {e}")
            return
        except asyncio.CancelledError:
            log.warning("ElastAlert start was cancelled before the spawn completed")
            self._process = None
            self.status.update_state(ProcessState.IDLE)
            raise
        except BaseException as e:
            log.error("ElastAlert start aborted", error=repr(e), argv=argv, exc_info=True)
            self._process = None
            self.status.update_state(ProcessState.ERROR, f"Failed to start ElastAlert: {e!r}")
            raise

        self._process = process
        log.info("Started ElastAlert", pid=process.pid)
        self.status.update_state(ProcessState.READY)
        self._watch_task = asyncio.create_task(self._watch(process), name=f"elastalert-watch-{process.pid}")

    def stop(self) -> None:
        """Stop ElastAlert if it is running. State settles once the process exits."""
        process = self._process
        if process is None:
            log.info("ElastAlert is not running")
            return

        log.info("Stopping ElastAlert", pid=process.pid)
        self.status.update_state(ProcessState.CLOSING)
        try:
            process.send_signal(signal.SIGINT)
        except ProcessLookupError:
            log.debug("ElastAlert already exited before SIGINT", pid=process.pid)
            return

        if self._escalation_task is None or self._escalation_task.done():
            self._escalation_task = asyncio.create_task(self._escalate(process))

    async def wait(self) -> int | None:
        """Waits until the current process has exited and been settled."""
        task = self._watch_task
        if task is None:
            return self.status.last_exit_code
        await asyncio.shield(task)
        return self.status.last_exit_code

    async def _create_index(self) -> None:
        """Runs the engine's index creation on a worker thread. Failure is never fatal."""
        argv = self.engine.module_argv(self.engine.index_module)
        log.info("Creating index")
        try:
            result = await asyncio.to_thread(self.spawner.run_sync, argv, self.engine.path)
        except OSError as e:
            log.error("Index create could not be started", error=str(e), argv=argv)
            log.warning("ElastAlert will start but might not be able to save its data!")
            return

        if result.stdout.strip():
            log.info("Index create output", output=result.stdout.rstrip())
        if result.stderr.strip():
            log.error("Index create error output", output=result.stderr.rstrip())

        if result.success:
            log.info(f"Index create exited with code {result.exit_code}")
        else:
            log.error(f"Index create exited with code {result.exit_code}")
            log.warning("ElastAlert will start but might not be able to save its data!")

    async def _watch(self, process: ProcessHandle) -> None:
        pid = process.pid
        forwarders = [
            asyncio.create_task(self._forward_output(process.stdout, "stdout", pid)),
            asyncio.create_task(self._forward_output(process.stderr, "stderr", pid)),
        ]
        try:
            exit_code = await process.wait()
            _, pending = await asyncio.wait(forwarders, timeout=OUTPUT_DRAIN_TIMEOUT)
            for task in pending:
                task.cancel()
        finally:
            for task in forwarders:
                if not task.done():
                    task.cancel()

        if self._escalation_task is not None and not self._escalation_task.done():
            self._escalation_task.cancel()
        if self._process is process:
            self._process = None

        if exit_code == 0:
            log.info(f"ElastAlert exited with code {exit_code}", pid=pid)
        else:
            log.error(f"ElastAlert exited with code {exit_code}", pid=pid)
        self.status.record_exit(exit_code)
        self._notify_exit(exit_code)

    async def _forward_output(self, stream: asyncio.StreamReader | None, stream_name: str, pid: int) -> None:
        if stream is None:
            return
        emit = log.info if stream_name == "stdout" else log.error
        while True:
            try:
                line = await stream.readline()
            except ValueError:
                # Line longer than the reader limit; the overlong part is dropped.
                line = await stream.read(STREAM_CHUNK_SIZE)
            if not line:
                break
            text = line.decode("utf-8", errors="replace").rstrip()
            if text:
                emit(text, pid=pid, stream=stream_name)

    async def _escalate(self, process: ProcessHandle) -> None:
        await asyncio.sleep(self.engine.stop_timeout)
        if process.returncode is None:
            log.warning(
                "ElastAlert ignored SIGINT, killing it",
                pid=process.pid,
                stop_timeout=self.engine.stop_timeout,
            )
            try:
                process.kill()
            except ProcessLookupError:
                pass

    def _notify_exit(self, exit_code: int) -> None:
        for subscription in list(self._exit_subscriptions):
            callback = subscription.callback
            if callback is None:
                continue
            try:
                callback(exit_code)
            except Exception:
                log.error("Exit callback raised", callback=repr(callback), exc_info=True)

# 🔼⚙️
