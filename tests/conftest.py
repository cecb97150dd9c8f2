import asyncio
import signal
import threading
from collections.abc import Callable, Mapping
from pathlib import Path

import pytest
from attrs import define

from alertd.config import ElasticsearchConfig, EngineConfig, PathsConfig, ServerConfig
from alertd.protocols import CommandResult


class FakeProcess:
    """Stands in for asyncio.subprocess.Process; output and exit are driven by the test."""

    def __init__(self, pid: int, exit_on_signal: int | None = 0):
        self.pid = pid
        self.returncode: int | None = None
        self.stdout = asyncio.StreamReader()
        self.stderr = asyncio.StreamReader()
        self.signals: list[int] = []
        self.killed = False
        self.exit_on_signal = exit_on_signal
        self._exited = asyncio.Event()

    def write_stdout(self, data: bytes) -> None:
        self.stdout.feed_data(data)

    def write_stderr(self, data: bytes) -> None:
        self.stderr.feed_data(data)

    def exit(self, code: int) -> None:
        if self.returncode is not None:
            return
        self.stdout.feed_eof()
        self.stderr.feed_eof()
        self.returncode = code
        self._exited.set()

    async def wait(self) -> int:
        await self._exited.wait()
        return self.returncode

    def send_signal(self, sig: int) -> None:
        self.signals.append(sig)
        if sig == signal.SIGINT and self.exit_on_signal is not None:
            self.exit(self.exit_on_signal)

    def kill(self) -> None:
        self.killed = True
        self.exit(-9)


@define
class SpawnCall:
    argv: list[str]
    cwd: Path
    env: Mapping[str, str] | None


class FakeSpawner:
    """Records spawn requests and hands out FakeProcess objects."""

    def __init__(
        self,
        sync_result: CommandResult | None = None,
        sync_error: Exception | None = None,
        spawn_error: Exception | None = None,
        on_spawn: Callable[[FakeProcess, SpawnCall], None] | None = None,
        exit_on_signal: int | None = 0,
        sync_gate: threading.Event | None = None,
    ):
        self.sync_result = sync_result or CommandResult(exit_code=0, stdout="", stderr="")
        self.sync_error = sync_error
        self.spawn_error = spawn_error
        self.on_spawn = on_spawn
        self.exit_on_signal = exit_on_signal
        self.sync_gate = sync_gate
        self.sync_calls: list[SpawnCall] = []
        self.calls: list[SpawnCall] = []
        self.processes: list[FakeProcess] = []

    async def spawn(self, argv, cwd, env=None):
        call = SpawnCall(argv=list(argv), cwd=cwd, env=env)
        self.calls.append(call)
        if self.spawn_error is not None:
            raise self.spawn_error
        process = FakeProcess(pid=4000 + len(self.processes), exit_on_signal=self.exit_on_signal)
        self.processes.append(process)
        if self.on_spawn is not None:
            self.on_spawn(process, call)
        return process

    def run_sync(self, argv, cwd):
        self.sync_calls.append(SpawnCall(argv=list(argv), cwd=cwd, env=None))
        if self.sync_gate is not None:
            self.sync_gate.wait(timeout=5.0)
        if self.sync_error is not None:
            raise self.sync_error
        return self.sync_result


def script_output(
    stdout: list[bytes] = (),
    stderr: list[bytes] = (),
    exit_code: int | None = 0,
    delay: float = 0.01,
) -> Callable[[FakeProcess, SpawnCall], None]:
    """on_spawn hook that writes the chunks one by one, then exits."""

    async def _emit(process: FakeProcess) -> None:
        for chunk in stderr:
            process.write_stderr(chunk)
            await asyncio.sleep(delay)
        for chunk in stdout:
            process.write_stdout(chunk)
            await asyncio.sleep(delay)
        if exit_code is not None:
            process.exit(exit_code)

    def _on_spawn(process: FakeProcess, call: SpawnCall) -> None:
        process.emitter = asyncio.get_running_loop().create_task(_emit(process))

    return _on_spawn


async def wait_for_spawn(spawner: FakeSpawner, count: int = 1, timeout: float = 2.0) -> FakeProcess:
    async def _poll():
        while len(spawner.processes) < count:
            await asyncio.sleep(0.005)

    await asyncio.wait_for(_poll(), timeout)
    return spawner.processes[count - 1]


@pytest.fixture
def engine_dir(tmp_path: Path) -> Path:
    path = tmp_path / "elastalert"
    path.mkdir()
    (path / "config.yaml").write_text("rules_folder: rules\nrun_every:\n  minutes: 1\nes_host: yaml-host\n")
    return path


@pytest.fixture
def server_config(tmp_path: Path, engine_dir: Path) -> ServerConfig:
    return ServerConfig(
        engine=EngineConfig(path=engine_dir, stop_timeout=0.05),
        paths=PathsConfig(data=tmp_path / "data"),
        elasticsearch=ElasticsearchConfig(
            host="es.local",
            port=9201,
            use_ssl=True,
            username="elastic",
            password="s3cret",
        ),
    )


@pytest.fixture
def spawner() -> FakeSpawner:
    return FakeSpawner()


@pytest.fixture
def make_spawner() -> type[FakeSpawner]:
    return FakeSpawner


@pytest.fixture
def scripted() -> Callable[..., Callable[[FakeProcess, SpawnCall], None]]:
    return script_output


@pytest.fixture
def spawned() -> Callable[..., object]:
    return wait_for_spawn
