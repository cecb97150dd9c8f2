#
# src/alertd/protocols.py
#
"""
Defines the runtime protocols and result structures shared by the supervisor
and the rule test runner.
"""
import asyncio
from collections.abc import Mapping
from pathlib import Path
from typing import Protocol, runtime_checkable

from attrs import define


@define(frozen=True, slots=True)
class CommandResult:
    """
    Structured result of a command that was run to completion.
    """
    exit_code: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.exit_code == 0


@runtime_checkable
class ProcessHandle(Protocol):
    """
    The subset of asyncio.subprocess.Process that alertd relies on.
    """
    pid: int
    returncode: int | None
    stdout: asyncio.StreamReader | None
    stderr: asyncio.StreamReader | None

    async def wait(self) -> int: ...

    def send_signal(self, sig: int) -> None: ...

    def kill(self) -> None: ...


@runtime_checkable
class ProcessSpawner(Protocol):
    """
    Capability to start engine subprocesses.
    """
    async def spawn(
        self,
        argv: list[str],
        cwd: Path,
        env: Mapping[str, str] | None = None,
    ) -> ProcessHandle:
        """
        Starts a subprocess with piped stdout and stderr.

        Raises:
            OSError: If the executable cannot be started.
        """
        ...

    def run_sync(self, argv: list[str], cwd: Path) -> CommandResult:
        """
        Runs a command to completion, blocking the calling thread.

        Raises:
            OSError: If the executable cannot be started.
        """
        ...


@runtime_checkable
class Subscriber(Protocol):
    """
    A live channel that receives streamed test output.

    Closure of the channel (wait_closed returning) cancels the job it is
    attached to.
    """
    async def send(self, message: str) -> None: ...

    async def wait_closed(self) -> None: ...

# 🔼⚙️
