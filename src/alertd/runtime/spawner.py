# src/alertd/runtime/spawner.py
"""
Default ProcessSpawner backed by asyncio.subprocess.
"""
import asyncio
import subprocess
import sys
from collections.abc import Mapping
from pathlib import Path

import structlog

from alertd.protocols import CommandResult, ProcessHandle
from alertd.telemetry import StructLogger

log: StructLogger = structlog.get_logger("runtime.spawner")

IS_WINDOWS = sys.platform == "win32"


class AsyncioProcessSpawner:
    """Starts engine subprocesses with piped output in their own session."""

    async def spawn(
        self,
        argv: list[str],
        cwd: Path,
        env: Mapping[str, str] | None = None,
    ) -> ProcessHandle:
        # Own session: a terminal CTRL-C only reaches the child through stop().
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=cwd,
            env=dict(env) if env is not None else None,
            start_new_session=not IS_WINDOWS,
        )
        log.debug("Spawned subprocess", pid=process.pid, executable=argv[0], cwd=str(cwd))
        return process

    def run_sync(self, argv: list[str], cwd: Path) -> CommandResult:
        completed = subprocess.run(
            argv,
            cwd=cwd,
            stdin=subprocess.DEVNULL,
            capture_output=True,
            text=True,
            errors="replace",
        )
        return CommandResult(
            exit_code=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )

# 🔼⚙️
