# src/alertd/state.py
#
"""
Defines the lifecycle state of the supervised engine process.
"""

from datetime import UTC, datetime
from enum import Enum, auto

import structlog
from attrs import field, mutable

log: structlog.stdlib.BoundLogger = structlog.get_logger("state")


class ProcessState(Enum):
    """Enumeration of the lifecycle states of the long-running engine."""

    IDLE = auto()  # Not running, last exit (if any) was clean.
    STARTING = auto()  # Index pre-flight and spawn in progress.
    READY = auto()  # Spawned and running.
    CLOSING = auto()  # Interrupt delivered, waiting for exit.
    ERROR = auto()  # Spawn failed or the engine exited non-zero.


STATUS_EMOJI_MAP = {
    ProcessState.IDLE: "⏹️",
    ProcessState.STARTING: "🔄",
    ProcessState.READY: "▶️",
    ProcessState.CLOSING: "⏳",
    ProcessState.ERROR: "❌",
}


@mutable(slots=True)
class ProcessStatus:
    """
    Holds the current state of one supervised engine process.

    Mutable because the supervisor updates it from its exit handler.
    """

    name: str = field()
    state: ProcessState = field(default=ProcessState.IDLE)
    error_message: str | None = field(default=None)
    last_exit_code: int | None = field(default=None)
    last_change_time: datetime | None = field(default=None)
    display_status_emoji: str = field(default="❓")

    def __attrs_post_init__(self):
        self.display_status_emoji = STATUS_EMOJI_MAP.get(self.state, "❓")
        log.debug("Initialized process status", process=self.name, initial_state=self.state.name)

    def update_state(self, new_state: ProcessState, error_msg: str | None = None) -> None:
        """Updates the state and logs the transition, errors, or recovery."""
        old_state = self.state
        if old_state == new_state and new_state != ProcessState.ERROR:
            return

        self.state = new_state
        self.last_change_time = datetime.now(UTC)
        self.display_status_emoji = STATUS_EMOJI_MAP.get(new_state, "❓")
        log_func = log.debug

        if new_state == ProcessState.ERROR:
            self.error_message = error_msg or "Unknown error"
            log_func = log.warning
        elif old_state == ProcessState.ERROR:
            log.info("Process status recovered from ERROR", process=self.name, new_state=new_state.name)
            self.error_message = None

        log_func(
            "Process state changed",
            process=self.name,
            old_state=old_state.name,
            new_state=new_state.name,
            **({"error": self.error_message} if new_state == ProcessState.ERROR else {}),
        )

    def record_exit(self, exit_code: int) -> None:
        """Settles the state after the process exited."""
        self.last_exit_code = exit_code
        if exit_code == 0:
            self.update_state(ProcessState.IDLE)
        else:
            self.update_state(ProcessState.ERROR, f"Process exited with code {exit_code}")


# 🔼⚙️
