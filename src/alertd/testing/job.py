#
# src/alertd/testing/job.py
#
"""
A single ephemeral rule test: its temporary rule file, options, subscriber and
captured output.
"""
import json
import secrets
from enum import Enum
from pathlib import Path
from typing import Any

import structlog
from attrs import define, field, mutable

from alertd.protocols import ProcessHandle, Subscriber
from alertd.telemetry import StructLogger
from alertd.testing.options import TestOptions

log: StructLogger = structlog.get_logger("testing.job")


class RuleTestStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"


@define(frozen=True, slots=True)
class RuleTestResult:
    """
    Outcome of one rule test. stdout is already joined per the output format.
    """
    status: RuleTestStatus
    exit_code: int | None
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.status is RuleTestStatus.SUCCESS


@mutable(slots=True)
class TestJob:
    """
    State of one rule test from temp file creation until cleanup.

    The rule file is removed at most once; later calls to remove_rule_file
    are no-ops.
    """
    __test__ = False

    job_id: str = field()
    rule_file: Path = field()
    options: TestOptions = field()
    subscriber: Subscriber | None = field(default=None)
    stdout_chunks: list[str] = field(factory=list)
    stderr_chunks: list[str] = field(factory=list)
    process: ProcessHandle | None = field(default=None)
    cancelled: bool = field(default=False)
    _removed: bool = field(default=False, init=False)

    @classmethod
    def create(
        cls,
        scratch_dir: Path,
        rule: str,
        options: TestOptions,
        subscriber: Subscriber | None = None,
    ) -> "TestJob":
        """
        Writes the rule to a fresh randomly named file in scratch_dir.

        Raises:
            OSError: If the directory or file cannot be written.
        """
        scratch_dir.mkdir(parents=True, exist_ok=True)
        job_id = secrets.token_hex(16)
        rule_file = scratch_dir / f"~{job_id}.temp"
        with rule_file.open("x", encoding="utf-8") as f:
            f.write(rule)
        log.debug("Wrote temporary rule file", job=job_id, rule_file=str(rule_file))
        return cls(job_id=job_id, rule_file=rule_file, options=options, subscriber=subscriber)

    def stdout_text(self) -> str:
        separator = "" if self.options.is_json else "\n"
        return separator.join(self.stdout_chunks)

    def stderr_text(self) -> str:
        return "\n".join(self.stderr_chunks)

    def result(self, status: RuleTestStatus, exit_code: int | None) -> RuleTestResult:
        return RuleTestResult(
            status=status,
            exit_code=exit_code,
            stdout=self.stdout_text(),
            stderr=self.stderr_text(),
        )

    async def publish(self, event: str, data: Any) -> None:
        """Pushes an event to the subscriber, unless there is none or the job was cancelled."""
        if self.subscriber is None or self.cancelled:
            return
        try:
            await self.subscriber.send(json.dumps({"event": event, "data": data}))
        except Exception as e:
            log.warning("Failed to push event to subscriber", job=self.job_id, event_type=event, error=str(e))

    def remove_rule_file(self) -> bool:
        """Deletes the temporary rule file. Returns False if it was already handled."""
        if self._removed:
            return False
        self._removed = True
        try:
            self.rule_file.unlink(missing_ok=True)
        except OSError as e:
            log.error(
                f"Failed to delete temporary test file {self.rule_file} with error:",
                job=self.job_id,
                error=str(e),
            )
        else:
            log.debug("Deleted temporary rule file", job=self.job_id, rule_file=str(self.rule_file))
        return True

# 🔼⚙️
