#
# src/alertd/exceptions.py
#
"""
Custom exceptions for alertd.
"""


class AlertdError(Exception):
    """Base class for all alertd errors."""

    pass


class ConfigurationError(AlertdError):
    """Raised when configuration or request options are invalid or unreadable."""

    pass


class ProcessError(AlertdError):
    """Base class for errors concerning an engine subprocess."""

    def __init__(
        self,
        message: str,
        argv: list[str] | None = None,
        details: Exception | None = None,
    ):
        self.argv = argv
        self.details = details
        super().__init__(message)
        if details and hasattr(self, "add_note"):
            self.add_note(f"Original error: {type(details).__name__}: {details}")


class SpawnError(ProcessError):
    """The subprocess could not be started."""

    pass


class RuntimeExitError(ProcessError):
    """The subprocess started but exited with a non-zero code."""

    def __init__(self, message: str, exit_code: int, argv: list[str] | None = None):
        self.exit_code = exit_code
        super().__init__(message, argv=argv)


class RuleTestFailedError(RuntimeExitError):
    """A batch rule test exited non-zero. The message is the captured stderr."""

    pass


class FilesystemError(AlertdError):
    """Reading or writing a transient file failed."""

    def __init__(self, message: str, path: str | None = None, details: Exception | None = None):
        self.path = path
        self.details = details
        full_message = message
        if path:
            full_message += f" (Path: '{path}')"
        super().__init__(full_message)
        if details and hasattr(self, "add_note"):
            self.add_note(f"Original error: {type(details).__name__}: {details}")


# 🔼⚙️
