"""
Pako exception hierarchy.

Every error in the system inherits from PakoError.
Each subsystem has its own error class for targeted catching.

Usage:
    try:
        times = parse_time_of_day_list(raw)
    except TimeFormatError as e:
        # Reject the command definition at load time
    except PakoError as e:
        # Handle any Pako error
"""


class PakoError(Exception):
    """Base exception for all Pako errors."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


# ━━━ Configuration & definitions ━━━


class ConfigError(PakoError):
    """Configuration is invalid, missing, or malformed."""

    pass


class TimeFormatError(PakoError):
    """A time-of-day or duration string is malformed."""

    def __init__(self, message: str, value: str = "", details: dict | None = None):
        self.value = value
        super().__init__(message, details)


class CommandLoadError(PakoError):
    """A command definition file could not be loaded."""

    def __init__(self, message: str, path: str = "", details: dict | None = None):
        self.path = path
        super().__init__(message, details)


class TemplateError(PakoError):
    """A command template references an unknown placeholder."""

    pass


# ━━━ Runtime ━━━


class ArgumentValidationError(PakoError):
    """User input rejected for the argument currently being collected."""

    def __init__(self, message: str, argument: str = "", details: dict | None = None):
        self.argument = argument
        super().__init__(message, details)


class ExecutionError(PakoError):
    """A command failed while being executed for a chat."""

    def __init__(
        self,
        message: str,
        command: str = "",
        chat_id: int | None = None,
        details: dict | None = None,
    ):
        self.command = command
        self.chat_id = chat_id
        super().__init__(message, details)


class SchedulerError(PakoError):
    """Scheduler lifecycle misuse (e.g. starting it twice)."""

    pass


class ShellError(PakoError):
    """Shell process failure — spawn errors, non-zero exit."""

    def __init__(self, message: str, exit_code: int | None = None, details: dict | None = None):
        self.exit_code = exit_code
        super().__init__(message, details)


class ShellTimeoutError(ShellError):
    """Shell process exceeded its timeout and was killed."""

    pass


class StorageError(PakoError):
    """Storage backend failure — database errors, corruption, etc."""

    pass


class TransportError(PakoError):
    """Telegram Bot API request failed."""

    def __init__(self, message: str, method: str = "", details: dict | None = None):
        self.method = method
        super().__init__(message, details)
