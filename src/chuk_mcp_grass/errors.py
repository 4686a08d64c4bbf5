"""
Exception taxonomy for GRASS orchestration.

"Feature unavailable" and "operation failed" are distinct:
ConfigUnavailableError means the engine is not usable at all, every other
GrassError means a specific request failed at a specific step.
I/O failures (staging, codec, resource file) are plain OSError.
"""

from .constants import ErrorMessages


class GrassError(Exception):
    """Base class for all GRASS orchestration errors."""


class ConfigUnavailableError(GrassError):
    """No usable engine executable or module binary."""


class WorkspaceError(GrassError):
    """Directory or location setup failed."""

    def __init__(self, message: str, step: str | None = None, exit_code: int | None = None) -> None:
        self.step = step
        self.exit_code = exit_code
        super().__init__(message)


class ExecutionError(GrassError):
    """An engine command returned a non-zero exit code."""

    def __init__(self, step: str, exit_code: int, message: str = "") -> None:
        self.step = step
        self.exit_code = exit_code
        self.message = message
        super().__init__(ErrorMessages.STEP_FAILED.format(step, exit_code, message))


class StepTimeoutError(GrassError):
    """The watchdog killed an engine command."""

    def __init__(self, step: str, timeout_s: float, result: object = None) -> None:
        self.step = step
        self.timeout_s = timeout_s
        self.result = result
        super().__init__(ErrorMessages.STEP_TIMEOUT.format(step, timeout_s))


class ResultMissingError(GrassError):
    """An engine command exited 0 but its expected output is absent."""

    def __init__(self, path: object) -> None:
        self.path = path
        super().__init__(ErrorMessages.RESULT_MISSING.format(path))
