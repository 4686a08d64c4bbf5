"""
Process runner for engine commands.

Builds argument vectors with typed placeholder substitution and runs them
under a watchdog. Commands are never handed to a shell: every template
becomes exactly one argv element, so paths with spaces or metacharacters
survive intact.
"""

import logging
import os
import shlex
import signal
import subprocess
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from string import Template
from typing import Mapping

from ..constants import DEFAULT_TIMEOUT_S, ERROR_TAIL_LINES, SUCCESS_EXIT_CODE
from ..errors import ExecutionError, StepTimeoutError

logger = logging.getLogger(__name__)
engine_logger = logging.getLogger("chuk_mcp_grass.engine")

_POSIX = os.name == "posix"


class CommandLine:
    """
    Typed builder for a single engine command.

    Arguments are templates such as ``input=${file}``; placeholders are
    filled from keyword values passed to ``substitute()`` when the argument
    vector is built.
    """

    def __init__(self, executable: str | Path) -> None:
        self.executable = str(executable)
        self._arguments: list[str] = []
        self._values: dict[str, str] = {}

    def add_argument(self, template: str) -> "CommandLine":
        self._arguments.append(template)
        return self

    def add_arguments(self, *templates: str) -> "CommandLine":
        self._arguments.extend(templates)
        return self

    def substitute(self, **values: object) -> "CommandLine":
        self._values.update({key: _format_value(value) for key, value in values.items()})
        return self

    def to_argv(self) -> list[str]:
        """Build the argument vector.

        Raises:
            KeyError: If a template names a placeholder with no value
        """
        return [self.executable] + [
            Template(argument).substitute(self._values) for argument in self._arguments
        ]

    def __str__(self) -> str:
        return shlex.join(self.to_argv())


@dataclass(frozen=True)
class ProcessInvocation:
    """One fully-resolved command, constructed fresh for each run."""

    argv: tuple[str, ...]
    step: str
    timeout_s: float
    env: Mapping[str, str] | None = None
    cwd: Path | None = None
    capture: bool = False
    success_code: int = SUCCESS_EXIT_CODE

    @property
    def executable(self) -> str:
        return self.argv[0]

    def display(self) -> str:
        return shlex.join(self.argv)


@dataclass
class ProcessResult:
    """Outcome of a run. Timed-out results travel on StepTimeoutError."""

    exit_code: int
    output: str
    duration_s: float
    timed_out: bool = False
    command: list[str] = field(default_factory=list)


class ProcessRunner:
    """Run engine commands with a fixed watchdog timeout."""

    def __init__(self, timeout_s: float = DEFAULT_TIMEOUT_S) -> None:
        self.timeout_s = timeout_s

    def invocation(
        self,
        command: CommandLine,
        step: str,
        env: Mapping[str, str] | None = None,
        cwd: Path | None = None,
        capture: bool = False,
    ) -> ProcessInvocation:
        """Bind a command line to this runner's configuration."""
        return ProcessInvocation(
            argv=tuple(command.to_argv()),
            step=step,
            timeout_s=self.timeout_s,
            env=env,
            cwd=cwd,
            capture=capture,
        )

    def run(self, invocation: ProcessInvocation) -> ProcessResult:
        """
        Execute one command.

        Captured mode buffers the combined output and returns it; streamed
        mode forwards each line to the engine logger as it arrives.

        Raises:
            ExecutionError: Exit code differs from the expected success code
            StepTimeoutError: The watchdog killed the process
            OSError: The process could not be started
        """
        name = Path(invocation.executable).name
        logger.info(f"exec: {invocation.display()}")

        start = time.monotonic()
        try:
            process = subprocess.Popen(
                list(invocation.argv),
                cwd=str(invocation.cwd) if invocation.cwd is not None else None,
                env=dict(invocation.env) if invocation.env is not None else None,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
                start_new_session=_POSIX,
            )
        except OSError as e:
            logger.warning(f"{name}: could not start: {e}")
            raise

        expired = threading.Event()

        def _expire() -> None:
            expired.set()
            _kill(process)

        watchdog = threading.Timer(invocation.timeout_s, _expire)
        watchdog.daemon = True
        watchdog.start()

        captured: list[str] = []
        tail: deque[str] = deque(maxlen=ERROR_TAIL_LINES)
        try:
            assert process.stdout is not None
            for line in process.stdout:
                if invocation.capture:
                    captured.append(line)
                else:
                    engine_logger.info(f"{name}: {line.rstrip()}")
                tail.append(line)
            exit_code = process.wait()
        finally:
            watchdog.cancel()
            if process.poll() is None:
                _kill(process)
                process.wait()
            if process.stdout is not None:
                process.stdout.close()

        duration = time.monotonic() - start
        result = ProcessResult(
            exit_code=exit_code,
            output="".join(captured),
            duration_s=duration,
            timed_out=expired.is_set(),
            command=list(invocation.argv),
        )

        if result.timed_out:
            logger.warning(f"{name}: killed after {invocation.timeout_s:.0f}s")
            raise StepTimeoutError(invocation.step, invocation.timeout_s, result=result)

        if exit_code != invocation.success_code:
            message = "".join(tail).strip()
            logger.warning(f"{name}: exit code {exit_code}")
            raise ExecutionError(invocation.step, exit_code, message)

        logger.info(f"{name} finished in {duration:.2f}s")
        return result


def _format_value(value: object) -> str:
    if isinstance(value, float):
        return repr(value)
    return str(value)


def _kill(process: subprocess.Popen) -> None:
    """Kill the process and, on POSIX, every child in its session."""
    try:
        if _POSIX:
            os.killpg(process.pid, signal.SIGKILL)
        else:
            process.kill()
    except (ProcessLookupError, PermissionError) as e:
        logger.debug(f"kill {process.pid}: {e}")
