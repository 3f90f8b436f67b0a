"""Library for issuing commands using asyncio and returning the result.

The process runner is an interface so that callers can substitute a fake
implementation, for example in tests that should not depend on a real `helm`
binary being installed.
"""

import asyncio
from abc import ABC, abstractmethod
import logging
import shlex
import subprocess
from dataclasses import dataclass
import os

from .exceptions import CommandException

_LOGGER = logging.getLogger(__name__)


__all__ = [
    "Command",
    "ProcessResult",
    "ProcessRunner",
    "SubprocessRunner",
    "run",
]


@dataclass
class Command:
    """An instance of a command to run."""

    cmd: list[str]
    """Array of command line arguments."""

    exc: type[CommandException] = CommandException
    """Exception to throw in case of an error."""

    env: dict[str, str] | None = None
    """Environment variables layered on top of the current process environment."""

    @property
    def string(self) -> str:
        """Render the command as a single string."""
        return " ".join([shlex.quote(arg) for arg in self.cmd])

    def __str__(self) -> str:
        """Render as a debug string."""
        return self.string


@dataclass(frozen=True)
class ProcessResult:
    """The captured result of a finished process."""

    stdout: bytes
    stderr: bytes
    returncode: int


class ProcessRunner(ABC):
    """Interface for executing a command and capturing its output."""

    @abstractmethod
    async def run(self, cmd: Command, stdin: bytes | None = None) -> ProcessResult:
        """Execute the command and return the captured result."""


class SubprocessRunner(ProcessRunner):
    """Runs commands as local subprocesses."""

    def __init__(self, timeout: float | None = None) -> None:
        """Initialize SubprocessRunner.

        A timeout of `None` waits for the process indefinitely.
        """
        self._timeout = timeout

    async def run(self, cmd: Command, stdin: bytes | None = None) -> ProcessResult:
        """Run the command, returning the captured output."""
        _LOGGER.debug("Running command: %s", cmd)
        env = {
            **os.environ,
            **(cmd.env if cmd.env else {}),
        }
        proc = await asyncio.create_subprocess_shell(
            cmd.string,
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            env=env,
        )
        try:
            out, err = await asyncio.wait_for(proc.communicate(stdin), self._timeout)
        except asyncio.exceptions.TimeoutError as timeout_err:
            proc.kill()
            await proc.wait()
            raise cmd.exc(f"Command '{cmd}' timed out") from timeout_err
        return ProcessResult(
            stdout=out,
            stderr=err,
            returncode=proc.returncode if proc.returncode is not None else 0,
        )


async def run(
    cmd: Command, runner: ProcessRunner, stdin: bytes | None = None
) -> bytes:
    """Run the specified command and return stdout.

    A non-zero return code raises the exception type of the command.
    """
    result = await runner.run(cmd, stdin)
    if result.returncode:
        errors = [f"Command '{cmd}' failed with return code {result.returncode}"]
        if result.stdout:
            errors.append(result.stdout.decode("utf-8", errors="replace"))
        if result.stderr:
            errors.append(result.stderr.decode("utf-8", errors="replace"))
        _LOGGER.debug("\n".join(errors))
        raise cmd.exc("\n".join(errors))
    return result.stdout
