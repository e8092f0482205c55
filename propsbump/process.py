"""Invocation of the dotnet command line.

Commands run asynchronously with a timeout. A timeout of zero starts the process and
returns immediately without waiting for it.
"""

import asyncio
import logging
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)

DOTNET = "dotnet"


class ProcessError(Exception):
    """Base class for failed external commands."""

    def __init__(self, message: str, command: list[str], directory: Path | str):
        super().__init__(message)
        self.command = command
        self.directory = str(directory)


class CommandFailedError(ProcessError):
    """Raised when a command exits with a non-zero code."""

    def __init__(
        self,
        command: list[str],
        directory: Path | str,
        exit_code: int,
        stdout: str = "",
        stderr: str = "",
    ):
        super().__init__(
            f"Command: {' '.join(command)}\n"
            f"WorkingDirectory: {directory}\n"
            f"ExitCode: {exit_code}\n"
            f"Error: {stderr}\n"
            f"Output: {stdout}",
            command,
            directory,
        )
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr


class CommandTimeoutError(ProcessError):
    """Raised when a command does not finish within its timeout."""

    def __init__(self, command: list[str], directory: Path | str, timeout: float):
        super().__init__(
            f"Command: {' '.join(command)}\nTimed out after {timeout:g}s\nWorkingDirectory: {directory}",
            command,
            directory,
        )
        self.timeout = timeout


def output_lines(text: str) -> list[str]:
    """Split command output into lines, dropping blank ones."""
    return [line for line in text.splitlines() if line.strip()]


async def run_command(command: list[str], directory: Path | str, timeout: float) -> list[str]:
    """Run a command and return its non-blank stdout lines.

    Args:
        command: Program and arguments
        directory: Working directory
        timeout: Seconds to wait; 0 starts the command without waiting

    Returns:
        Stdout lines, empty for fire-and-forget commands

    Raises:
        CommandTimeoutError: If the command outlives its timeout (it is killed)
        CommandFailedError: If the command exits with a non-zero code
    """
    logger.info("    %s", " ".join(command))

    if timeout == 0:
        subprocess.Popen(
            command,
            cwd=directory,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
        return []

    process = await asyncio.create_subprocess_exec(
        *command,
        cwd=directory,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        raise CommandTimeoutError(command, directory, timeout) from None

    out = stdout.decode("utf-8", errors="replace")
    if process.returncode != 0:
        raise CommandFailedError(
            command,
            directory,
            process.returncode,
            stdout=out,
            stderr=stderr.decode("utf-8", errors="replace"),
        )
    return output_lines(out)


async def run_dotnet(*args: str, directory: Path | str, timeout: float) -> list[str]:
    """Run ``dotnet`` with the given arguments."""
    return await run_command([DOTNET, *args], directory, timeout)
