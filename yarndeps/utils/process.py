"""Thin wrapper around running external command line tools."""

import logging
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Union

from yarndeps.parsers.base import CommandError

logger = logging.getLogger("yarndeps.utils.process")


@dataclass(frozen=True)
class ProcessResult:
    """Captured outcome of a finished process."""

    stdout: str
    stderr: str
    returncode: int

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def executable_name(command: str) -> str:
    """Return the platform specific executable name of a Node.js tool."""
    if os.name == "nt" and not command.lower().endswith((".cmd", ".exe")):
        return f"{command}.cmd"
    return command


def run_command(
    cmd: Sequence[str],
    cwd: Optional[Union[str, Path]] = None,
    timeout: Optional[float] = None,
    check: bool = True,
) -> ProcessResult:
    """Run a command and capture its output.

    Args:
        cmd: Command and arguments.
        cwd: Working directory.
        timeout: Timeout in seconds, None for no limit.
        check: Raise on a non-zero exit status.

    Returns:
        ProcessResult: Captured output and exit status.

    Raises:
        CommandError: If the command cannot be started, times out, or exits
            with a non-zero status while ``check`` is set.
    """
    logger.debug("Running command: %s (cwd=%s)", " ".join(cmd), cwd)

    try:
        completed = subprocess.run(
            list(cmd),
            cwd=str(cwd) if cwd is not None else None,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
            check=False,
        )
    except FileNotFoundError as e:
        raise CommandError(f"Command not found: {cmd[0]}") from e
    except subprocess.TimeoutExpired as e:
        raise CommandError(f"Command timed out after {timeout}s: {' '.join(cmd)}") from e
    except OSError as e:
        raise CommandError(f"Cannot run {' '.join(cmd)}: {e}") from e

    result = ProcessResult(
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
        returncode=completed.returncode,
    )

    if check and not result.ok:
        logger.error("Command failed with exit code %d: %s", result.returncode, " ".join(cmd))
        raise CommandError(
            f"Command '{' '.join(cmd)}' failed with exit code {result.returncode}",
            returncode=result.returncode,
            stderr=result.stderr,
        )

    return result


__all__ = ["ProcessResult", "executable_name", "run_command"]
