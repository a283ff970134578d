"""Subprocess utilities for running external build tools.

Every external tool ffsys touches (git, configure, make, the C compiler, the
probe executable, xcrun, pkg-config) is started through these wrappers so
that platform flags are applied consistently and failures turn into the
matching ``CommandError`` subclass with the captured output attached.
"""

import logging
import subprocess
import sys
from pathlib import Path
from typing import Any, Optional, Sequence, Type, Union

from .errors import CommandError
from .output import log_command

logger = logging.getLogger(__name__)

Command = Sequence[Union[str, Path]]


def get_subprocess_creation_flags() -> int:
    """Get platform-specific subprocess creation flags.

    Returns:
        - Windows: subprocess.CREATE_NO_WINDOW (prevents console window)
        - Other platforms: 0 (no special flags)
    """
    if sys.platform == "win32":
        return subprocess.CREATE_NO_WINDOW
    return 0


def safe_run(cmd: Command, **kwargs: Any) -> subprocess.CompletedProcess:
    """Execute subprocess.run with platform-specific flags.

    Automatically applies:
    - CREATE_NO_WINDOW on Windows (prevents console window)
    - stdin=DEVNULL (the native build must never wait on the terminal)

    Args:
        cmd: Command and arguments (same as subprocess.run)
        **kwargs: Additional arguments passed to subprocess.run

    Returns:
        CompletedProcess result from subprocess.run
    """
    default_flags = get_subprocess_creation_flags()

    if "creationflags" in kwargs:
        kwargs["creationflags"] = kwargs["creationflags"] | default_flags
    elif default_flags:
        kwargs["creationflags"] = default_flags

    if "stdin" not in kwargs:
        kwargs["stdin"] = subprocess.DEVNULL

    return subprocess.run([str(part) for part in cmd], **kwargs)


def run_checked(
    cmd: Command,
    error_cls: Type[CommandError],
    what: str,
    cwd: Optional[Path] = None,
    env: Optional[dict[str, str]] = None,
    capture: bool = True,
) -> subprocess.CompletedProcess:
    """Run a command and raise ``error_cls`` unless it exits with status 0.

    Args:
        cmd: Command and arguments
        error_cls: CommandError subclass describing the failed stage
        what: Short description of the step, used in the error message
        cwd: Working directory for the command
        env: Full environment for the command (None inherits ours)
        capture: Capture stdout/stderr as text; when False the output streams
            straight to the console and the error carries no output

    Returns:
        CompletedProcess with text stdout/stderr when captured

    Raises:
        error_cls: If the command cannot be started or exits non-zero
    """
    argv = [str(part) for part in cmd]
    log_command(argv)
    logger.debug("Running %s in %s", argv, cwd)

    kwargs: dict[str, Any] = {"cwd": str(cwd) if cwd else None, "env": env, "check": False}
    if capture:
        kwargs.update(capture_output=True, text=True, errors="replace")

    try:
        result = safe_run(argv, **kwargs)
    except OSError as e:
        raise error_cls(what, argv, reason=str(e)) from e

    if result.returncode != 0:
        raise error_cls(
            what,
            argv,
            returncode=result.returncode,
            stdout=(result.stdout or "") if capture else "",
            stderr=(result.stderr or "") if capture else "",
        )
    return result
