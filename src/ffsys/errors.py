"""Exception hierarchy for ffsys.

Every failure in the pipeline is fatal: nothing is retried and no partial
signal set is ever emitted. Errors raised for a failed external command carry
the command line and its captured output so the caller can show them
verbatim.
"""

from typing import Optional, Sequence


class FfsysError(Exception):
    """Base class for all ffsys errors."""

    pass


class CommandError(FfsysError):
    """Raised when an external command exits non-zero or cannot be started.

    Attributes:
        what: Short description of the step (e.g. "make install")
        command: Full argument vector
        returncode: Exit status, or None when the process never started
        stdout: Captured standard output
        stderr: Captured standard error
    """

    def __init__(
        self,
        what: str,
        command: Sequence[str],
        returncode: Optional[int] = None,
        stdout: str = "",
        stderr: str = "",
        reason: str = "",
    ):
        self.what = what
        self.command = [str(part) for part in command]
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.reason = reason
        super().__init__(self._format())

    def _format(self) -> str:
        if self.returncode is None:
            head = f"{self.what} could not be started: {self.reason or 'unknown error'}"
        else:
            head = f"{self.what} failed with exit code {self.returncode}"
        lines = [head, f"command: {' '.join(self.command)}"]
        if self.stdout:
            lines.append(f"stdout:\n{self.stdout.rstrip()}")
        if self.stderr:
            lines.append(f"stderr:\n{self.stderr.rstrip()}")
        return "\n".join(lines)


class PlatformResolutionError(FfsysError):
    """Raised when a required sysroot or cross toolchain path is missing."""

    pass


class ConfigurationError(FfsysError):
    """Raised for invalid pipeline configuration (environment or tables)."""

    pass


class ConfigureError(ConfigurationError, CommandError):
    """Raised when FFmpeg's ./configure rejects the generated flag set."""

    pass


class AcquisitionError(CommandError):
    """Raised when fetching the FFmpeg source tree fails."""

    pass


class CompilationError(CommandError):
    """Raised when the native build (make) fails."""

    pass


class InstallationError(CommandError):
    """Raised when installing FFmpeg into the private prefix fails."""

    pass


class ProbeCompileError(CommandError):
    """Raised when the generated probe program does not compile."""

    pass


class ProbeExecutionError(CommandError):
    """Raised when the compiled probe program exits non-zero."""

    pass


class ProbeProtocolError(FfsysError):
    """Raised when probe output does not match the expected tags."""

    pass


class DiscoveryError(FfsysError):
    """Raised when FFmpeg headers cannot be located for a non-source build."""

    pass
