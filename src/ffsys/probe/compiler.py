"""Compiler protocol for the capability probe.

The probe program always runs on the build machine, so it is compiled with
the host compiler even when FFmpeg itself is cross compiled. The protocol
lets tests (and alternative toolchains) substitute their own compiler.
"""

import logging
import sys
from pathlib import Path
from typing import Protocol, Sequence, runtime_checkable

from ..errors import ProbeCompileError, ProbeExecutionError
from ..platform.toolchain import Compiler
from ..subprocess_utils import run_checked

logger = logging.getLogger(__name__)

SOURCE_NAME = "check.c"


def executable_name() -> str:
    return "check.exe" if sys.platform == "win32" else "check"


@runtime_checkable
class CapabilityCompiler(Protocol):
    """Protocol for compiling and running the generated probe program."""

    def compile(self, source_text: str) -> Path:
        """Compile the probe source and return the path of the executable.

        Raises:
            ProbeCompileError: If compilation fails
        """
        ...

    def run(self, executable: Path) -> str:
        """Run the probe executable and return its standard output.

        Raises:
            ProbeExecutionError: If the program exits non-zero
        """
        ...


class HostCompiler:
    """Compiles the probe with the host C compiler against the FFmpeg headers.

    Files live in ``work_dir`` (``check.c`` and ``check``/``check.exe``) and
    are overwritten on every run.
    """

    def __init__(self, compiler: Compiler, include_paths: Sequence[Path], work_dir: Path):
        self.compiler = compiler
        # the compiler runs inside work_dir
        self.include_paths = [Path(p).absolute() for p in include_paths]
        self.work_dir = Path(work_dir).absolute()

    @property
    def source_path(self) -> Path:
        return self.work_dir / SOURCE_NAME

    @property
    def executable_path(self) -> Path:
        return self.work_dir / executable_name()

    def compile_command(self) -> list[str]:
        cmd = self.compiler.command()
        for include in self.include_paths:
            cmd += ["-I", str(include)]
        cmd += ["-o", str(self.executable_path), SOURCE_NAME]
        return cmd

    def compile(self, source_text: str) -> Path:
        self.work_dir.mkdir(parents=True, exist_ok=True)
        self.source_path.write_text(source_text, encoding="utf-8")
        logger.debug("Wrote probe source %s (%d bytes)", self.source_path, len(source_text))
        run_checked(self.compile_command(), ProbeCompileError, "Probe compilation", cwd=self.work_dir)
        return self.executable_path

    def run(self, executable: Path) -> str:
        result = run_checked([str(executable)], ProbeExecutionError, f"Probe program {executable.name}", cwd=self.work_dir)
        return result.stdout
