"""FFmpeg build driver.

Runs acquisition, configure, compile and install strictly in sequence and
reports where the installed headers and static libraries are. The build is
skipped entirely when the install prefix already holds the base library,
which is the only incremental behaviour: changing features or the target
after a successful build requires removing the output directory.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Optional

import psutil

from ..errors import CompilationError, ConfigureError, InstallationError
from ..output import TimedLogger, log_detail
from ..platform.resolver import ResolvedPlatform
from ..subprocess_utils import run_checked
from ..tables import base_component
from .build_context import BuildConfiguration
from .configure import ConfigureCommandBuilder
from .source import acquire_source

if TYPE_CHECKING:
    from ffsys.config import BuildEnvironment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Installation:
    """An FFmpeg installation the probe and the link plan can use.

    Attributes:
        prefix: Install prefix
        include_dir: Directory holding libav*/ headers
        lib_dir: Directory holding the static libraries
        source_dir: Source checkout the installation was built from
        built: True when this run built FFmpeg, False when an earlier build was reused
    """

    prefix: Path
    include_dir: Path
    lib_dir: Path
    source_dir: Path
    built: bool


def installed_marker(prefix: Path) -> Path:
    """File whose existence means FFmpeg is already installed in ``prefix``."""
    return prefix / "lib" / f"lib{base_component().name}.a"


def default_jobs() -> int:
    """One make job per logical CPU."""
    return psutil.cpu_count(logical=True) or 1


class BuildDriver:
    """Acquires, configures, compiles and installs FFmpeg."""

    def __init__(
        self,
        env: "BuildEnvironment",
        platform: ResolvedPlatform,
        config: Optional[BuildConfiguration] = None,
    ):
        self.env = env
        self.platform = platform
        self.config = config or BuildConfiguration.from_environment(env)

    @property
    def prefix(self) -> Path:
        return self.env.install_prefix

    def installation(self, built: bool) -> Installation:
        return Installation(
            prefix=self.prefix,
            include_dir=self.prefix / "include",
            lib_dir=self.prefix / "lib",
            source_dir=self.env.source_dir,
            built=built,
        )

    def is_installed(self) -> bool:
        return installed_marker(self.prefix).exists()

    def ensure_installed(self) -> Installation:
        """Build and install FFmpeg unless a previous run already did.

        Returns:
            Installation describing the include and library directories

        Raises:
            AcquisitionError: If the source checkout fails
            ConfigureError: If configure rejects the flag set
            CompilationError: If make fails
            InstallationError: If make install fails
        """
        if self.is_installed():
            log_detail(f"FFmpeg already installed in {self.prefix}, skipping build")
            return self.installation(built=False)

        with TimedLogger(f"Fetching FFmpeg {self.env.version_string}"):
            source_dir = acquire_source(self.env)
        self.configure(source_dir)
        self.compile(source_dir)
        self.install(source_dir)
        return self.installation(built=True)

    def build_env(self, source_dir: Path) -> Optional[dict[str, str]]:
        """Environment for configure and make.

        On Windows hosts the source directory is appended to PATH and INCLUDE;
        elsewhere the inherited environment is used unchanged (None).
        """
        if self.env.host_os != "windows":
            return None
        environ = dict(os.environ)
        for key in ("PATH", "INCLUDE"):
            parts = [p for p in environ.get(key, "").split(os.pathsep) if p]
            parts.append(str(source_dir))
            environ[key] = os.pathsep.join(parts)
        return environ

    def configure(self, source_dir: Path) -> None:
        builder = ConfigureCommandBuilder(self.env, self.platform, self.config)
        script = source_dir / "configure"
        if not script.exists():
            raise ConfigureError("FFmpeg configure", [str(script)], reason=f"configure script not found in {source_dir}")

        if self.env.host_os == "windows":
            run_checked(
                ["sh", "-c", "echo ok"],
                ConfigureError,
                "sh (required for building FFmpeg on Windows)",
            )

        argv = builder.command(source_dir)
        with TimedLogger("Configuring FFmpeg") as timed:
            timed.detail(f"{len(argv)} arguments, profile {self.config.profile}")
            run_checked(argv, ConfigureError, "FFmpeg configure", cwd=source_dir, env=self.build_env(source_dir))

    def compile(self, source_dir: Path) -> None:
        jobs = self.env.jobs or default_jobs()
        with TimedLogger(f"Compiling FFmpeg (make -j {jobs})"):
            run_checked(
                ["make", "-j", str(jobs)],
                CompilationError,
                "FFmpeg build (make)",
                cwd=source_dir,
                env=self.build_env(source_dir),
            )

    def install(self, source_dir: Path) -> None:
        with TimedLogger(f"Installing FFmpeg into {self.prefix}"):
            run_checked(
                ["make", "install"],
                InstallationError,
                "FFmpeg install (make install)",
                cwd=source_dir,
                env=self.build_env(source_dir),
            )
