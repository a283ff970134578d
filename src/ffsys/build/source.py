"""FFmpeg source acquisition.

Fetches a pristine shallow checkout of the pinned release branch:

    git clone --depth=1 -b release/<major.minor> <url> ffmpeg-<major.minor>

Any previous checkout is removed first so a half-finished clone from an
interrupted run never leaks into the build.
"""

import logging
import shutil
from pathlib import Path
from typing import TYPE_CHECKING, List

from ..errors import AcquisitionError
from ..output import log_detail
from ..subprocess_utils import run_checked

if TYPE_CHECKING:
    from ffsys.config import BuildEnvironment

logger = logging.getLogger(__name__)


def release_branch(version: str) -> str:
    return f"release/{version}"


def clone_command(env: "BuildEnvironment") -> List[str]:
    """git argv cloning the pinned release into ``env.source_dir``.

    Windows hosts disable line ending conversion so the configure script
    stays runnable under sh.
    """
    cmd = ["git"]
    if env.host_os == "windows":
        cmd += ["-c", "core.autocrlf=false"]
    cmd += [
        "clone",
        "--depth=1",
        "-b",
        release_branch(env.version_string),
        env.source_url,
        env.source_dir.name,
    ]
    return cmd


def acquire_source(env: "BuildEnvironment") -> Path:
    """Fetch a fresh checkout of the pinned FFmpeg release.

    Args:
        env: Pipeline configuration (version, source URL, output directory)

    Returns:
        Path to the checkout

    Raises:
        AcquisitionError: If the old checkout cannot be removed or git fails
    """
    source_dir = env.source_dir
    if source_dir.exists():
        logger.debug("Removing previous checkout %s", source_dir)
        try:
            shutil.rmtree(source_dir)
        except OSError as e:
            raise AcquisitionError("Source cleanup", [str(source_dir)], reason=str(e)) from e

    try:
        env.out_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise AcquisitionError("Output directory creation", [str(env.out_dir)], reason=str(e)) from e

    log_detail(f"Cloning FFmpeg {release_branch(env.version_string)} from {env.source_url}")
    run_checked(clone_command(env), AcquisitionError, "FFmpeg source checkout", cwd=env.out_dir)
    return source_dir
