"""ffsys - FFmpeg build and capability probe support for binding generators.

This package resolves the target platform and cross toolchain, builds FFmpeg
from source under a declarative feature/license matrix, and probes the
installed headers to produce the boolean signal set consumed by a binding
generator.

Example:
    >>> from ffsys.config import BuildEnvironment
    >>> from ffsys.pipeline import run_pipeline
    >>>
    >>> env = BuildEnvironment.from_environ()
    >>> result = run_pipeline(env)
    >>> result.signals.is_set("avcodec")
    True
"""

__version__ = "0.3.0"

__all__ = ["__version__"]
