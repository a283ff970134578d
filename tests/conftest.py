"""Pytest configuration and fixtures for ffsys tests.

The console output module binds its stream when the timer starts, so every
test re-points it at the stream pytest is currently capturing. Otherwise a
stream closed by an earlier test would be written to ("I/O operation on
closed file").
"""

import io
import re
import sys
import warnings
from pathlib import Path
from typing import Dict, Optional

import pytest

from ffsys import output
from ffsys.config import BuildEnvironment

if sys.version_info >= (3, 13):
    warnings.filterwarnings("ignore", category=ResourceWarning)

HOST = "x86_64-unknown-linux-gnu"

_SYMBOL_RE = re.compile(r'printf\("\[(\w+)\]%d%d')
_GATE_RE = re.compile(r'printf\("\[((\w+)_version_greater_than_(\d+)_(\d+))\]%d')


@pytest.fixture(autouse=True)
def _console_output():
    """Point console output at the current stdout and reset verbosity."""
    output.init_timer(sys.stdout)
    output.set_verbose(False)
    output.set_output_file(None)
    yield
    if sys.stdout.closed:
        sys.stdout = sys.__stdout__
    if sys.stderr.closed:
        sys.stderr = sys.__stderr__
    output.init_timer(sys.__stdout__)


def make_environment(tmp_path: Path, **overrides) -> BuildEnvironment:
    """BuildEnvironment for a native x86_64 Linux build rooted in ``tmp_path``."""
    values = dict(
        host=HOST,
        target=HOST,
        target_os="linux",
        target_arch="x86_64",
        target_env="gnu",
        host_os="linux",
        out_dir=tmp_path / "out",
    )
    values.update(overrides)
    if "features" in values:
        values["features"] = frozenset(values["features"])
    return BuildEnvironment(**values)


@pytest.fixture
def console():
    """Capture console output in a buffer."""
    buffer = io.StringIO()
    output.init_timer(buffer)
    return buffer


@pytest.fixture
def make_env(tmp_path):
    """Factory fixture: ``make_env(features={"build"}, target=...)``."""

    def factory(**overrides) -> BuildEnvironment:
        return make_environment(tmp_path, **overrides)

    return factory


class FakeCapabilityCompiler:
    """CapabilityCompiler that answers the probe without a C toolchain.

    Symbols not listed in ``symbols`` are reported as undefined ("00").
    Version comparisons are answered from ``versions`` (library -> (major, minor));
    libraries without a version compare as 0.0.
    """

    def __init__(
        self,
        symbols: Optional[Dict[str, str]] = None,
        versions: Optional[Dict[str, tuple]] = None,
    ):
        self.symbols = symbols or {}
        self.versions = versions or {}
        self.sources: list = []
        self.runs = 0

    def compile(self, source_text: str) -> Path:
        self.sources.append(source_text)
        return Path("check")

    def run(self, executable: Path) -> str:
        self.runs += 1
        source = self.sources[-1]
        lines = [f"[{name}]{self.symbols.get(name, '00')}" for name in _SYMBOL_RE.findall(source)]
        for name, lib, major, minor in _GATE_RE.findall(source):
            have_major, have_minor = self.versions.get(lib, (0, 0))
            crossed = have_major > int(major) or (have_major == int(major) and have_minor > int(minor))
            lines.append(f"[{name}]{int(crossed)}")
        return "\n".join(lines) + "\n"


@pytest.fixture
def fake_compiler():
    return FakeCapabilityCompiler(
        symbols={"FF_API_OLD_AVOPTIONS": "11", "FF_API_PIX_FMT": "01"},
        versions={"avcodec": (60, 31)},
    )
