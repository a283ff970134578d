"""
Console progress for ffsys.

Progress lines carry the time elapsed since the pipeline started (MM:SS.cc),
which makes a slow FFmpeg configure or probe compile stand out in CI logs:

    00:00.02 ffsys FFmpeg pipeline v0.3.0
    00:00.03 [1/4] Resolving platform...
    00:00.03       Target: aarch64-linux-android (cross)
    00:00.05 [2/4] Building FFmpeg 8.0...
    00:41.77       Done (41.72s)

Phases are numbered ``[N/M]``; details under a phase are indented. External
commands are echoed with a ``$`` only in verbose mode. Internal diagnostics
that are not meant for the console go through ``logging`` instead.
"""

import sys
import time
from dataclasses import dataclass, field
from types import TracebackType
from typing import Optional, Sequence, TextIO

DETAIL_INDENT = 6


@dataclass
class _ConsoleState:
    stream: TextIO = field(default_factory=lambda: sys.stdout)
    started: Optional[float] = None
    verbose: bool = False
    mirror: Optional[TextIO] = None


_console = _ConsoleState()


def init_timer(output_stream: Optional[TextIO] = None) -> None:
    """
    Restart the elapsed-time clock.

    Args:
        output_stream: Stream progress is written to from now on (unchanged when None)
    """
    _console.started = time.monotonic()
    if output_stream is not None:
        _console.stream = output_stream


def set_verbose(verbose: bool) -> None:
    _console.verbose = verbose


def set_output_file(output_file: Optional[TextIO]) -> None:
    """Copy every progress line into ``output_file`` as well (None stops copying)."""
    _console.mirror = output_file


def get_elapsed() -> float:
    if _console.started is None:
        init_timer()
    return time.monotonic() - _console.started  # type: ignore[operator]


def format_timestamp() -> str:
    minutes, seconds = divmod(get_elapsed(), 60)
    return f"{int(minutes):02d}:{seconds:05.2f}"


def _emit(message: str, verbose_only: bool = False) -> None:
    if verbose_only and not _console.verbose:
        return
    line = f"{format_timestamp()} {message}\n"
    for target in (_console.stream, _console.mirror):
        if target is not None:
            target.write(line)
            target.flush()


def log(message: str, verbose_only: bool = False) -> None:
    _emit(message, verbose_only)


def log_phase(phase: int, total: int, message: str, verbose_only: bool = False) -> None:
    _emit(f"[{phase}/{total}] {message}", verbose_only)


def log_detail(message: str, indent: int = DETAIL_INDENT, verbose_only: bool = False) -> None:
    _emit(" " * indent + message, verbose_only)


def log_command(cmd: Sequence[str], verbose_only: bool = True) -> None:
    """Echo an external command line (verbose mode only unless ``verbose_only`` is False)."""
    _emit(" " * DETAIL_INDENT + "$ " + " ".join(str(part) for part in cmd), verbose_only)


def log_header(title: str, version: str) -> None:
    _emit(f"{title} v{version}")


def log_signal_summary(total: int, enabled: int, universe: int) -> None:
    """
    Report the size of the emitted signal set.

    Args:
        total: Signals that received a value
        enabled: Signals that are true
        universe: Legal signal names
    """
    log_detail(f"Signals: {enabled} set / {total} evaluated / {universe} declared")


def log_pipeline_complete(elapsed: float) -> None:
    _emit(f"Pipeline finished in {elapsed:.2f}s")


def log_error(message: str) -> None:
    _emit(f"ERROR: {message}")


def log_warning(message: str) -> None:
    _emit(f"WARNING: {message}")


class TimedLogger:
    """
    Announce a step, then report how long it took.

    Usage:
        with TimedLogger("Probing headers", phase=(3, 4)) as timed:
            timed.detail("82 symbols, 441 version gates")

    "Done (0.84s)" follows only when the block completes; an exception
    propagates with nothing further printed.
    """

    def __init__(self, operation: str, phase: Optional[tuple[int, int]] = None, verbose_only: bool = False):
        self.operation = operation
        self.phase = phase
        self.verbose_only = verbose_only
        self._t0 = 0.0

    def __enter__(self) -> "TimedLogger":
        self._t0 = time.monotonic()
        title = f"{self.operation}..."
        if self.phase is None:
            log(title, self.verbose_only)
        else:
            log_phase(*self.phase, title, verbose_only=self.verbose_only)
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> bool:
        if exc_type is None:
            self.detail(f"Done ({time.monotonic() - self._t0:.2f}s)")
        return False

    def detail(self, message: str) -> None:
        log_detail(message, verbose_only=self.verbose_only)
