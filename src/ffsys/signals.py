"""Signal emission - the only write boundary to the binding generator.

Signals are named booleans the binding generator uses for conditional
compilation. They come from three places:

- component selection: one signal per component (``avcodec``, ...)
- probe results: ``<symbol>`` and ``<symbol>_is_defined``
- version comparisons: ``<lib>_version_greater_than_<M>_<m>``, plus release
  labels (``ffmpeg_5_0``) read from the comparison just below the release

The universe lists every legal name, including those that are false or were
not evaluated for this build, so the consumer can declare them all.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence

from .output import log_warning
from .probe.capability import ProbeResult, VersionGateResult
from .tables import EraLabel, FeatureProbeSpec, LibraryComponent, VersionGateSpec, version_gate_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignalSet:
    """Evaluated signals plus the universe of legal names.

    Attributes:
        signals: Value of every signal evaluated for this build
        universe: Every name the consumer may test, evaluated or not
    """

    signals: Dict[str, bool] = field(default_factory=dict)
    universe: FrozenSet[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        unknown = set(self.signals) - self.universe
        if unknown:
            raise ValueError(f"Signals outside the declared universe: {sorted(unknown)}")

    def is_set(self, name: str) -> bool:
        """Value of a signal; names that were not evaluated are false."""
        return self.signals.get(name, False)

    def enabled(self) -> List[str]:
        return sorted(name for name, value in self.signals.items() if value)

    def to_dict(self) -> Dict[str, object]:
        return {
            "signals": {name: self.signals[name] for name in sorted(self.signals)},
            "universe": sorted(self.universe),
        }

    def to_json(self) -> str:
        """Deterministic JSON document (sorted keys, trailing newline)."""
        return json.dumps(self.to_dict(), indent=2, sort_keys=True) + "\n"

    def render_directives(self) -> List[str]:
        """Line-oriented form: ``check-cfg=<name>`` per legal name, ``cfg=<name>`` per true signal."""
        lines = [f"check-cfg={name}" for name in sorted(self.universe)]
        lines += [f"cfg={name}" for name in self.enabled()]
        return lines

    def write(self, path: Path) -> Path:
        """Write the JSON document to ``path``, creating parent directories."""
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.to_json(), encoding="utf-8")
        logger.debug("Wrote %d signals to %s", len(self.signals), path)
        return path


class SignalEmitter:
    """Merges component selection, probe results and version gates into a SignalSet.

    Args:
        components: Every known component
        specs: Every probe spec, including ones gated off for this build
        gates: Every version gate
        eras: Release labels
    """

    def __init__(
        self,
        components: Sequence[LibraryComponent],
        specs: Sequence[FeatureProbeSpec],
        gates: Sequence[VersionGateSpec],
        eras: Sequence[EraLabel] = (),
    ):
        self.components = list(components)
        self.specs = list(specs)
        self.gates = list(gates)
        self.eras = list(eras)

    def universe(self) -> FrozenSet[str]:
        names = {c.name for c in self.components}
        for spec in self.specs:
            names.add(spec.signal_name)
            names.add(spec.defined_signal)
        for gate in self.gates:
            names.update(version_gate_name(gate.library_id, major, minor) for major, minor in gate.pairs())
        names.update(era.label for era in self.eras)
        return frozenset(names)

    def emit(
        self,
        enabled_components: Iterable[str],
        probe_results: Iterable[ProbeResult] = (),
        gate_results: Iterable[VersionGateResult] = (),
    ) -> SignalSet:
        """Build the signal set for one build.

        Args:
            enabled_components: Names of selected components (base included)
            probe_results: Results of the symbols that were probed
            gate_results: Results of the version comparisons that were evaluated

        Returns:
            SignalSet whose universe covers every known name
        """
        enabled = frozenset(enabled_components)
        signals: Dict[str, bool] = {}

        for component in self.components:
            signals[component.name] = not component.optional or component.name in enabled

        for result in probe_results:
            signals[result.signal_name] = result.exists_as_nonzero
            signals[f"{result.signal_name}_is_defined"] = result.is_defined

        gates = {(g.library_id, g.major, g.minor): g.crossed for g in gate_results}
        for (lib, major, minor), crossed in gates.items():
            signals[version_gate_name(lib, major, minor)] = crossed

        signals.update(self.era_signals(gates))
        return SignalSet(signals=signals, universe=self.universe())

    def era_signals(self, gates: Dict[tuple, bool]) -> Dict[str, bool]:
        """Release labels, each read from the comparison just below its release version.

        A label listed more than once is true if any of its entries is.
        """
        values: Dict[str, bool] = {}
        for era in self.eras:
            major, minor = era.gate
            crossed: Optional[bool] = gates.get((era.library_id, major, minor))
            if crossed is None:
                logger.debug("No comparison for %s (%s %d.%d), treating as false", era.label, era.library_id, major, minor)
                crossed = False
            if era.label in values:
                log_warning(f"Release label {era.label} is defined more than once; combining its entries")
                values[era.label] = values[era.label] or crossed
            else:
                values[era.label] = crossed
        return values
