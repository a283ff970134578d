"""Probe program generation.

The generated translation unit lets the C compiler answer two kinds of
questions about the installed headers:

- Is macro ``V`` defined, and is it non-zero? Each symbol gets a block
  that defines ``V`` as 0 when missing and records definedness in
  ``V_is_defined``.
- Is library X newer than major.minor? Each version gate prints the result
  of comparing ``LIBX_VERSION_MAJOR``/``LIBX_VERSION_MINOR`` against it.

Symbols and gates whose component is not selected are left out entirely,
so their headers do not have to exist.
"""

from typing import Iterable, List, Sequence, Tuple

from ..tables import FeatureProbeSpec, VersionGateSpec, version_gate_name
from .protocol import validate_tags

SYMBOL_BLOCK = """\
#ifndef {name}_is_defined
#ifndef {name}
#define {name} 0
#define {name}_is_defined 0
#else
#define {name}_is_defined 1
#endif
#endif
"""

SYMBOL_PRINT = '    printf("[{name}]%d%d\\n", ({name}) != 0, {name}_is_defined);\n'

GATE_PRINT = (
    '    printf("[{tag}]%d\\n", LIB{upper}_VERSION_MAJOR > {major} || '
    "(LIB{upper}_VERSION_MAJOR == {major} && LIB{upper}_VERSION_MINOR > {minor}));\n"
)


def version_header(library_id: str) -> str:
    return f"lib{library_id}/version.h"


class ProbeProgram:
    """The probe translation unit for one feature selection.

    Args:
        specs: Symbols to probe, in table order
        gates: Version gates to evaluate
        components: Names of selected components (base included)
    """

    def __init__(
        self,
        specs: Sequence[FeatureProbeSpec],
        gates: Sequence[VersionGateSpec],
        components: Iterable[str],
    ):
        self.components = frozenset(components)
        self.specs = [spec for spec in specs if spec.is_active(self.components)]
        self.gates = [gate for gate in gates if gate.library_id in self.components]
        validate_tags(self.tag_names())

    def gate_points(self) -> List[Tuple[str, int, int]]:
        """Every (library, major, minor) comparison, in emission order."""
        return [(gate.library_id, major, minor) for gate in self.gates for major, minor in gate.pairs()]

    def headers(self) -> List[str]:
        """Headers to include, deduplicated, in first-use order."""
        headers: List[str] = []
        for spec in self.specs:
            if spec.header not in headers:
                headers.append(spec.header)
        for gate in self.gates:
            header = version_header(gate.library_id)
            if header not in headers:
                headers.append(header)
        return headers

    def tag_names(self) -> List[str]:
        names = [spec.signal_name for spec in self.specs]
        names += [version_gate_name(lib, major, minor) for lib, major, minor in self.gate_points()]
        return names

    def render(self) -> str:
        """C source of the probe program."""
        parts = ["#include <stdio.h>\n"]
        parts += [f"#include <{header}>\n" for header in self.headers()]
        parts.append("\n")
        parts += [SYMBOL_BLOCK.format(name=spec.signal_name) for spec in self.specs]

        parts.append("\nint main(void)\n{\n")
        parts += [SYMBOL_PRINT.format(name=spec.signal_name) for spec in self.specs]
        for lib, major, minor in self.gate_points():
            parts.append(
                GATE_PRINT.format(
                    tag=version_gate_name(lib, major, minor),
                    upper=lib.upper(),
                    major=major,
                    minor=minor,
                )
            )
        parts.append("    return 0;\n}\n")
        return "".join(parts)
