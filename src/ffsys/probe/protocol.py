"""Line protocol between the probe program and its parser.

Every value the probe prints is introduced by a tag, ``[name]``, followed
immediately by fixed-width digits:

    [FF_API_OLD_AVOPTIONS]01              value, is_defined
    [avcodec_version_greater_than_58_9]1  comparison result

Names are restricted to C identifiers, so no tag can occur inside another
tag; together with the uniqueness check this makes a search for the first
occurrence of a tag unambiguous.
"""

import re
from typing import Iterable

from ..errors import ProbeProtocolError

_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def tag(name: str) -> str:
    return f"[{name}]"


def validate_tags(names: Iterable[str]) -> list[str]:
    """Check that every tag name is a C identifier and unique.

    Args:
        names: Tag names in emission order

    Returns:
        The names as a list

    Raises:
        ProbeProtocolError: On an invalid or duplicate name
    """
    seen: set[str] = set()
    ordered = []
    for name in names:
        if not _NAME_RE.match(name):
            raise ProbeProtocolError(f"Probe tag name {name!r} is not a C identifier")
        if name in seen:
            raise ProbeProtocolError(f"Probe tag {tag(name)} is emitted more than once")
        seen.add(name)
        ordered.append(name)
    return ordered


def read_digits(output: str, name: str, width: int) -> str:
    """Return the ``width`` characters following ``[name]`` in the probe output.

    Raises:
        ProbeProtocolError: If the tag is missing or fewer than ``width``
            digits follow it
    """
    marker = tag(name)
    index = output.find(marker)
    if index == -1:
        raise ProbeProtocolError(f"Variable '{marker}' not found in probe output")
    start = index + len(marker)
    digits = output[start : start + width]
    if len(digits) != width or not digits.isdigit():
        raise ProbeProtocolError(f"Expected {width} digit(s) after '{marker}' in probe output, got {digits!r}")
    return digits


def is_set(digit: str) -> bool:
    """Any digit other than 0 means true."""
    return digit != "0"


def read_symbol(output: str, name: str) -> tuple[bool, bool]:
    """Read the (value, is_defined) pair of a probed symbol."""
    digits = read_digits(output, name, 2)
    return is_set(digits[0]), is_set(digits[1])


def read_flag(output: str, name: str) -> bool:
    """Read a single boolean, as printed for version comparisons."""
    return is_set(read_digits(output, name, 1))
