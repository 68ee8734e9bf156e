"""Derivation path parsing for hdtree."""

from dataclasses import dataclass
from typing import Tuple

from ..constants import HARDENED_OFFSET, MAX_INDEX
from ..exceptions import InvalidPath

__all__ = ["PathStep", "DerivationPath", "parse_path"]

HARDENED_MARKERS = ("'", "h", "H", "p")
PUBLIC_SUFFIX = ".pub"


@dataclass(frozen=True)
class PathStep:
    """Single derivation step. ``index`` already carries the hardened bit."""

    index: int
    hardened: bool

    def __str__(self) -> str:
        if self.hardened:
            return f"{self.index & ~HARDENED_OFFSET}'"
        return str(self.index)


@dataclass(frozen=True)
class DerivationPath:
    """
    Parsed derivation path.

    Steps are applied left to right from the starting node. When
    ``force_public`` is set, the private key is dropped from the final node
    only.
    """

    steps: Tuple[PathStep, ...]
    force_public: bool = False

    def __len__(self) -> int:
        return len(self.steps)

    def __iter__(self):
        return iter(self.steps)

    def __str__(self) -> str:
        root = "M" if self.force_public else "m"
        return "/".join([root] + [str(step) for step in self.steps])


def _parse_segment(segment: str) -> PathStep:
    text = segment
    hardened = False

    if text.endswith(HARDENED_MARKERS):
        hardened = True
        text = text[:-1]
    if text.startswith("-"):
        hardened = True
        text = text[1:]

    if not (text.isascii() and text.isdigit()):
        raise InvalidPath(f"Invalid path segment: {segment!r}")

    index = int(text)
    if index > MAX_INDEX:
        raise InvalidPath(f"Path segment out of range: {segment!r}")
    if index >= HARDENED_OFFSET:
        hardened = True

    return PathStep(index | HARDENED_OFFSET if hardened else index, hardened)


def parse_path(path: str) -> DerivationPath:
    """
    Parse a derivation path string.

    Segments are '/'-separated integers. A segment is hardened when it ends
    in ', h, H or p, starts with '-', or is already >= 2^31. A leading m
    stands for the starting node; a leading M or a trailing ".pub" makes the
    final node public.

    Examples:
        "m/44'/0'/0'/0/0"   five steps, the first three hardened
        "1p/-5/2/1"         four steps, the first two hardened
        "0/0/458.pub"       three steps, final node public-only

    Args:
        path: Path string

    Returns:
        DerivationPath

    Raises:
        InvalidPath: If any segment is malformed
    """
    if not isinstance(path, str):
        raise InvalidPath(f"Path must be a string, got {type(path).__name__}")

    force_public = path.endswith(PUBLIC_SUFFIX)
    if force_public:
        path = path[:-len(PUBLIC_SUFFIX)]

    if not path:
        return DerivationPath((), force_public)

    parts = path.split("/")
    if parts[0] in ("m", "M"):
        force_public = force_public or parts[0] == "M"
        parts = parts[1:]

    steps = []
    for part in parts:
        if not part:
            raise InvalidPath(f"Empty segment in path: {path!r}")
        steps.append(_parse_segment(part))

    return DerivationPath(tuple(steps), force_public)
