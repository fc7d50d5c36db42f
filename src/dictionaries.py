"""
Fiducial marker dictionary catalog.

Pattern sizes and marker counts for the ArUco / AprilTag families, plus the
loader for the byte-packed code table (``dict.json``: ``{name: [[byte, ...], ...]}``).
Used by marker_solids.patterns for bit unpacking.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DictionarySpec:
    """Static description of one marker dictionary."""

    name: str
    pattern_width: int  # Payload bits per row (without the dark ring)
    pattern_height: int
    marker_count: int

    @property
    def full_size(self) -> Tuple[int, int]:
        """(width, height) of the bordered pattern."""
        return (self.pattern_width + 2, self.pattern_height + 2)

    @property
    def max_id(self) -> int:
        return self.marker_count - 1

    @property
    def is_apriltag(self) -> bool:
        return self.name.startswith("april_")


def _square(name: str, size: int, count: int) -> DictionarySpec:
    return DictionarySpec(name=name, pattern_width=size, pattern_height=size, marker_count=count)


# Dictionaries shipped with the generator
DICTIONARY_SPECS: Dict[str, DictionarySpec] = {
    spec.name: spec
    for spec in [
        _square("4x4_50", 4, 50),
        _square("4x4_100", 4, 100),
        _square("4x4_250", 4, 250),
        _square("4x4_1000", 4, 1000),
        _square("5x5_50", 5, 50),
        _square("5x5_100", 5, 100),
        _square("5x5_250", 5, 250),
        _square("5x5_1000", 5, 1000),
        _square("6x6_50", 6, 50),
        _square("6x6_100", 6, 100),
        _square("6x6_250", 6, 250),
        _square("6x6_1000", 6, 1000),
        _square("7x7_50", 7, 50),
        _square("7x7_100", 7, 100),
        _square("7x7_250", 7, 250),
        _square("7x7_1000", 7, 1000),
        _square("aruco", 5, 1024),
        _square("mip_36h12", 6, 250),
        _square("april_16h5", 4, 30),
        _square("april_25h9", 5, 35),
        _square("april_36h10", 6, 2320),
        _square("april_36h11", 6, 587),
    ]
}

_SIZE_PREFIX = re.compile(r"^(\d+)x(\d+)_")


@dataclass(frozen=True)
class MarkerDictionary:
    """A loaded dictionary: its geometry plus one byte sequence per marker id."""

    spec: DictionarySpec
    codes: Tuple[Tuple[int, ...], ...]

    @property
    def name(self) -> str:
        return self.spec.name

    @property
    def max_id(self) -> int:
        # Loaded data wins over the catalog count
        return len(self.codes) - 1

    def has_id(self, marker_id: int) -> bool:
        return 0 <= marker_id < len(self.codes) and len(self.codes[marker_id]) > 0

    def code(self, marker_id: int) -> Optional[Tuple[int, ...]]:
        if not self.has_id(marker_id):
            return None
        return self.codes[marker_id]


DictionaryCatalog = Dict[str, MarkerDictionary]


def spec_for_name(name: str) -> Optional[DictionarySpec]:
    """Catalog entry for ``name``; unknown ``NxM_*`` names get their size from the prefix."""
    if name in DICTIONARY_SPECS:
        return DICTIONARY_SPECS[name]
    match = _SIZE_PREFIX.match(name)
    if match:
        return DictionarySpec(
            name=name,
            pattern_width=int(match.group(1)),
            pattern_height=int(match.group(2)),
            marker_count=0,
        )
    return None


def dictionaries_from_mapping(data: Mapping[str, Sequence[Sequence[int]]]) -> DictionaryCatalog:
    """Build a catalog from an already parsed ``{name: [[byte, ...], ...]}`` mapping."""
    catalog: DictionaryCatalog = {}
    for name, raw_codes in data.items():
        spec = spec_for_name(name)
        if spec is None:
            logger.warning("Skipping dictionary %s: unknown pattern size", name)
            continue
        codes = tuple(tuple(int(b) & 0xFF for b in code) for code in raw_codes)
        if spec.marker_count != len(codes):
            spec = DictionarySpec(
                name=spec.name,
                pattern_width=spec.pattern_width,
                pattern_height=spec.pattern_height,
                marker_count=len(codes),
            )
        catalog[name] = MarkerDictionary(spec=spec, codes=codes)
    logger.debug("Loaded %d marker dictionaries", len(catalog))
    return catalog


def load_dictionaries(path: Union[str, Path]) -> DictionaryCatalog:
    """Load a ``dict.json`` code table from disk."""
    path = Path(path)
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a JSON object of dictionaries")
    catalog = dictionaries_from_mapping(data)
    logger.info("Loaded dictionaries from %s: %s", path, ", ".join(sorted(catalog)))
    return catalog


def list_dictionaries(catalog: Optional[DictionaryCatalog] = None) -> List[str]:
    if catalog is not None:
        return sorted(catalog)
    return list(DICTIONARY_SPECS)
