"""
Shared test fixtures for marker generation tests.
"""
import json
import sys
from pathlib import Path

import numpy as np
import pytest

# Add src/ to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from dictionaries import dictionaries_from_mapping


def synthetic_codes(count: int, byte_count: int):
    """Deterministic byte codes; id 0 of a 2-byte table is [11, 5]."""
    return [
        [(i * 37 + 11 + k * (i * 54 + 250)) % 256 for k in range(byte_count)]
        for i in range(count)
    ]


@pytest.fixture
def dict_data():
    """Raw ``dict.json`` content: two ArUco tables and one AprilTag table."""
    return {
        "4x4_50": synthetic_codes(50, 2),
        "5x5_100": synthetic_codes(100, 4),
        "april_16h5": synthetic_codes(30, 2),
    }


@pytest.fixture
def catalog(dict_data):
    return dictionaries_from_mapping(dict_data)


@pytest.fixture
def dict_json_file(dict_data, tmp_path):
    path = tmp_path / "dict.json"
    path.write_text(json.dumps(dict_data), encoding="utf-8")
    return str(path)


@pytest.fixture
def id0_pattern():
    """Bordered 6x6 pattern of 4x4_50 id 0 (bytes 0x0B, 0x05)."""
    payload = np.array([
        [0, 0, 0, 0],
        [1, 0, 1, 1],
        [0, 0, 0, 0],
        [0, 1, 0, 1],
    ], dtype=np.uint8)
    return np.pad(payload, 1, mode="constant", constant_values=0)


@pytest.fixture
def checker_pattern():
    """3x3 pattern with 5 dark and 4 light cells."""
    return np.array([
        [0, 1, 0],
        [1, 0, 1],
        [0, 1, 0],
    ], dtype=np.uint8)
