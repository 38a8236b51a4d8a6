"""Utilities for loading the packaged demonstration data."""

from __future__ import annotations

import copy
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]

SEED_PATH = Path(__file__).resolve().parent / "seed.yaml"


@lru_cache
def _load_raw(path: Path) -> dict[str, list[dict[str, Any]]]:
    raw = path.read_text(encoding="utf-8")
    data = yaml.safe_load(raw) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path.name}: top level must be a mapping")

    for key, value in data.items():
        if not isinstance(value, list):
            raise ValueError(f"{path.name}: {key} must be a list of records")
    return data


def load_seed_data(path: Path | None = None) -> dict[str, list[dict[str, Any]]]:
    """Load the seed collections keyed by collection name.

    Returns a deep copy so callers may mutate the records freely.
    """
    return copy.deepcopy(_load_raw(path or SEED_PATH))
