"""
data.py

Responsibility: Load the render data mapping from the command line argument.

Accepted forms:
- Inline JSON or YAML text, e.g. `{"Name": "John"}` or `Name: John`
- `@path/to/file.json` / `@path/to/file.yaml` to read the text from a file

JSON is a subset of YAML, so both go through `yaml.safe_load`.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml


class DataError(ValueError):
    pass


def load_data(raw: str) -> dict[str, Any]:
    """
    Parse `raw` into a top-level mapping. Empty input yields an empty mapping.
    """
    text = raw
    if raw.startswith("@"):
        path = Path(raw[1:])
        if not path.exists():
            raise DataError(f"Data file does not exist: {path}")
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise DataError(f"Failed reading data file: {path}") from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise DataError(f"Error parsing data: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise DataError("Data must be an object/mapping at the top level.")
    return data
