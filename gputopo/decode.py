"""Decoding of topology matrices from node annotations and files.

The annotation value is a JSON array of integer arrays, for example
``"[[-1,8,8,7],[8,-1,7,7],[8,7,-1,10],[7,7,10,-1]]"``.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml

from gputopo.errors import TopologyDecodeError
from gputopo.log_config import get_logger

logger = get_logger(__name__)


def _as_matrix(raw: Any) -> list[list[int]]:
    """Check decoded data is a list of integer lists.

    ``None`` decodes to an empty matrix, matching an explicit ``null``.
    """
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise TopologyDecodeError(
            f"topology must be an array of arrays, got {type(raw).__name__}"
        )
    matrix: list[list[int]] = []
    for i, row in enumerate(raw):
        if not isinstance(row, list):
            raise TopologyDecodeError(
                f"topology row {i} must be an array, got {type(row).__name__}"
            )
        for j, cell in enumerate(row):
            if isinstance(cell, bool) or not isinstance(cell, int):
                raise TopologyDecodeError(
                    f"topology cell [{i}][{j}] must be an integer, got {cell!r}"
                )
        matrix.append(list(row))
    return matrix


def decode_topology(text: str) -> list[list[int]]:
    """Decode a JSON topology annotation into an integer matrix.

    Args:
        text: Annotation value.

    Returns:
        Matrix rows. Shape is not checked here; see ``DeviceTopology``.

    Raises:
        TopologyDecodeError: If the text is not valid JSON or not a nested
            array of integers.
    """
    try:
        raw = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        raise TopologyDecodeError(f"failed to decode topology matrix: {e}") from e
    return _as_matrix(raw)


def encode_topology(matrix: list[list[int]]) -> str:
    """Serialize a matrix into the compact annotation form."""
    return json.dumps(matrix, separators=(",", ":"))


def load_matrix(source: str | Path) -> list[list[int]]:
    """Load a topology matrix from inline JSON text or a file.

    Files ending in ``.yml``/``.yaml`` are read with PyYAML; anything else is
    parsed as JSON. Strings that do not name an existing file are treated as
    inline JSON.

    Raises:
        TopologyDecodeError: If the content cannot be decoded.
    """
    path = Path(source)
    try:
        is_file = path.is_file()
    except OSError:
        # Inline JSON can exceed the platform's path length limit.
        is_file = False

    if not is_file:
        return decode_topology(str(source))

    logger.info(f"Loading topology matrix from {path}")
    text = path.read_text()
    if path.suffix.lower() in {".yml", ".yaml"}:
        try:
            raw = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise TopologyDecodeError(f"invalid YAML in {path}: {e}") from e
        if isinstance(raw, dict):
            raw = raw.get("topology")
        return _as_matrix(raw)
    return decode_topology(text)
