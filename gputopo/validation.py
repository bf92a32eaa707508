"""Validation helpers for topology matrices and device sets."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from numbers import Integral
from typing import TYPE_CHECKING, Any

from gputopo.errors import TopologyError

if TYPE_CHECKING:  # pragma: no cover - import-time types only
    from gputopo.topology import Device


def validate_matrix(matrix: Sequence[Sequence[Any]]) -> list[list[int]]:
    """Check the shape of a topology matrix and return it as integer rows.

    Args:
        matrix: Sequence of rows of link-type codes.

    Returns:
        Copy of the matrix with every cell converted to ``int``.

    Raises:
        TopologyError: If the matrix has no rows, rows of different lengths,
            or cells that are not integers.
    """
    if matrix is None or len(matrix) == 0:
        raise TopologyError("no devices provided")

    try:
        widths = {len(row) for row in matrix}
    except TypeError as e:
        raise TopologyError("invalid device list: rows must be sequences") from e
    if len(widths) != 1:
        raise TopologyError(
            f"invalid device list: rows have different lengths {sorted(widths)}"
        )

    rows: list[list[int]] = []
    for i, row in enumerate(matrix):
        cells: list[int] = []
        for j, cell in enumerate(row):
            # bool is an int subclass but never a valid link code
            if isinstance(cell, bool) or not isinstance(cell, Integral):
                raise TopologyError(
                    f"invalid link code at [{i}][{j}]: {cell!r} is not an integer"
                )
            cells.append(int(cell))
        rows.append(cells)
    return rows


def missing_links(devices: Iterable["Device"]) -> list[tuple[int, int]]:
    """Return ordered ``(source, target)`` pairs with no link entry.

    Only pairs inside ``devices`` are considered. An empty result means the
    set is complete.
    """
    members = list(devices)
    missing: list[tuple[int, int]] = []
    for device in members:
        for other in members:
            if other.index == device.index:
                continue
            if not device.has_link(other.index):
                missing.append((device.index, other.index))
    return missing


def is_complete(devices: Iterable["Device"]) -> bool:
    """Return True when every device links to every other device in the set."""
    members = list(devices)
    for device in members:
        for other in members:
            if other.index != device.index and not device.has_link(other.index):
                return False
    return True
