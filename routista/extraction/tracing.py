"""Connected-region selection and Moore-neighbour boundary tracing."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

import numpy as np
from numpy.typing import NDArray
from scipy import ndimage

Pixel = Tuple[int, int]  # (x, y)

# Clockwise in image space (y grows downwards), starting north.
_NEIGHBOURS: Tuple[Tuple[int, int], ...] = (
    (0, -1),
    (1, -1),
    (1, 0),
    (1, 1),
    (0, 1),
    (-1, 1),
    (-1, 0),
    (-1, -1),
)
_EIGHT_CONNECTED = np.ones((3, 3), dtype=bool)


@dataclass(slots=True)
class RegionSummary:
    """Largest 8-connected region and the sizes of all regions found."""

    mask: NDArray[np.bool_]
    area: int
    component_sizes: List[int]

    @property
    def component_count(self) -> int:
        return len(self.component_sizes)


def largest_region(mask: NDArray[np.bool_]) -> RegionSummary | None:
    """Keep only the largest connected foreground region; ``None`` when empty."""

    labels, count = ndimage.label(mask, structure=_EIGHT_CONNECTED)
    if count == 0:
        return None
    sizes = np.bincount(labels.ravel())[1:]
    best = int(np.argmax(sizes)) + 1
    return RegionSummary(
        mask=labels == best,
        area=int(sizes[best - 1]),
        component_sizes=[int(s) for s in sizes],
    )


def trace_boundary(mask: NDArray[np.bool_]) -> List[Pixel]:
    """Return the outer boundary of a single region as an ordered ring.

    Tracing starts at the top-most, left-most pixel and walks clockwise. The
    ring is returned without repeating its first pixel. Each step is keyed on
    (pixel, backtrack) so the walk stops as soon as it would repeat itself,
    which also handles one-pixel-wide spurs.
    """

    padded = np.pad(np.asarray(mask, dtype=bool), 1, constant_values=False)
    rows, cols = np.nonzero(padded)
    if rows.size == 0:
        return []
    start = (int(cols[0]), int(rows[0]))
    if rows.size == 1:
        return [(start[0] - 1, start[1] - 1)]

    height, width = padded.shape
    grid = padded.tolist()
    current = start
    backtrack = (start[0] - 1, start[1])
    seen: dict[Tuple[Pixel, Pixel], int] = {}
    ring: List[Pixel] = []
    max_steps = 4 * height * width

    for _ in range(max_steps):
        state = (current, backtrack)
        if state in seen:
            ring = ring[seen[state] :]
            break
        seen[state] = len(ring)
        ring.append(current)

        offset = (backtrack[0] - current[0], backtrack[1] - current[1])
        direction = _NEIGHBOURS.index(offset)
        previous = backtrack
        found = None
        for step in range(1, 9):
            dx, dy = _NEIGHBOURS[(direction + step) % 8]
            candidate = (current[0] + dx, current[1] + dy)
            if grid[candidate[1]][candidate[0]]:
                found = candidate
                break
            previous = candidate
        if found is None:
            break
        backtrack = previous
        current = found

    # Undo the padding offset.
    cleaned: List[Pixel] = []
    for x, y in ring:
        pixel = (x - 1, y - 1)
        if not cleaned or cleaned[-1] != pixel:
            cleaned.append(pixel)
    if len(cleaned) > 1 and cleaned[0] == cleaned[-1]:
        cleaned.pop()
    return cleaned


__all__ = ["Pixel", "RegionSummary", "largest_region", "trace_boundary"]
