"""Collapse repeated detections of one physical cell across sweep positions.

With a strong signal the same cell correlates at several tested center
frequencies and offsets (spectral leakage, near-integer aliasing of the
offset grid). Only the strongest observation of each cell is kept.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from cellsearch.detection.types import Cell
from cellsearch.util.logging import get_logger

logger = get_logger(__name__)

# Empirical: detections of one cell id closer than this are one transmitter.
SAME_CELL_SPAN_HZ = 1e6


class CellDeduplicator:
    """Accumulate confirmed cells, keeping one entry per physical cell.

    Entries keep the position of the first sighting; a later sighting with
    strictly greater peak power replaces the entry in place.
    """

    def __init__(self, same_cell_span_hz: float = SAME_CELL_SPAN_HZ) -> None:
        if same_cell_span_hz <= 0:
            raise ValueError("same_cell_span_hz must be positive")
        self.same_cell_span_hz = float(same_cell_span_hz)
        self._cells: List[Cell] = []
        self.merged = 0

    @property
    def cells(self) -> List[Cell]:
        return list(self._cells)

    def same_cell(self, a: Cell, b: Cell) -> bool:
        return (
            a.cell_identity == b.cell_identity
            and abs(a.corrected_frequency_hz - b.corrected_frequency_hz) < self.same_cell_span_hz
        )

    def _find_match(self, cell: Cell) -> Optional[int]:
        for idx, kept in enumerate(self._cells):
            if self.same_cell(cell, kept):
                return idx
        return None

    def add(self, cell: Cell) -> None:
        if not cell.confirmed:
            raise ValueError("only confirmed cells can be deduplicated")
        idx = self._find_match(cell)
        if idx is None:
            self._cells.append(cell)
            return
        self.merged += 1
        kept = self._cells[idx]
        if cell.peak_power > kept.peak_power:
            self._cells[idx] = cell
        logger.debug(
            "Merged duplicate of cell %d at %.1f MHz into entry %d",
            cell.cell_identity,
            cell.center_frequency_hz / 1e6,
            idx,
            extra={"cell_id": cell.cell_identity},
        )

    def ingest(self, cells: Iterable[Cell]) -> None:
        for cell in cells:
            self.add(cell)


def dedup_cells(detected: Sequence[Sequence[Cell]], same_cell_span_hz: float = SAME_CELL_SPAN_HZ) -> List[Cell]:
    """Merge per-center-frequency confirmed cells, in sweep then discovery order."""

    dedup = CellDeduplicator(same_cell_span_hz)
    for cells in detected:
        dedup.ingest(cells)
    return dedup.cells
