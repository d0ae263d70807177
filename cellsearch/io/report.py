"""Plain-text and JSON rendering of the final cell list."""

from __future__ import annotations

from typing import Any, Dict, List, Sequence

from cellsearch.detection.correction import correction_for_cell
from cellsearch.detection.types import Cell
from cellsearch.util.units import db10

_SUFFIXES = (
    (998.0, 1.0, "h"),
    (998e3, 1e3, "k"),
    (998e6, 1e6, "m"),
    (998e9, 1e9, "g"),
    (998e12, 1e12, "t"),
)


def freq_formatter(freq: float) -> str:
    """Compact frequency: 3 significant digits plus an h/k/m/g/t suffix."""
    for limit, scale, suffix in _SUFFIXES:
        if freq < limit:
            return f"{freq / scale:4.3g}{suffix}"
    return f"{freq:g}"


def format_cell_row(cell: Cell, correction: float) -> str:
    fields = [
        f"{cell.cell_identity:3d}",
        f"{cell.center_frequency_hz / 1e6:6.4g}M",
        freq_formatter(cell.residual_offset_hz),
        f"{float(db10(cell.peak_power)):5.3g}",
        cell.cyclic_prefix.code,
        f"{cell.downlink_bandwidth_rb:3d}",
        cell.phich_duration.code,
        f"{cell.phich_resource.value:>3}",
        f"{correction_for_cell(cell, correction):.20g}",
    ]
    return " ".join(fields)


def format_report(cells: Sequence[Cell], correction: float) -> str:
    if not cells:
        return "No LTE cells were found..."
    lines = [
        "Detected the following cells:",
        "C: CP type ; P: PHICH duration ; PR: PHICH resource type",
        "CID      fc  foff RXPWR C nRB P  PR CrystalCorrectionFactor",
    ]
    lines.extend(format_cell_row(cell, correction) for cell in cells)
    return "\n".join(lines)


def report_records(cells: Sequence[Cell], correction: float) -> List[Dict[str, Any]]:
    records: List[Dict[str, Any]] = []
    for cell in cells:
        record = cell.to_dict()
        record["residual_offset_hz"] = cell.residual_offset_hz
        record["rx_power_db"] = float(db10(cell.peak_power))
        record["correction_factor"] = correction_for_cell(cell, correction)
        records.append(record)
    return records
