"""Contracts for the signal-processing kernels driven by the search controller.

A backend is any object providing the methods of ``CellSearchKernels``.
Stage methods receive a ``Cell`` and return an updated copy; they report
failure through the cell itself (``secondary_sync_id`` or
``downlink_bandwidth_rb`` left as ``None``), never by raising.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Protocol, Tuple, runtime_checkable

import numpy as np

from cellsearch.detection.types import Cell, CyclicPrefix

# MIB decoding only looks at the central 6 resource blocks.
MIB_N_RB = 6

REQUIRED_METHODS = (
    "correlate",
    "sss_detect",
    "fine_offset_estimate",
    "extract_grid",
    "compensate_grid",
    "decode_mib",
)


@dataclass
class CorrelationResult:
    """Output of the PSS correlator for one capture buffer.

    power: (3, N) correlation power, maximized over offset hypotheses.
    offset_index: (3, N) index into the offset list of each maximum.
    noise_power: (N,) incoherently combined received power (noise estimate).
    n_comb_xc: half frames combined into ``power``.
    n_comb_sp: half frames combined into ``noise_power``.
    intermediates: per-stage correlation arrays by name, handed to a
        backend-provided peak search.
    """

    power: np.ndarray
    offset_index: np.ndarray
    noise_power: np.ndarray
    n_comb_xc: int
    n_comb_sp: int
    intermediates: Dict[str, np.ndarray] = field(default_factory=dict)


@dataclass(frozen=True)
class ReferenceSignalDescriptor:
    cell_identity: int
    n_rb: int = MIB_N_RB
    cyclic_prefix: CyclicPrefix = CyclicPrefix.UNKNOWN

    @classmethod
    def for_cell(cls, cell: Cell) -> "ReferenceSignalDescriptor":
        if cell.cell_identity is None:
            raise ValueError("reference signals need a resolved cell identity")
        return cls(cell_identity=cell.cell_identity, n_rb=MIB_N_RB, cyclic_prefix=cell.cyclic_prefix)


@runtime_checkable
class CellSearchKernels(Protocol):
    def correlate(
        self, capbuf: np.ndarray, offsets_hz: np.ndarray, comb_arm: int, center_frequency_hz: float
    ) -> CorrelationResult:
        ...

    def sss_detect(self, cell: Cell, capbuf: np.ndarray, n_sigma: float, center_frequency_hz: float) -> Cell:
        ...

    def fine_offset_estimate(self, cell: Cell, capbuf: np.ndarray, center_frequency_hz: float) -> Cell:
        ...

    def extract_grid(
        self, cell: Cell, capbuf: np.ndarray, center_frequency_hz: float
    ) -> Tuple[np.ndarray, np.ndarray]:
        ...

    def compensate_grid(
        self,
        cell: Cell,
        grid: np.ndarray,
        timestamps: np.ndarray,
        center_frequency_hz: float,
        rs: ReferenceSignalDescriptor,
    ) -> Tuple[np.ndarray, np.ndarray, Cell]:
        ...

    def decode_mib(self, cell: Cell, grid: np.ndarray, rs: ReferenceSignalDescriptor) -> Cell:
        ...
