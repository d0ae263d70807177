"""Per-candidate refinement pipeline: SSS → fine FOE → grid → compensation → MIB.

Every stage method maps a ``StageResult`` to the next one. The
sequence is fixed and linear: the first stage that cannot make sense of a
candidate rejects it, and no stage is ever retried.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, List, Optional, Sequence

import numpy as np

from cellsearch.detection.types import Cell
from cellsearch.kernels.base import CellSearchKernels, ReferenceSignalDescriptor
from cellsearch.util.logging import get_logger
from cellsearch.util.scan_logger import ScanLogger
from cellsearch.util.units import db10

logger = get_logger(__name__)

# SSS detection threshold, in standard deviations of the noise estimate.
SSS_N_SIGMA = 3


class PipelineStage(Enum):
    PEAK_FOUND = "peak_found"
    SECONDARY_SYNC_RESOLVED = "secondary_sync_resolved"
    FINE_OFFSET_REFINED = "fine_offset_refined"
    GRID_EXTRACTED = "grid_extracted"
    GRID_COMPENSATED = "grid_compensated"
    CONFIRMED = "confirmed"


@dataclass(frozen=True)
class StageResult:
    """Either an advanced candidate or the verdict that rejected it.

    ``stage`` is the last stage the candidate completed; ``reason`` is only
    set for rejections. ``grid``/``timestamps`` carry the time/frequency
    grid between the extraction, compensation and decode stages.
    """

    cell: Cell
    stage: PipelineStage
    rejected: bool = False
    reason: Optional[str] = None
    grid: Optional[np.ndarray] = None
    timestamps: Optional[np.ndarray] = None

    @property
    def ok(self) -> bool:
        return not self.rejected

    def advance(self, cell: Cell, stage: PipelineStage, **kwargs: Any) -> "StageResult":
        return replace(self, cell=_keep_refinement(self.cell, cell), stage=stage, **kwargs)

    def reject(self, cell: Cell, reason: str) -> "StageResult":
        return replace(self, cell=cell, rejected=True, reason=reason, grid=None, timestamps=None)


def _keep_refinement(before: Cell, after: Cell) -> Cell:
    """A stage may refine the frequency offset but never clear it."""
    if after.fine_frequency_offset_hz is None and before.fine_frequency_offset_hz is not None:
        return replace(after, fine_frequency_offset_hz=before.fine_frequency_offset_hz)
    return after


class CandidatePipeline:
    """Drive raw correlation peaks through the refinement stages."""

    def __init__(
        self,
        kernels: CellSearchKernels,
        *,
        n_sigma: float = SSS_N_SIGMA,
        scan_logger: Optional[ScanLogger] = None,
    ) -> None:
        self.kernels = kernels
        self.n_sigma = float(n_sigma)
        self.scan_logger = scan_logger

    def detect_secondary_sync(self, result: StageResult, capbuf: np.ndarray, fc: float) -> StageResult:
        cell = self.kernels.sss_detect(result.cell, capbuf, self.n_sigma, fc)
        if cell.secondary_sync_id is None:
            return result.reject(cell, "no SSS detected")
        return result.advance(cell, PipelineStage.SECONDARY_SYNC_RESOLVED)

    def refine_offset(self, result: StageResult, capbuf: np.ndarray, fc: float) -> StageResult:
        cell = self.kernels.fine_offset_estimate(result.cell, capbuf, fc)
        return result.advance(cell, PipelineStage.FINE_OFFSET_REFINED)

    def extract_grid(self, result: StageResult, capbuf: np.ndarray, fc: float) -> StageResult:
        grid, timestamps = self.kernels.extract_grid(result.cell, capbuf, fc)
        return result.advance(result.cell, PipelineStage.GRID_EXTRACTED, grid=grid, timestamps=timestamps)

    def compensate_grid(self, result: StageResult, fc: float) -> StageResult:
        rs = ReferenceSignalDescriptor.for_cell(result.cell)
        grid, timestamps, cell = self.kernels.compensate_grid(result.cell, result.grid, result.timestamps, fc, rs)
        return result.advance(cell, PipelineStage.GRID_COMPENSATED, grid=grid, timestamps=timestamps)

    def decode_broadcast_info(self, result: StageResult) -> StageResult:
        rs = ReferenceSignalDescriptor.for_cell(result.cell)
        cell = self.kernels.decode_mib(result.cell, result.grid, rs)
        if cell.downlink_bandwidth_rb is None:
            return result.reject(cell, "no MIB decoded")
        if cell.secondary_sync_id is None:
            return result.reject(cell, "decoder cleared the cell identity")
        return result.advance(cell, PipelineStage.CONFIRMED, grid=None, timestamps=None)

    def process(self, cell: Cell, capbuf: np.ndarray, fc: float) -> StageResult:
        """Run one candidate to confirmation or to its rejecting stage."""
        result = StageResult(cell=cell, stage=PipelineStage.PEAK_FOUND)
        result = self.detect_secondary_sync(result, capbuf, fc)
        if result.rejected:
            return result
        result = self.refine_offset(result, capbuf, fc)
        result = self.extract_grid(result, capbuf, fc)
        result = self.compensate_grid(result, fc)
        return self.decode_broadcast_info(result)

    def run(self, cells: Sequence[Cell], capbuf: np.ndarray, fc: float) -> List[Cell]:
        """Return the confirmed cells, in discovery order; rejected ones are dropped."""
        confirmed: List[Cell] = []
        for cell in cells:
            result = self.process(cell, capbuf, fc)
            if result.rejected:
                self._on_rejected(result, fc)
                continue
            self._on_confirmed(result.cell, fc)
            confirmed.append(result.cell)
        return confirmed

    def _on_rejected(self, result: StageResult, fc: float) -> None:
        logger.debug(
            "Dropped peak n_id_2=%d ind=%d after %s: %s",
            result.cell.primary_sync_id,
            result.cell.peak_index,
            result.stage.value,
            result.reason,
            extra={"center_hz": fc, "stage": result.stage.value},
        )
        if self.scan_logger:
            self.scan_logger.log(
                "candidate_rejected",
                center_hz=fc,
                stage=result.stage.value,
                reason=result.reason,
                n_id_2=result.cell.primary_sync_id,
                peak_index=result.cell.peak_index,
                peak_power=result.cell.peak_power,
            )

    def _on_confirmed(self, cell: Cell, fc: float) -> None:
        logger.info(
            "Detected a cell! cell ID: %d, RX power level: %.1f dB, residual frequency offset: %.1f Hz",
            cell.cell_identity,
            float(db10(cell.peak_power)),
            cell.residual_offset_hz,
            extra={"center_hz": fc, "cell_id": cell.cell_identity},
        )
        if self.scan_logger:
            self.scan_logger.log("cell_detected", **cell.to_dict())
