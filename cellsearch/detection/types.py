"""Dataclasses shared across the peak search, pipeline, dedup and report layers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

# Physical layer identity ranges (36.211 section 6.11).
N_ID_2_COUNT = 3
N_ID_1_COUNT = 168


class CyclicPrefix(Enum):
    NORMAL = "normal"
    EXTENDED = "extended"
    UNKNOWN = "unknown"

    @property
    def code(self) -> str:
        return {"normal": "N", "extended": "E"}.get(self.value, "U")


class PhichDuration(Enum):
    NORMAL = "normal"
    EXTENDED = "extended"
    UNKNOWN = "unknown"

    @property
    def code(self) -> str:
        return {"normal": "N", "extended": "E"}.get(self.value, "U")


class PhichResource(Enum):
    ONE_SIXTH = "1/6"
    HALF = "1/2"
    ONE = "one"
    TWO = "two"
    UNKNOWN = "UNK"


@dataclass(frozen=True)
class Cell:
    """One correlation peak and whatever the pipeline has learned about it.

    Instances are immutable; pipeline stages return updated copies built
    with ``dataclasses.replace``. ``secondary_sync_id`` and
    ``downlink_bandwidth_rb`` use ``None`` as their "not found" value.
    """

    center_frequency_hz: float
    peak_power: float
    peak_index: int
    primary_sync_id: int
    coarse_offset_hz: float
    secondary_sync_id: Optional[int] = None
    fine_frequency_offset_hz: Optional[float] = None
    frame_start: Optional[float] = None
    cyclic_prefix: CyclicPrefix = CyclicPrefix.UNKNOWN
    downlink_bandwidth_rb: Optional[int] = None
    phich_duration: PhichDuration = PhichDuration.UNKNOWN
    phich_resource: PhichResource = PhichResource.UNKNOWN
    antenna_ports: Optional[int] = None

    def __post_init__(self) -> None:
        if not 0 <= int(self.primary_sync_id) < N_ID_2_COUNT:
            raise ValueError(f"primary_sync_id must be in [0, {N_ID_2_COUNT - 1}], got {self.primary_sync_id}")
        if self.secondary_sync_id is not None and not 0 <= int(self.secondary_sync_id) < N_ID_1_COUNT:
            raise ValueError(f"secondary_sync_id must be in [0, {N_ID_1_COUNT - 1}], got {self.secondary_sync_id}")

    @property
    def cell_identity(self) -> Optional[int]:
        """Physical cell id, only defined once the secondary sync id is known."""
        if self.secondary_sync_id is None:
            return None
        return 3 * int(self.secondary_sync_id) + int(self.primary_sync_id)

    @property
    def residual_offset_hz(self) -> float:
        if self.fine_frequency_offset_hz is not None:
            return float(self.fine_frequency_offset_hz)
        return float(self.coarse_offset_hz)

    @property
    def corrected_frequency_hz(self) -> float:
        return float(self.center_frequency_hz) + self.residual_offset_hz

    @property
    def confirmed(self) -> bool:
        return self.secondary_sync_id is not None and self.downlink_bandwidth_rb is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cell_id": self.cell_identity,
            "center_frequency_hz": float(self.center_frequency_hz),
            "peak_power": float(self.peak_power),
            "peak_index": int(self.peak_index),
            "n_id_2": int(self.primary_sync_id),
            "n_id_1": self.secondary_sync_id,
            "coarse_offset_hz": float(self.coarse_offset_hz),
            "fine_frequency_offset_hz": self.fine_frequency_offset_hz,
            "frame_start": self.frame_start,
            "cp_type": self.cyclic_prefix.value,
            "n_rb_dl": self.downlink_bandwidth_rb,
            "phich_duration": self.phich_duration.value,
            "phich_resource": self.phich_resource.value,
            "n_ports": self.antenna_ports,
        }
