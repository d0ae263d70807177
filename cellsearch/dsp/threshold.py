"""PSS detection threshold derived from a false-alarm budget."""

from __future__ import annotations

import numpy as np
from scipy.stats import chi2

FS_LTE = 30.72e6
FS_CAPTURE = FS_LTE / 16
# PSS correlator length in samples at FS_CAPTURE (128 + 9 CP).
PSS_CORRELATOR_LENGTH = 137
# Frequency arm used when combining adjacent offset hypotheses.
DS_COMB_ARM = 2
FALSE_ALARM_NINES = 12
# Fraction of the capture bandwidth occupied by the PSS (6 RBs plus a guard).
RX_CUTOFF = (6 * 12 * 15e3 / 2 + 4 * 15e3) / (FS_CAPTURE / 2)


def noise_estimate_is_degenerate(noise_power) -> bool:
    """True when the noise estimate is empty, non-finite, or not strictly positive."""
    arr = np.asarray(noise_power, dtype=np.float64)
    if arr.size == 0:
        return True
    return bool(np.any(~np.isfinite(arr)) or np.any(arr <= 0.0))


def detection_threshold(
    noise_power,
    n_comb_xc: int,
    comb_arm: int = DS_COMB_ARM,
    *,
    n_nines: int = FALSE_ALARM_NINES,
    n_hypotheses: int = 1,
) -> np.ndarray:
    """Return the per-sample power threshold for the peak search.

    The incoherently combined correlation power of pure noise follows a
    chi-squared law with ``2 * n_comb_xc * (2 * comb_arm + 1)`` degrees of
    freedom. The threshold is the point where that law leaves a tail of
    ``10**-n_nines`` per hypothesis; with ``n_hypotheses > 1`` the budget
    is split evenly across independent tests so the false-alarm rate of the
    whole search stays within ``10**-n_nines``.

    The caller must screen ``noise_power`` with ``noise_estimate_is_degenerate``.
    """
    if int(n_comb_xc) < 1:
        raise ValueError("n_comb_xc must be >= 1")
    if int(comb_arm) < 0:
        raise ValueError("comb_arm must be >= 0")
    if int(n_hypotheses) < 1:
        raise ValueError("n_hypotheses must be >= 1")
    if n_nines <= 0:
        raise ValueError("n_nines must be > 0")

    width = 2 * int(comb_arm) + 1
    dof = 2 * int(n_comb_xc) * width
    p_fa = np.power(10.0, -float(n_nines)) / float(n_hypotheses)
    r_th = float(chi2.isf(p_fa, dof))
    noise = np.asarray(noise_power, dtype=np.float64)
    return r_th * noise / RX_CUTOFF / PSS_CORRELATOR_LENGTH / 2.0 / int(n_comb_xc) / width
