# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BUSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

import math

import numpy as np

EPS: float = 1e-12


def as_matrix(A, dtype=np.float64, name: str = "A") -> np.ndarray:
    """
    Coerce A into a 2-D floating point array (a 1-D input becomes a column).

    The returned array is always a fresh copy, so callers own it.
    """
    A = np.array(A, dtype=dtype, copy=True)
    if A.ndim == 1:
        A = A[:, None]
    if A.ndim != 2:
        raise ValueError(f"{name} must be 1-D or 2-D, got {A.ndim} dimensions")
    return A


def round_half_up(x: float) -> int:
    """Round to the nearest integer, halves away from zero (x >= 0)."""
    return int(math.floor(x + 0.5))


def is_permutation(perm: np.ndarray) -> bool:
    """True when perm is a bijection on {0, ..., len(perm) - 1}."""
    perm = np.asarray(perm)
    n = perm.shape[0]
    seen = np.zeros(n, dtype=bool)
    if np.any(perm < 0) or np.any(perm >= n):
        return False
    seen[perm] = True
    return bool(seen.all())


def inverse_permutation(perm: np.ndarray) -> np.ndarray:
    """Return inv such that inv[perm[j]] = j."""
    perm = np.asarray(perm)
    inv = np.empty_like(perm)
    inv[perm] = np.arange(perm.shape[0], dtype=perm.dtype)
    return inv


def swap_rows(A: np.ndarray, i: int, j: int, ncols: int | None = None) -> None:
    """
    Swap rows i and j of A in place, restricted to the first ncols
    columns when given (ncols=0 is a no-op).
    """
    if i == j:
        return
    if A.ndim == 1:
        A[[i, j]] = A[[j, i]]
        return
    cols = slice(None) if ncols is None else slice(0, ncols)
    A[[i, j], cols] = A[[j, i], cols]


def default_tol(dtype=np.float64) -> float:
    """
    Exhaustion tolerance for residuals of a unit-diagonal kernel: EPS in
    double precision, scaled by the machine epsilon of other float types
    (about 5e-4 for float32).
    """
    return EPS * float(np.finfo(dtype).eps / np.finfo(np.float64).eps)
