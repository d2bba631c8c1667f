# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BUSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

"""
Gaussian (RBF) kernel helpers

    k(x, z) = exp(-||x - z||^2 / sigma^2)

The same bandwidth convention is used for the pivoted columns built during
the decomposition and for the validation / prediction kernels, so a model
trained here predicts with the kernel it was fitted on.
"""

import numpy as np


def square_distance(A: np.ndarray, B: np.ndarray) -> np.ndarray:
    """
    Pairwise squared Euclidean distances between the rows of A (p, d)
    and the rows of B (q, d).

    Returns
    -------
    D : (p, q) ndarray, clipped at zero
    """
    A = np.atleast_2d(A)
    B = np.atleast_2d(B)
    if A.shape[1] != B.shape[1]:
        raise ValueError(
            f"feature dimensions differ: {A.shape[1]} vs {B.shape[1]}"
        )
    a2 = np.sum(A * A, axis=1)[:, None]
    b2 = np.sum(B * B, axis=1)[None, :]
    D = a2 + b2 - 2.0 * (A @ B.T)
    # cancellation can leave tiny negatives on (near) duplicate points
    np.maximum(D, 0.0, out=D)
    return D


def _check_sigma(sigma: float) -> float:
    sigma = float(sigma)
    if not sigma > 0.0:
        raise ValueError(f"kernel bandwidth sigma must be positive, got {sigma}")
    return sigma


def rbf_kernel(A: np.ndarray, B: np.ndarray, sigma: float) -> np.ndarray:
    """Gram matrix K[i, j] = k(A[i], B[j])."""
    sigma = _check_sigma(sigma)
    D = square_distance(A, B)
    return np.exp(-D / (sigma * sigma))


def kernel_column(
    X: np.ndarray, perm: np.ndarray, start: int, sigma: float
) -> np.ndarray:
    """
    Kernel values between the freshly pivoted point X[perm[start - 1]]
    and the remaining candidates X[perm[start:]].

    This is the only kernel evaluation inside the decomposition loop, so
    it touches len(perm) - start rows and never forms the full matrix.

    Returns
    -------
    col : (len(perm) - start,) ndarray
    """
    sigma = _check_sigma(sigma)
    pivot = X[perm[start - 1]]
    rest = X[perm[start:]]
    diff = rest - pivot
    d2 = np.einsum("ij,ij->i", diff, diff)
    return np.exp(-d2 / (sigma * sigma))
