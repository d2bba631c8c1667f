# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BUSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

import logging
from typing import Optional, Tuple

import numpy as np

from .kernels import kernel_column
from .qr import IncrementalQR
from .utils import as_matrix, default_tol, inverse_permutation, swap_rows

logger = logging.getLogger(__name__)


def select_pivot(diag: np.ndarray, i: int) -> int:
    """
    Index in [i, n) of the largest residual diagonal entry.
    Ties go to the first index, the natural scan order.
    """
    return i + int(np.argmax(diag[i:]))


class PivotedCholesky:
    """
    Pivoted incomplete Cholesky factorisation of the RBF Gram matrix of X,
    grown one column per step(), together with the incremental QR of the
    factor (see IncrementalQR).

    After k steps, with P the permutation held in ``perm``,

        K[perm][:, perm] ~ G[:, :k] @ G[:, :k].T

    and G[:, :k] is lower trapezoidal: column j is zero above row j.

    Parameters
    ----------
    X : (n, d) array_like
        Training points. Copied, never modified.
    y : (n,) or (n, t) array_like
        Targets, kept permuted in lockstep with the pivots as ``y_perm``.
    sigma : float
        RBF bandwidth.
    rank_max : int
        Column budget m, 1 <= m <= n.
    tol : float | None
        Residual (and basis norm) at or below which the kernel counts
        as exhausted; defaults to default_tol(dtype).
    reorth : bool
        Forwarded to IncrementalQR.
    """

    def __init__(
        self,
        X,
        y=None,
        sigma: float = 1.0,
        rank_max: Optional[int] = None,
        tol: Optional[float] = None,
        reorth: bool = False,
        dtype=np.float64,
    ):
        self.X = as_matrix(X, dtype=dtype, name="X")
        n = self.X.shape[0]
        if n == 0:
            raise ValueError("X has no rows")
        m = n if rank_max is None else int(rank_max)
        if not 1 <= m <= n:
            raise ValueError(f"rank_max must lie in [1, {n}], got {m}")

        if y is None:
            y = np.zeros((n, 1), dtype=dtype)
        self.y_perm = as_matrix(y, dtype=dtype, name="y")
        if self.y_perm.shape[0] != n:
            raise ValueError(
                f"X has {n} rows but y has {self.y_perm.shape[0]}"
            )
        if not float(sigma) > 0.0:
            raise ValueError(f"sigma must be positive, got {sigma}")

        self.n = n
        self.m = m
        self.sigma = float(sigma)
        self.tol = default_tol(dtype) if tol is None else float(tol)

        self.G = np.zeros((n, m), dtype=dtype)
        # exp(0) on the diagonal of an RBF kernel
        self.diag = np.ones(n, dtype=dtype)
        self.perm = np.arange(n)
        self.qr = IncrementalQR(n, m, reorth=reorth, dtype=dtype)
        self.rank = 0
        self.exhausted = False

    @property
    def factor(self) -> np.ndarray:
        """The columns of G built so far, (n, rank)."""
        return self.G[:, : self.rank]

    def _pivot(self, i: int, j: int) -> None:
        """Bring candidate j to position i in every pivot-ordered buffer."""
        self.perm[[i, j]] = self.perm[[j, i]]
        swap_rows(self.y_perm, i, j)
        swap_rows(self.diag, i, j)
        swap_rows(self.G, i, j, i + 1)
        self.qr.swap_rows(i, j)

    def step(self) -> bool:
        """
        Add one column to G (and to Q / RR).

        Returns
        -------
        bool
            False, without advancing, when the budget is spent or the
            residual diagonal is exhausted; True otherwise.
        """
        i = self.rank
        if i >= self.m or self.exhausted:
            return False

        jast = select_pivot(self.diag, i)
        # first step: every residual is 1, so this is index 0
        pivot_val = self.diag[jast]
        if not pivot_val > self.tol:
            logger.warning(
                f"residual diagonal exhausted at rank {i} "
                f"(max residual {pivot_val:.3e}); stopping early"
            )
            self.exhausted = True
            return False

        self._pivot(i, jast)
        n = self.n
        G = self.G

        g_ii = np.sqrt(self.diag[i])
        G[i, i] = g_ii
        if i + 1 < n:
            kcol = kernel_column(self.X, self.perm, i + 1, self.sigma)
            # Schur complement of the columns already absorbed
            G[i + 1 :, i] = (kcol - G[i + 1 :, :i] @ G[i, :i]) / g_ii
            self.diag[i + 1 :] -= G[i + 1 :, i] ** 2
        self.diag[i] = 0.0

        try:
            self.qr.append(G[:, i], tol=self.tol)
        except ValueError as e:
            logger.warning(f"basis became rank deficient at rank {i}: {e}")
            G[:, i] = 0.0
            self.exhausted = True
            return False

        self.rank = i + 1
        logger.debug(
            f"step {i}: pivot {self.perm[i]} (slot {jast}), G_ii={g_ii:.3e}"
        )
        return True

    def coefficients(self, k: Optional[int] = None) -> np.ndarray:
        """
        Least-squares coefficients at rank k, mapped back to the original
        sample order: alpha[perm[j]] = alpha_perm[j].
        """
        alpha_perm = self.qr.coefficients(self.y_perm, k)
        return alpha_perm[inverse_permutation(self.perm)]


def incomplete_cholesky(
    X, rank: int, sigma: float, tol: Optional[float] = None
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Run the pivoted decomposition up to `rank` columns (or until the
    residual is exhausted).

    Returns
    -------
    G    : (n, k) ndarray, k <= rank
    perm : (n,) ndarray
        Pivot order, K[perm][:, perm] ~ G @ G.T
    """
    chol = PivotedCholesky(X, sigma=sigma, rank_max=rank, tol=tol)
    while chol.step():
        pass
    return chol.factor.copy(), chol.perm.copy()
