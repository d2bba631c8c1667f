# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

import logging

import numpy as np

from .utils import EPS, swap_rows

logger = logging.getLogger(__name__)


class IncrementalQR:
    """
    Column-by-column Gram-Schmidt QR of a growing factor G = Q R, that
    keeps RR = (R R^T)^{-1} instead of R itself.

    With G[:, :k] = Q[:, :k] R and K ~ G G^T = Q R R^T Q^T, the minimum
    norm solution of K alpha = y is

        alpha = Q[:, :k] @ RR[:k, :k] @ (Q[:, :k].T @ y)

    and it is available for every prefix k without refactoring.

    Parameters
    ----------
    n : int
        Number of rows of G.
    m : int
        Maximum number of columns (rank budget).
    reorth : bool
        Run a second Gram-Schmidt pass on each new column.
    dtype :
        Floating point type of the buffers.
    """

    def __init__(self, n: int, m: int, reorth: bool = False, dtype=np.float64):
        self.n = n
        self.m = m
        self.reorth = reorth
        self.Q = np.zeros((n, m), dtype=dtype)
        self.RR = np.zeros((m, m), dtype=dtype)
        self.rank = 0

    def swap_rows(self, i: int, j: int) -> None:
        """Follow a pivot swap; only the columns built so far are touched."""
        swap_rows(self.Q, i, j, self.rank)

    def append(self, g: np.ndarray, tol: float = EPS) -> float:
        """
        Orthogonalise a new column g of G against the current basis and
        border RR with it.

            r   = Q^T g
            q   = g - Q r,   rii = ||q||
            RR  = [[RR,          -RR r / rii          ],
                   [-r^T RR/rii, (r^T RR r + 1) / rii^2]]

        Returns
        -------
        rii : float
            Norm of the orthogonal component of g.

        Raises
        ------
        ValueError : if g lies (numerically) in the span of the basis.
        """
        i = self.rank
        if i == self.m:
            raise ValueError(f"basis is full (rank budget {self.m})")

        Q_prev = self.Q[:, :i]
        r = Q_prev.T @ g
        q = g - Q_prev @ r
        if self.reorth and i > 0:
            r2 = Q_prev.T @ q
            q -= Q_prev @ r2
            r += r2

        rii = float(np.linalg.norm(q))
        if rii <= tol:
            raise ValueError("new column is linearly dependent on the basis")
        self.Q[:, i] = q / rii

        RR_prev = self.RR[:i, :i]
        RRr = RR_prev @ r
        self.RR[:i, i] = -RRr / rii
        self.RR[i, :i] = self.RR[:i, i]
        self.RR[i, i] = (r @ RRr + 1.0) / (rii * rii)

        self.rank = i + 1
        logger.debug(f"qr column {i}: rii={rii:.3e}")
        return rii

    def coefficients(self, y: np.ndarray, k: int | None = None) -> np.ndarray:
        """
        Closed-form coefficients Q_k RR_k Q_k^T y at prefix rank k
        (defaults to the current rank), in the row order of Q.

        Cost is O(n k t + k^2 t).
        """
        k = self.rank if k is None else k
        if not 0 < k <= self.rank:
            raise ValueError(f"rank {k} outside [1, {self.rank}]")
        Qk = self.Q[:, :k]
        return Qk @ (self.RR[:k, :k] @ (Qk.T @ y))
