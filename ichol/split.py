# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BUSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

import numpy as np

from .utils import as_matrix


def holdout_split(X, y, fraction: float = 0.2, seed=None):
    """
    Random hold-out split of (X, y).

    Parameters
    ----------
    fraction : float
        Share of the samples held out for validation, in (0, 1).
        At least one sample ends up on each side.
    seed : int | None
        Seed for numpy.random.default_rng.

    Returns
    -------
    X_tr, y_tr, X_va, y_va : ndarrays
    """
    X = as_matrix(X, name="X")
    y = as_matrix(y, name="y")
    n = X.shape[0]
    if y.shape[0] != n:
        raise ValueError(f"X has {n} rows but y has {y.shape[0]}")
    if not 0.0 < fraction < 1.0:
        raise ValueError(f"fraction must lie in (0, 1), got {fraction}")
    if n < 2:
        raise ValueError("need at least two samples to split")

    n_va = min(max(1, int(round(fraction * n))), n - 1)
    rng = np.random.default_rng(seed)
    idx = rng.permutation(n)
    va, tr = idx[:n_va], idx[n_va:]
    return X[tr], y[tr], X[va], y[va]
