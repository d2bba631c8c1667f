# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BUSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

import numpy as np
import pytest


@pytest.fixture
def grid_points():
    """Six well separated points; their RBF Gram matrix is well conditioned."""
    return np.array(
        [
            [0.0, 0.0],
            [1.0, 0.0],
            [0.0, 1.0],
            [1.0, 1.0],
            [2.0, 0.0],
            [0.0, 2.0],
        ]
    )


@pytest.fixture
def blobs():
    """Two Gaussian blobs with +-1 labels, split into train and validation."""
    rng = np.random.default_rng(7)
    n = 60
    X = np.vstack(
        [
            rng.normal(loc=-1.5, scale=0.6, size=(n // 2, 2)),
            rng.normal(loc=1.5, scale=0.6, size=(n // 2, 2)),
        ]
    )
    y = np.concatenate([-np.ones(n // 2), np.ones(n // 2)])[:, None]
    idx = rng.permutation(n)
    X, y = X[idx], y[idx]
    return X[:45], y[:45], X[45:], y[45:]
