# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BUSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

import logging

import numpy as np
import pytest

from ichol.errors import NumericalDegeneracyError, UnknownFunctionError
from ichol.kernels import rbf_kernel
from ichol.rls import ichol_rls

logger = logging.getLogger(__name__)

X4 = np.array([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0], [3.0, 3.0]])
Y4 = np.array([[1.0], [1.0], [-1.0], [-1.0]])


def test_four_sample_scenario():
    X_va = np.array([[0.2, 0.1], [2.5, 2.8]])
    y_va = np.array([[1.0], [-1.0]])
    model = ichol_rls(X4, Y4, X_va, y_va, rank_max=3, n_rank=2, sigma=1.0)
    assert model.ranks.tolist() == [2, 3]
    assert model.perfs.shape == (2,)
    assert model.times.shape == (2,)
    assert model.best_rank == model.ranks[int(np.argmax(model.perfs))]
    assert model.best_score == model.perfs.max()
    assert model.alpha.shape == (4, 1)


def test_four_sample_tie_keeps_lower_rank():
    # far away validation points see a zero kernel, so every rank
    # predicts exactly the same thing
    X_va = np.array([[100.0, 100.0], [-100.0, -100.0]])
    y_va = np.array([[1.0], [-1.0]])
    model = ichol_rls(X4, Y4, X_va, y_va, rank_max=3, n_rank=2, sigma=1.0)
    assert model.perfs[0] == model.perfs[1]
    assert model.best_rank == 2


def test_selection_is_argmax_over_trace(blobs):
    X, y, X_va, y_va = blobs
    model = ichol_rls(X, y, X_va, y_va, rank_max=15, n_rank=3, sigma=1.0)
    logger.debug(f"\n{model.to_frame()}")
    assert model.ranks.tolist() == [2, 6, 15]
    assert len(model.perfs) == len(model.ranks)
    first_best = int(np.argmax(model.perfs))
    assert model.best_rank == model.ranks[first_best]
    assert model.best_score == model.perfs[first_best]
    # separable blobs are easy
    assert model.best_score > 0.8


def test_training_is_idempotent(blobs):
    X, y, X_va, y_va = blobs
    a = ichol_rls(X, y, X_va, y_va, rank_max=10, n_rank=3, sigma=0.8)
    b = ichol_rls(X, y, X_va, y_va, rank_max=10, n_rank=3, sigma=0.8)
    np.testing.assert_array_equal(a.alpha, b.alpha)
    np.testing.assert_array_equal(a.perfs, b.perfs)
    assert a.best_rank == b.best_rank


def test_rank_one_budget():
    X_va = np.array([[0.5, 0.5]])
    y_va = np.array([[1.0]])
    model = ichol_rls(X4, Y4, X_va, y_va, rank_max=1, n_rank=1, sigma=1.0)
    assert model.ranks.tolist() == [1]
    assert model.perfs.shape == (1,)

    # first pivot is sample 0, the factor is its kernel column
    g = rbf_kernel(X4, X4[:1], sigma=1.0)
    gtg = float(np.sum(g * g))
    expected = g @ (g.T @ Y4) / gtg**2
    np.testing.assert_allclose(model.alpha, expected, rtol=1e-10)


def test_full_budget_is_full_cholesky(grid_points):
    y = np.array([[1.0], [-1.0], [1.0], [-1.0], [1.0], [-1.0]])
    model = ichol_rls(
        grid_points, y, grid_points, y, rank_max=6, n_rank=1, sigma=1.0,
        metric="rmse",
    )
    K = rbf_kernel(grid_points, grid_points, sigma=1.0)
    assert model.ranks.tolist() == [6]
    np.testing.assert_allclose(model.alpha, np.linalg.solve(K, y), atol=1e-8)
    # interpolates the training targets
    assert model.best_score == pytest.approx(0.0, abs=1e-8)


def test_multi_output_targets(blobs):
    X, y, X_va, y_va = blobs
    Y = np.hstack([y, -y])
    Y_va = np.hstack([y_va, -y_va])
    model = ichol_rls(X, Y, X_va, Y_va, rank_max=8, n_rank=2, sigma=1.0)
    assert model.alpha.shape == (X.shape[0], 2)


def test_early_stop_on_exhausted_residual(caplog):
    X = np.array([[0.0, 0.0], [0.0, 0.0], [1.0, 0.0]])
    y = np.array([1.0, 1.0, -1.0])
    X_va = np.array([[0.1, 0.0], [0.9, 0.0]])
    y_va = np.array([1.0, -1.0])

    with pytest.raises(NumericalDegeneracyError):
        ichol_rls(X, y, X_va, y_va, rank_max=3, n_rank=1, sigma=1.0)

    with caplog.at_level(logging.WARNING, logger="ichol"):
        model = ichol_rls(X, y, X_va, y_va, rank_max=3, n_rank=2, sigma=1.0)
    assert model.ranks.tolist() == [2]
    assert "exhausted" in caplog.text


def test_argument_checks():
    X_va = np.zeros((2, 2))
    y_va = np.zeros((2, 1))
    with pytest.raises(ValueError):
        ichol_rls(X4, Y4, X_va, y_va, rank_max=5, n_rank=2, sigma=1.0)
    with pytest.raises(ValueError):
        ichol_rls(X4, Y4, X_va, y_va, rank_max=3, n_rank=0, sigma=1.0)
    with pytest.raises(ValueError):
        ichol_rls(X4, Y4, X_va, np.zeros((3, 1)), rank_max=3, n_rank=2, sigma=1.0)
    with pytest.raises(ValueError):
        ichol_rls(X4, Y4, X_va, np.zeros((2, 2)), rank_max=3, n_rank=2, sigma=1.0)
    with pytest.raises(UnknownFunctionError):
        ichol_rls(X4, Y4, X_va, y_va, rank_max=3, n_rank=2, sigma=1.0, metric="f1")
