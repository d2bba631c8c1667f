# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BUSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

import numpy as np
import pytest

from ichol.cholesky import PivotedCholesky
from ichol.errors import NumericalDegeneracyError
from ichol.kernels import rbf_kernel
from ichol.selection import (
    ModelSelector,
    SelectorState,
    checkpoint_ranks,
    evaluate_checkpoint,
)
from ichol.utils import inverse_permutation


@pytest.mark.parametrize(
    "rank_max, n_rank, expected",
    [
        (3, 2, [2, 3]),
        (1, 1, [1]),
        (1, 4, [1]),
        (100, 2, [10, 100]),
        (1000, 3, [10, 100, 1000]),
        (2, 5, [1, 2]),
        (10, 0, []),
    ],
)
def test_checkpoint_ranks(rank_max, n_rank, expected):
    assert checkpoint_ranks(rank_max, n_rank) == expected


def test_checkpoint_ranks_are_strictly_increasing_and_end_at_budget():
    for m in range(1, 60):
        for k in range(1, 8):
            ranks = checkpoint_ranks(m, k)
            assert ranks == sorted(set(ranks))
            assert 1 <= ranks[0] and ranks[-1] == m
            assert len(ranks) <= k


def test_checkpoint_ranks_reject_bad_arguments():
    with pytest.raises(ValueError):
        checkpoint_ranks(0, 3)
    with pytest.raises(ValueError):
        checkpoint_ranks(5, -1)


def _run(scores):
    sel = ModelSelector()
    sel.start()
    for rank, s in enumerate(scores, start=1):
        sel.record(rank, s, np.full((3, 1), float(rank)))
        sel.resume()
    return sel.finalize()


def test_best_is_first_argmax():
    scores = [0.2, 0.7, 0.5, 0.7, 0.1]
    model = _run(scores)
    assert model.best_rank == 2
    assert model.best_score == 0.7
    assert model.best_rank == model.ranks[int(np.argmax(model.perfs))]
    np.testing.assert_array_equal(model.alpha, np.full((3, 1), 2.0))
    np.testing.assert_array_equal(model.perfs, scores)


def test_strictly_better_score_replaces_best():
    model = _run([0.5, 0.5 + 1e-12])
    assert model.best_rank == 2


def test_negative_scores_are_recorded():
    model = _run([-3.0, -1.0, -2.0])
    assert model.best_rank == 2
    assert model.best_score == -1.0


def test_trace_times_are_non_decreasing():
    model = _run([0.1, 0.2, 0.3])
    assert len(model.times) == 3
    assert np.all(np.diff(model.times) >= 0.0)


def test_state_machine():
    sel = ModelSelector()
    assert sel.state is SelectorState.INITIALIZED
    with pytest.raises(RuntimeError):
        sel.record(1, 0.0, np.zeros((1, 1)))
    sel.start()
    assert sel.state is SelectorState.ITERATING
    with pytest.raises(RuntimeError):
        sel.start()
    sel.record(1, 0.0, np.zeros((1, 1)))
    assert sel.state is SelectorState.CHECKPOINTED
    with pytest.raises(RuntimeError):
        sel.finalize()
    sel.resume()
    sel.finalize()
    assert sel.state is SelectorState.FINALIZED
    with pytest.raises(RuntimeError):
        sel.resume()


def test_finalize_without_checkpoint_fails():
    sel = ModelSelector()
    sel.start()
    with pytest.raises(RuntimeError):
        sel.finalize()


def test_frozen_model_and_frame():
    model = _run([0.3, 0.9])
    with pytest.raises(ValueError):
        model.alpha[0, 0] = 1.0
    df = model.to_frame()
    assert list(df.columns) == ["rank", "perf", "ms", "best"]
    assert df["best"].tolist() == [False, True]


def test_all_nan_scores_are_a_degeneracy():
    sel = ModelSelector()
    sel.start()
    for rank in (2, 5):
        sel.record(rank, float("nan"), np.zeros((3, 1)))
        sel.resume()
    with pytest.raises(NumericalDegeneracyError, match="NaN"):
        sel.finalize()


def test_nan_score_never_becomes_best():
    model = _run([float("nan"), 0.4, float("nan")])
    assert model.best_rank == 2
    assert len(model.perfs) == 3


def test_checkpoint_evaluation_leaves_decomposition_untouched(blobs):
    X, y, X_va, y_va = blobs
    chol = PivotedCholesky(X, y, sigma=1.0, rank_max=12)
    for _ in range(6):
        assert chol.step()
    K_va = rbf_kernel(X_va, chol.X, chol.sigma)

    buffers = {
        "G": chol.G,
        "Q": chol.qr.Q,
        "RR": chol.qr.RR,
        "diag": chol.diag,
        "perm": chol.perm,
        "y_perm": chol.y_perm,
    }
    before = {name: buf.copy() for name, buf in buffers.items()}

    perf, alpha = evaluate_checkpoint(chol, K_va, y_va)

    for name, buf in buffers.items():
        np.testing.assert_array_equal(buf, before[name], err_msg=name)
    assert chol.rank == 6
    assert np.isfinite(perf)

    np.testing.assert_array_equal(alpha, chol.coefficients())
    # rows are in the original sample order
    alpha_perm = chol.qr.coefficients(chol.y_perm)
    np.testing.assert_array_equal(alpha[chol.perm], alpha_perm)
    np.testing.assert_array_equal(alpha, alpha_perm[inverse_permutation(chol.perm)])
