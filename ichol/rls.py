# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BUSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

import logging
from typing import Optional

import numpy as np

from .cholesky import PivotedCholesky
from .errors import NumericalDegeneracyError
from .kernels import rbf_kernel
from .performance import Aggregator, Metric
from .selection import (
    ModelSelector,
    TrainedModel,
    checkpoint_ranks,
    evaluate_checkpoint,
)
from .utils import as_matrix

logger = logging.getLogger(__name__)


def ichol_rls(
    X,
    y,
    X_va,
    y_va,
    rank_max: int,
    n_rank: int,
    sigma: float,
    metric="macroavg",
    reduce="mean",
    tol: Optional[float] = None,
    reorth: bool = False,
    dtype=np.float64,
) -> TrainedModel:
    """
    Kernel least squares on a pivoted incomplete Cholesky factor, with
    the rank chosen on a hold-out split.

    The factor grows one column per iteration up to rank_max. At each
    rank in checkpoint_ranks(rank_max, n_rank) the closed-form
    coefficients are scored on (X_va, y_va), and the best scoring rank
    (lowest on ties) is kept.

    Parameters
    ----------
    X : (n, d) array_like       training points
    y : (n, t) array_like       training targets
    X_va : (n_va, d) array_like validation points
    y_va : (n_va, t) array_like validation targets
    rank_max : int              column budget, 1 <= rank_max <= n
    n_rank : int                number of checkpoints, >= 1
    sigma : float               RBF bandwidth
    metric, reduce :            names (or enum members) of the hold-out
                                metric and of its reduction to a scalar
    tol : float | None          residual exhaustion threshold,
                                default_tol(dtype) when None

    Returns
    -------
    TrainedModel

    Raises
    ------
    ValueError : non-conforming inputs or parameters out of range.
    UnknownFunctionError : unknown metric or aggregator name.
    NumericalDegeneracyError : the residual vanished before the first
        checkpoint, or every checkpoint scored NaN.
    """
    metric = Metric.resolve(metric)
    reduce = Aggregator.resolve(reduce)

    X_va = as_matrix(X_va, dtype=dtype, name="X_va")
    y_va = as_matrix(y_va, dtype=dtype, name="y_va")
    if X_va.shape[0] != y_va.shape[0]:
        raise ValueError(
            f"X_va has {X_va.shape[0]} rows but y_va has {y_va.shape[0]}"
        )

    chol = PivotedCholesky(
        X, y, sigma=sigma, rank_max=rank_max, tol=tol, reorth=reorth, dtype=dtype
    )
    if y_va.shape[1] != chol.y_perm.shape[1]:
        raise ValueError(
            f"y has {chol.y_perm.shape[1]} columns but y_va has {y_va.shape[1]}"
        )
    if int(n_rank) < 1:
        raise ValueError(f"n_rank must be at least 1, got {n_rank}")
    ranks = set(checkpoint_ranks(chol.m, n_rank))

    K_va = rbf_kernel(X_va, chol.X, chol.sigma)

    logger.info(
        f"ichol: n={chol.n} d={chol.X.shape[1]} t={chol.y_perm.shape[1]} "
        f"rank_max={chol.m} checkpoints={sorted(ranks)} sigma={chol.sigma:g}"
    )

    selector = ModelSelector()
    selector.start()
    while chol.step():
        if chol.rank in ranks:
            perf, alpha = evaluate_checkpoint(chol, K_va, y_va, metric, reduce)
            selector.record(chol.rank, perf, alpha)
            selector.resume()

    if not selector.checkpoints:
        raise NumericalDegeneracyError(
            f"residual exhausted at rank {chol.rank}, before the first "
            f"checkpoint (rank {min(ranks)})"
        )
    if chol.exhausted:
        skipped = sorted(r for r in ranks if r > chol.rank)
        logger.warning(f"checkpoints {skipped} were not reached")

    model = selector.finalize()
    logger.info(
        f"ichol: best rank {model.best_rank} with {metric.value}="
        f"{model.best_score:.6g} after {model.times[-1]:.1f} ms"
    )
    return model
