# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BUSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

"""
Rank checkpoints and best-model selection
"""

import enum
import logging
import time
from dataclasses import dataclass
from typing import List, Optional

import numpy as np
import pandas as pd

from .cholesky import PivotedCholesky
from .errors import NumericalDegeneracyError
from .performance import Aggregator, Metric, score
from .utils import round_half_up

logger = logging.getLogger(__name__)


def checkpoint_ranks(rank_max: int, n_rank: int) -> List[int]:
    """
    Geometrically spaced ranks at which the partial model is scored.

    Iteration indices round(m^((j+1)/n_rank)) - 1 for j < n_rank,
    deduplicated and sorted; the returned ranks are index + 1, so the
    last one is always rank_max.

    >>> checkpoint_ranks(3, 2)
    [2, 3]
    """
    rank_max = int(rank_max)
    n_rank = int(n_rank)
    if rank_max < 1:
        raise ValueError(f"rank_max must be positive, got {rank_max}")
    if n_rank < 0:
        raise ValueError(f"n_rank must be non-negative, got {n_rank}")
    ranks = {
        round_half_up(rank_max ** ((j + 1.0) / n_rank)) for j in range(n_rank)
    }
    return sorted(r for r in ranks if 1 <= r <= rank_max)


@dataclass(frozen=True)
class Checkpoint:
    rank: int
    score: float
    elapsed_ms: float


@dataclass(frozen=True, eq=False)
class TrainedModel:
    """The frozen outcome of one training run."""

    alpha: np.ndarray
    best_rank: int
    best_score: float
    ranks: np.ndarray
    perfs: np.ndarray
    times: np.ndarray

    def to_frame(self) -> pd.DataFrame:
        """Checkpoint trace as a table, one row per evaluated rank."""
        df = pd.DataFrame(
            {"rank": self.ranks, "perf": self.perfs, "ms": self.times}
        )
        df["best"] = df["rank"] == self.best_rank
        return df


class SelectorState(enum.Enum):
    INITIALIZED = "initialized"
    ITERATING = "iterating"
    CHECKPOINTED = "checkpointed"
    FINALIZED = "finalized"


class ModelSelector:
    """
    Keeps the checkpoint trace and the best model seen so far.

    INITIALIZED -> ITERATING           start()
    ITERATING   -> CHECKPOINTED        record()
    CHECKPOINTED-> ITERATING           resume()
    ITERATING   -> FINALIZED           finalize()

    A new best needs a strictly larger score, so on ties the lower rank
    stays selected.
    """

    def __init__(self):
        self.state = SelectorState.INITIALIZED
        self.checkpoints: List[Checkpoint] = []
        self.best_alpha: Optional[np.ndarray] = None
        self.best_rank = 0
        self.best_score = -np.inf
        self._t0 = 0.0

    def _expect(self, *states: SelectorState) -> None:
        if self.state not in states:
            raise RuntimeError(
                f"selector is {self.state.value}, expected "
                + " or ".join(s.value for s in states)
            )

    def start(self) -> None:
        self._expect(SelectorState.INITIALIZED)
        self._t0 = time.perf_counter()
        self.state = SelectorState.ITERATING

    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self._t0) * 1000.0

    def record(self, rank: int, perf: float, alpha: np.ndarray) -> bool:
        """
        Append a checkpoint; returns True if it became the best model.
        """
        self._expect(SelectorState.ITERATING)
        self.state = SelectorState.CHECKPOINTED
        improved = perf > self.best_score
        if improved:
            self.best_score = perf
            self.best_rank = rank
            self.best_alpha = alpha
        self.checkpoints.append(Checkpoint(rank, perf, self.elapsed_ms()))
        logger.debug(
            f"checkpoint rank={rank} perf={perf:.6g}"
            + (" (new best)" if improved else "")
        )
        return improved

    def resume(self) -> None:
        self._expect(SelectorState.CHECKPOINTED)
        self.state = SelectorState.ITERATING

    def finalize(self) -> TrainedModel:
        self._expect(SelectorState.ITERATING)
        self.state = SelectorState.FINALIZED
        if self.best_alpha is None:
            if not self.checkpoints:
                raise RuntimeError("no checkpoint was recorded")
            ranks = [c.rank for c in self.checkpoints]
            raise NumericalDegeneracyError(
                f"every checkpoint scored NaN (ranks {ranks})"
            )
        alpha = self.best_alpha.copy()
        alpha.setflags(write=False)
        return TrainedModel(
            alpha=alpha,
            best_rank=self.best_rank,
            best_score=float(self.best_score),
            ranks=np.array([c.rank for c in self.checkpoints], dtype=int),
            perfs=np.array([c.score for c in self.checkpoints]),
            times=np.array([c.elapsed_ms for c in self.checkpoints]),
        )


def evaluate_checkpoint(
    chol: PivotedCholesky,
    K_va: np.ndarray,
    y_va: np.ndarray,
    metric: Metric = Metric.MACROAVG,
    reduce: Aggregator = Aggregator.MEAN,
):
    """
    Score the model at the current rank of `chol` on the hold-out split.

    Parameters
    ----------
    chol : PivotedCholesky
        Read only here.
    K_va : (n_va, n) ndarray
        Kernel between validation points and the training points, in the
        original training order.
    y_va : (n_va, t) ndarray

    Returns
    -------
    perf  : float
    alpha : (n, t) ndarray, rows in the original training order
    """
    alpha = chol.coefficients()
    pred = K_va @ alpha
    return score(pred, y_va, metric, reduce), alpha
