# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BUSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

import logging
from typing import Optional

import numpy as np

from .errors import UntrainedModelError
from .kernels import rbf_kernel
from .options import OptFunction, OptionsList, OptNumberList, load_config
from .performance import Aggregator, Metric
from .rls import ichol_rls
from .selection import TrainedModel
from .utils import as_matrix

logger = logging.getLogger(__name__)

RESULT_KEYS = ("alpha", "acc", "times", "ranks", "maxRank", "maxPerf")


class ICholWrapper:
    """
    RBF kernel least squares trained on a pivoted incomplete Cholesky
    factor whose rank is picked on a validation split.

    Parameters live in an option tree::

        paramsel.rank_max   column budget
        paramsel.n_rank     number of checkpoint ranks
        paramsel.sigma      RBF bandwidth
        paramsel.reduce     aggregator over the accuracy vector (mean)
        split.Xva, split.yva
        hoperf              performance metric name (macroavg)

    and train() publishes ``paramsel.alpha``, ``paramsel.acc`` (score per
    checkpoint), ``paramsel.times`` (ms since the loop started),
    ``paramsel.ranks``, ``paramsel.maxRank`` and ``paramsel.maxPerf``.

    Example
    -------
    >>> w = ICholWrapper()
    >>> w.set_rank_max(50); w.set_n_rank(5); w.set_sigma(1.0)
    >>> w.set_validation(X_va, y_va)
    >>> w.train(X, y)
    >>> pred = w.evaluate(X_test)
    """

    def __init__(self, name: str = "ichol", opt: Optional[OptionsList] = None):
        self.name = name
        self.opt = opt if opt is not None else OptionsList(name)
        for key in ("paramsel", "split", "optimizer"):
            if key not in self.opt:
                self.opt.set(key, {})
        if "kernel.type" not in self.opt:
            self.opt.set("kernel.type", "rbf")
        if "hoperf" not in self.opt:
            self.opt.set("hoperf", Metric.MACROAVG.value)
        if "paramsel.reduce" not in self.opt:
            self.opt.set("paramsel.reduce", Aggregator.MEAN)

        # flat lists from a config file: targets form one column, points one row
        if isinstance(self._split_option("yva"), OptNumberList):
            self.set_yva(list(self.opt.get("split.yva").value))
        if isinstance(self._split_option("Xva"), OptNumberList):
            self.set_xva(np.atleast_2d(self.opt.get("split.Xva").value))
        self.model: Optional[TrainedModel] = None

        # names are resolved now so a typo fails before any training
        Metric.resolve(self.opt.get_string("hoperf"))
        if not isinstance(self.opt.get("paramsel.reduce"), OptFunction):
            self.set_reduce(self.opt.get_string("paramsel.reduce"))

    def _split_option(self, key: str):
        path = f"split.{key}"
        return self.opt.get(path) if path in self.opt else None

    @classmethod
    def from_config(cls, config_path: str, name: str = "ichol") -> "ICholWrapper":
        """Build a wrapper from a YAML option file (see options.load_config)."""
        return cls(name, opt=load_config(config_path, name=name))

    # -----------------------------------------------------------------
    # setters
    # -----------------------------------------------------------------
    def set_rank_max(self, rank: int) -> None:
        self.opt.set("paramsel.rank_max", int(rank))

    def set_n_rank(self, n_rank: int) -> None:
        self.opt.set("paramsel.n_rank", int(n_rank))

    def set_sigma(self, sigma: float) -> None:
        self.opt.set("paramsel.sigma", float(sigma))

    def set_xva(self, X_va) -> None:
        self.opt.set("split.Xva", as_matrix(X_va, name="X_va"))

    def set_yva(self, y_va) -> None:
        self.opt.set("split.yva", as_matrix(y_va, name="y_va"))

    def set_validation(self, X_va, y_va) -> None:
        self.set_xva(X_va)
        self.set_yva(y_va)

    def set_perf(self, name: str) -> None:
        self.opt.set("hoperf", Metric.resolve(name).value)

    def set_reduce(self, name: str) -> None:
        self.opt.set("paramsel.reduce", Aggregator.resolve(name))

    # -----------------------------------------------------------------
    # training / prediction
    # -----------------------------------------------------------------
    def trained_model(self) -> bool:
        return "paramsel.alpha" in self.opt

    def train(self, X, y) -> TrainedModel:
        opt = self.opt
        X = as_matrix(X, name="X")
        tol = opt.get_number("paramsel.tol") if "paramsel.tol" in opt else None

        for key in RESULT_KEYS:
            opt.remove(f"paramsel.{key}")
        opt.remove("optimizer.X")
        self.model = None

        model = ichol_rls(
            X,
            y,
            opt.get_matrix("split.Xva"),
            opt.get_matrix("split.yva"),
            rank_max=int(opt.get_number("paramsel.rank_max")),
            n_rank=int(opt.get_number("paramsel.n_rank")),
            sigma=opt.get_number("paramsel.sigma"),
            metric=opt.get_string("hoperf"),
            reduce=opt.get_function("paramsel.reduce"),
            tol=tol,
        )

        opt.set("paramsel.alpha", np.array(model.alpha))
        opt.set("paramsel.acc", model.perfs[None, :])
        opt.set("paramsel.times", model.times[None, :])
        opt.set("paramsel.ranks", [float(r) for r in model.ranks])
        opt.set("paramsel.maxRank", model.best_rank)
        opt.set("paramsel.maxPerf", model.best_score)
        opt.set("optimizer.X", X)
        self.model = model
        return model

    def evaluate(self, X) -> np.ndarray:
        """
        Predictions for the rows of X with the selected coefficients.

        Raises
        ------
        UntrainedModelError : if train() has not completed.
        """
        if not self.trained_model():
            raise UntrainedModelError()
        X = as_matrix(X, name="X")
        X_tr = self.opt.get_matrix("optimizer.X")
        alpha = self.opt.get_matrix("paramsel.alpha")
        K = rbf_kernel(X, X_tr, self.opt.get_number("paramsel.sigma"))
        return K @ alpha
