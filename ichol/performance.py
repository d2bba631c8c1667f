# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BUSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

"""
Hold-out performance measures and the aggregators that reduce them.

Every metric returns a 1-D "accuracy" vector where larger is better;
names are resolved to enum members once, when a model is configured.
"""

import enum
import logging

import numpy as np

from .errors import UnknownFunctionError

logger = logging.getLogger(__name__)


def _check_shapes(pred: np.ndarray, y: np.ndarray):
    pred = np.asarray(pred, dtype=float)
    y = np.asarray(y, dtype=float)
    if pred.ndim == 1:
        pred = pred[:, None]
    if y.ndim == 1:
        y = y[:, None]
    if pred.shape != y.shape:
        raise ValueError(
            f"predictions {pred.shape} and targets {y.shape} do not conform"
        )
    return pred, y


def macro_average(pred: np.ndarray, y: np.ndarray) -> np.ndarray:
    """
    Per-class accuracy of a one-vs-all classifier.

    With t > 1 columns the predicted and true classes are the column
    argmax. With a single column the class is the sign, giving the two
    classes {-1, +1}. Classes with no samples in y are left out.
    """
    pred, y = _check_shapes(pred, y)
    if y.shape[1] == 1:
        y_cls = (y[:, 0] > 0).astype(int)
        p_cls = (pred[:, 0] > 0).astype(int)
        n_cls = 2
    else:
        y_cls = np.argmax(y, axis=1)
        p_cls = np.argmax(pred, axis=1)
        n_cls = y.shape[1]

    acc = []
    for c in range(n_cls):
        mask = y_cls == c
        if not mask.any():
            continue
        acc.append(np.mean(p_cls[mask] == c))
    return np.asarray(acc, dtype=float)


def average_precision(pred: np.ndarray, y: np.ndarray) -> np.ndarray:
    """
    Average precision of each column, ranking samples by decreasing
    prediction and counting y > 0 as relevant.
    """
    pred, y = _check_shapes(pred, y)
    ap = np.zeros(y.shape[1])
    for c in range(y.shape[1]):
        order = np.argsort(-pred[:, c], kind="stable")
        relevant = y[order, c] > 0
        n_rel = int(relevant.sum())
        if n_rel == 0:
            continue
        hits = np.cumsum(relevant)
        precision = hits / np.arange(1, len(relevant) + 1)
        ap[c] = float(np.sum(precision[relevant]) / n_rel)
    return ap


def negative_rmse(pred: np.ndarray, y: np.ndarray) -> np.ndarray:
    """Minus the root mean squared error of each column."""
    pred, y = _check_shapes(pred, y)
    return -np.sqrt(np.mean((pred - y) ** 2, axis=0))


class Metric(enum.Enum):
    MACROAVG = "macroavg"
    PRECREC = "precrec"
    RMSE = "rmse"

    @classmethod
    def resolve(cls, name) -> "Metric":
        if isinstance(name, cls):
            return name
        try:
            return cls(str(name).lower())
        except ValueError:
            known = ", ".join(m.value for m in cls)
            raise UnknownFunctionError(
                f"unknown performance metric {name!r} (known: {known})"
            ) from None

    def __call__(self, pred: np.ndarray, y: np.ndarray) -> np.ndarray:
        return _METRICS[self](pred, y)


_METRICS = {
    Metric.MACROAVG: macro_average,
    Metric.PRECREC: average_precision,
    Metric.RMSE: negative_rmse,
}


class Aggregator(enum.Enum):
    MEAN = "mean"
    MIN = "min"
    MAX = "max"
    MEDIAN = "median"

    @classmethod
    def resolve(cls, name) -> "Aggregator":
        if isinstance(name, cls):
            return name
        try:
            return cls(str(name).lower())
        except ValueError:
            known = ", ".join(a.value for a in cls)
            raise UnknownFunctionError(
                f"unknown aggregator {name!r} (known: {known})"
            ) from None

    def __call__(self, values) -> float:
        values = np.asarray(values, dtype=float).ravel()
        if values.size == 0:
            raise ValueError("cannot aggregate an empty vector")
        return float(_AGGREGATORS[self](values))


_AGGREGATORS = {
    Aggregator.MEAN: np.mean,
    Aggregator.MIN: np.min,
    Aggregator.MAX: np.max,
    Aggregator.MEDIAN: np.median,
}


def score(
    pred: np.ndarray,
    y: np.ndarray,
    metric: Metric = Metric.MACROAVG,
    reduce: Aggregator = Aggregator.MEAN,
) -> float:
    """Scalar hold-out score: the metric's accuracy vector, reduced."""
    acc = metric(pred, y)
    value = reduce(acc)
    logger.debug(f"{metric.value} acc={acc} -> {reduce.value} {value:.6g}")
    return value
