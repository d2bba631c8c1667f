# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BUSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

"""
ichol
=====

Low-rank kernel least squares for Gram matrices too large to factor:
a pivoted incomplete Cholesky decomposition of the RBF kernel, an
incremental QR of the factor that gives closed-form coefficients at every
rank, and hold-out scoring at a few geometrically spaced ranks to pick
the truncation.

Public API
~~~~~~~~~~
- Model
    - `ICholWrapper` (`train`, `evaluate`, parameter setters)
    - `ichol_rls`, `TrainedModel`
- Decomposition
    - `PivotedCholesky`, `incomplete_cholesky`, `select_pivot`
    - `IncrementalQR`
- Rank selection
    - `checkpoint_ranks`, `ModelSelector`
- Kernels and scoring
    - `rbf_kernel`, `kernel_column`, `Metric`, `Aggregator`
- Options
    - `OptionsList`, `load_config`
- Data
    - `holdout_split`

Everything else lives in sub-modules and is **not** considered part of the
stable interface.

Example
-------
>>> import numpy as np, ichol
>>> X = np.random.randn(200, 3); y = np.sign(X[:, :1])
>>> model = ichol.ichol_rls(X[:150], y[:150], X[150:], y[150:],
...                        rank_max=40, n_rank=4, sigma=1.5)
>>> model.best_rank in model.ranks
True
"""

from importlib.metadata import version as _pkg_version

from .cholesky import PivotedCholesky, incomplete_cholesky, select_pivot
from .errors import (
    ICholError,
    NumericalDegeneracyError,
    OptionNotFoundError,
    OptionTypeError,
    UnknownFunctionError,
    UntrainedModelError,
)
from .kernels import kernel_column, rbf_kernel, square_distance
from .options import OptionsList, load_config
from .performance import Aggregator, Metric
from .qr import IncrementalQR

# ---------------------------------------------------------------------
# Re-export the high-level functions users are expected to call.
# Each of these names is implemented in one of the internal sub-modules.
# ---------------------------------------------------------------------
from .rls import ichol_rls
from .selection import ModelSelector, TrainedModel, checkpoint_ranks
from .split import holdout_split
from .wrapper import ICholWrapper

__all__ = [
    "ICholWrapper",
    "ichol_rls",
    "TrainedModel",
    "PivotedCholesky",
    "incomplete_cholesky",
    "select_pivot",
    "IncrementalQR",
    "checkpoint_ranks",
    "ModelSelector",
    "rbf_kernel",
    "kernel_column",
    "square_distance",
    "Metric",
    "Aggregator",
    "OptionsList",
    "load_config",
    "holdout_split",
    "ICholError",
    "UntrainedModelError",
    "UnknownFunctionError",
    "OptionTypeError",
    "OptionNotFoundError",
    "NumericalDegeneracyError",
]

# ---------------------------------------------------------------------
# Version string (helps “pip show ichol”, Sphinx, etc.)
# ---------------------------------------------------------------------
try:  # installed via pip / build backend
    __version__ = _pkg_version(__name__)
except Exception:  # running from a checkout
    __version__ = "0.0.0.dev0"

# ---------------------------------------------------------------------
# Library code never configures logging; the CLI does.
# ---------------------------------------------------------------------
import logging as _logging

_logging.getLogger(__name__).addHandler(_logging.NullHandler())
