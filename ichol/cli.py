#!/usr/bin/python3
# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BUSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

"""
Train an incomplete-Cholesky kernel model from the command line and print
the checkpoint trace.
"""

import argparse
import logging
import pathlib

import numpy as np
import pandas as pd

from .split import holdout_split
from .wrapper import ICholWrapper

logger = logging.getLogger(__name__)


def load_array(path: str) -> np.ndarray:
    """Read a .npy file or a header-less .csv file into a float array."""
    p = pathlib.Path(path)
    if p.suffix == ".npy":
        return np.load(p).astype(float)
    if p.suffix == ".csv":
        return pd.read_csv(p, header=None).to_numpy(dtype=float)
    raise ValueError(f"{path}: expected a .npy or .csv file")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ichol",
        description="RBF kernel least squares on a pivoted incomplete "
        "Cholesky factor, with the rank picked on a hold-out split.",
    )
    parser.add_argument("xtr", help="training points (.npy or .csv)")
    parser.add_argument("ytr", help="training targets (.npy or .csv)")
    parser.add_argument("--xva", help="validation points")
    parser.add_argument("--yva", help="validation targets")
    parser.add_argument(
        "--holdout",
        type=float,
        default=0.2,
        help="fraction of the training set held out when --xva/--yva are "
        "not given (default: 0.2)",
    )
    parser.add_argument("--config", help="YAML option file")
    parser.add_argument("--rank-max", type=int, help="column budget")
    parser.add_argument("--n-rank", type=int, help="number of checkpoints")
    parser.add_argument("--sigma", type=float, help="RBF bandwidth")
    parser.add_argument("--perf", help="macroavg, precrec or rmse")
    parser.add_argument("--reduce", help="mean, min, max or median")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--log-level", default="WARNING")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.WARNING),
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    X = load_array(args.xtr)
    y = load_array(args.ytr)
    if (args.xva is None) != (args.yva is None):
        raise SystemExit("--xva and --yva must be given together")
    if args.xva is not None:
        X_va, y_va = load_array(args.xva), load_array(args.yva)
    else:
        X, y, X_va, y_va = holdout_split(X, y, args.holdout, seed=args.seed)
        logger.info(f"hold-out split: {X.shape[0]} train / {X_va.shape[0]} val")

    w = ICholWrapper.from_config(args.config) if args.config else ICholWrapper()
    if args.rank_max is not None:
        w.set_rank_max(args.rank_max)
    elif "paramsel.rank_max" not in w.opt:
        w.set_rank_max(X.shape[0])
    if args.n_rank is not None:
        w.set_n_rank(args.n_rank)
    elif "paramsel.n_rank" not in w.opt:
        w.set_n_rank(10)
    if args.sigma is not None:
        w.set_sigma(args.sigma)
    elif "paramsel.sigma" not in w.opt:
        w.set_sigma(1.0)
    if args.perf is not None:
        w.set_perf(args.perf)
    if args.reduce is not None:
        w.set_reduce(args.reduce)
    w.set_validation(X_va, y_va)

    model = w.train(X, y)
    print(model.to_frame().to_markdown(index=False))
    print(f"best rank: {model.best_rank}  perf: {model.best_score:.6g}")
    return 0
