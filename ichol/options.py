# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BUSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

"""
Option store
============

Parameters and results travel in a tree of tagged options. Each option is
exactly one of a closed set of variants:

- `OptString`, `OptNumber`
- `OptStringList`, `OptNumberList`
- `OptMatrix`  (a 2-D ndarray)
- `OptFunction` (a resolved `Aggregator`)
- `OptionsList` (a named, nested mapping of options)

Reading an option under the wrong variant raises `OptionTypeError`;
there is no implicit conversion between variants.

Example
-------
>>> opt = OptionsList("demo")
>>> opt.set("paramsel.sigma", 0.5)
>>> opt.get_number("paramsel.sigma")
0.5
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterator, Tuple, Union

import numpy as np
import yaml

from .errors import OptionNotFoundError, OptionTypeError
from .performance import Aggregator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OptString:
    value: str


@dataclass(frozen=True)
class OptNumber:
    value: float


@dataclass(frozen=True)
class OptStringList:
    value: Tuple[str, ...]


@dataclass(frozen=True)
class OptNumberList:
    value: Tuple[float, ...]


@dataclass(frozen=True, eq=False)
class OptMatrix:
    value: np.ndarray


@dataclass(frozen=True)
class OptFunction:
    value: Aggregator


Option = Union[
    OptString,
    OptNumber,
    OptStringList,
    OptNumberList,
    OptMatrix,
    OptFunction,
    "OptionsList",
]

_LEAF_VARIANTS = (
    OptString,
    OptNumber,
    OptStringList,
    OptNumberList,
    OptMatrix,
    OptFunction,
)


def wrap(value) -> "Option":
    """
    Turn a plain Python value into the matching option variant.

    bool/int/float -> OptNumber, str -> OptString, Aggregator -> OptFunction,
    ndarray -> OptMatrix, dict -> OptionsList, list of str -> OptStringList,
    flat list of numbers -> OptNumberList, nested list of numbers -> OptMatrix.
    Values that already are options pass through unchanged.
    """
    if isinstance(value, _LEAF_VARIANTS) or isinstance(value, OptionsList):
        return value
    if isinstance(value, Aggregator):
        return OptFunction(value)
    if isinstance(value, str):
        return OptString(value)
    if isinstance(value, (bool, int, float, np.integer, np.floating)):
        return OptNumber(float(value))
    if isinstance(value, np.ndarray):
        return OptMatrix(np.atleast_2d(value))
    if isinstance(value, dict):
        return OptionsList.from_dict(value)
    if isinstance(value, (list, tuple)):
        if all(isinstance(v, str) for v in value):
            return OptStringList(tuple(value))
        if any(isinstance(v, (list, tuple)) for v in value):
            return OptMatrix(np.atleast_2d(np.asarray(value, dtype=float)))
        return OptNumberList(tuple(float(v) for v in value))
    raise TypeError(f"cannot store a value of type {type(value).__name__}")


def unwrap(opt: "Option"):
    """Inverse of wrap() for leaves; OptionsList becomes a plain dict."""
    if isinstance(opt, OptionsList):
        return opt.to_dict()
    if isinstance(opt, OptStringList):
        return list(opt.value)
    if isinstance(opt, OptNumberList):
        return list(opt.value)
    if isinstance(opt, OptMatrix):
        return opt.value.tolist()
    if isinstance(opt, OptFunction):
        return opt.value.value
    if isinstance(opt, (OptString, OptNumber)):
        return opt.value
    raise TypeError(f"not an option: {type(opt).__name__}")


class OptionsList:
    """A named mapping of options, addressed with dotted paths."""

    def __init__(self, name: str = "options"):
        self.name = name
        self._opts: Dict[str, Option] = {}

    # -----------------------------------------------------------------
    # construction / export
    # -----------------------------------------------------------------
    @classmethod
    def from_dict(cls, data: dict, name: str = "options") -> "OptionsList":
        opt = cls(name)
        for key, value in data.items():
            if isinstance(value, dict):
                opt._opts[key] = cls.from_dict(value, name=key)
            else:
                opt._opts[key] = wrap(value)
        return opt

    def to_dict(self) -> dict:
        return {key: unwrap(value) for key, value in self._opts.items()}

    # -----------------------------------------------------------------
    # dotted-path access
    # -----------------------------------------------------------------
    def _parent(self, path: str, create: bool = False) -> Tuple["OptionsList", str]:
        *parents, leaf = path.split(".")
        node = self
        for key in parents:
            child = node._opts.get(key)
            if child is None:
                if not create:
                    raise OptionNotFoundError(path)
                child = OptionsList(key)
                node._opts[key] = child
            if not isinstance(child, OptionsList):
                raise OptionTypeError(
                    f"{key!r} in {path!r} holds {type(child).__name__}, "
                    "not OptionsList"
                )
            node = child
        return node, leaf

    def has(self, path: str) -> bool:
        try:
            self.get(path)
        except (OptionNotFoundError, OptionTypeError):
            return False
        return True

    def get(self, path: str) -> Option:
        node, leaf = self._parent(path)
        try:
            return node._opts[leaf]
        except KeyError:
            raise OptionNotFoundError(path) from None

    def set(self, path: str, value) -> None:
        """Store value at path, replacing what was there and creating
        intermediate lists as needed."""
        node, leaf = self._parent(path, create=True)
        opt = wrap(value)
        if isinstance(opt, OptionsList):
            opt.name = leaf
        node._opts[leaf] = opt

    def remove(self, path: str) -> None:
        """Drop the option at path; a missing path is not an error."""
        try:
            node, leaf = self._parent(path)
        except OptionNotFoundError:
            return
        node._opts.pop(leaf, None)

    def __contains__(self, path: str) -> bool:
        return self.has(path)

    def __iter__(self) -> Iterator[str]:
        return iter(self._opts)

    def __len__(self) -> int:
        return len(self._opts)

    def __repr__(self) -> str:
        return f"OptionsList({self.name!r}, keys={list(self._opts)})"

    # -----------------------------------------------------------------
    # checked accessors
    # -----------------------------------------------------------------
    def _get_as(self, path: str, variant):
        opt = self.get(path)
        if not isinstance(opt, variant):
            raise OptionTypeError(
                f"option {path!r} is {type(opt).__name__}, "
                f"not {variant.__name__}"
            )
        return opt

    def get_number(self, path: str) -> float:
        return self._get_as(path, OptNumber).value

    def get_string(self, path: str) -> str:
        return self._get_as(path, OptString).value

    def get_matrix(self, path: str) -> np.ndarray:
        return self._get_as(path, OptMatrix).value

    def get_function(self, path: str) -> Aggregator:
        return self._get_as(path, OptFunction).value

    def get_list(self, path: str) -> "OptionsList":
        return self._get_as(path, OptionsList)

    def get_number_list(self, path: str) -> Tuple[float, ...]:
        return self._get_as(path, OptNumberList).value

    def get_string_list(self, path: str) -> Tuple[str, ...]:
        return self._get_as(path, OptStringList).value


def load_config(config_path: str, name: str = "options") -> OptionsList:
    """
    Read a YAML file into an OptionsList.

    Parameters
    ----------
    config_path : str
        Path to a YAML mapping, e.g.::

            paramsel:
              rank_max: 200
              n_rank: 10
              sigma: 0.8
            hoperf: macroavg
    """
    with open(config_path, "r", encoding="utf-8") as f:
        cfg = yaml.safe_load(f) or {}
    if not isinstance(cfg, dict):
        raise ValueError(f"{config_path}: top level must be a mapping")
    logger.info(f"loaded options from {config_path}: {sorted(cfg)}")
    return OptionsList.from_dict(cfg, name=name)
