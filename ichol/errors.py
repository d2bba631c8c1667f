# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BUSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

"""
Exceptions raised by ichol.

Each concrete error also derives from the builtin a caller would expect,
so ``except ValueError`` keeps working for unknown names and so on.
"""


class ICholError(Exception):
    """Base class for every error raised by this package."""


class UntrainedModelError(ICholError, RuntimeError):
    """evaluate() was called before train() produced a model."""

    def __init__(self, message: str = "Error, train model first"):
        super().__init__(message)


class UnknownFunctionError(ICholError, ValueError):
    """A metric or aggregator was requested by a name we do not know."""


class OptionTypeError(ICholError, TypeError):
    """An option was read under a variant it does not hold."""


class OptionNotFoundError(ICholError, KeyError):
    """No option lives at the requested dotted path."""


class NumericalDegeneracyError(ICholError, ArithmeticError):
    """The residual diagonal collapsed before any checkpoint was reached."""
