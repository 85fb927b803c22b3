"""Exceptions raised by the vesting calculators."""

from __future__ import annotations

from typing import Iterable, List


class SchemeValidationError(ValueError):
    """Invalid scheme or market input, raised before any computation."""

    def __init__(self, errors: Iterable[str]):
        self.errors: List[str] = list(errors)
        super().__init__("; ".join(self.errors))


class CalculationCancelled(RuntimeError):
    pass


class CalculationTimeout(TimeoutError):
    pass
