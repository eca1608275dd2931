"""Exception types raised by sigmafusion.

Every error derives from :class:`SigmaFusionError` and also from the
builtin exception that best describes it, so callers can catch either
the library-specific type or the builtin one:

- :class:`DimensionMismatchError` (``ValueError``) -- belief, model,
  point-set or observation dimensions disagree.
- :class:`NumericalError` (``ArithmeticError``) -- a numerical step could
  not be carried out reliably.
- :class:`SingularCovarianceError` -- a required matrix inverse is
  ill-conditioned or singular.
- :class:`InvalidModelShapeError` (``TypeError``) -- a model does not
  expose the interface an update policy needs.
"""

from __future__ import annotations


class SigmaFusionError(Exception):
    """Base class for all sigmafusion errors."""


class DimensionMismatchError(SigmaFusionError, ValueError):
    """Dimensions of a belief, model, point set or observation disagree."""


class InvalidModelShapeError(SigmaFusionError, TypeError):
    """A model lacks the interface required by the selected update policy."""


class NumericalError(SigmaFusionError, ArithmeticError):
    """A numerical step failed for the current predict or update call."""


class SingularCovarianceError(NumericalError):
    """A matrix that must be inverted is singular or ill-conditioned.

    Attributes:
        label: Name of the matrix that failed (e.g.
            ``"conditional innovation covariance"``).
        sensor_index: Index of the local sensor the matrix belongs to, or
            ``None`` when it is not sensor specific.
        condition_number: Condition number observed for the matrix.
    """

    def __init__(
        self,
        label: str,
        condition_number: float,
        sensor_index: int | None = None,
    ):
        self.label = label
        self.sensor_index = sensor_index
        self.condition_number = condition_number
        where = f" of sensor {sensor_index}" if sensor_index is not None else ""
        super().__init__(
            f"Cannot invert {label}{where}: condition number {condition_number:.3e}"
        )
