"""Type definitions for sigma-point quadrature.

Provides the core data types shared by every quadrature rule:

- :class:`PointSet`: A weighted sigma-point cloud with separate weight
  vectors for the mean and for the covariance.
- :class:`Quadrature`: Structural protocol implemented by the quadrature
  rules in this package.
- :func:`point_covariance`: Covariance-weighted cross product of two
  point sets generated from the same abscissa pattern.

:class:`PointSet` is a :class:`~typing.NamedTuple`, which JAX treats as a
pytree, so point sets can cross ``jax.jit`` boundaries.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, NamedTuple, Protocol

import jax.numpy as jnp
from jax import Array

from sigmafusion.errors import DimensionMismatchError

if TYPE_CHECKING:
    from sigmafusion.belief import GaussianBelief


class PointSet(NamedTuple):
    """Weighted sigma-point cloud.

    Attributes:
        points: Point matrix of shape ``(P, d)``; row ``i`` is point ``i``.
        mean_weights: Weights of shape ``(P,)`` used for the weighted mean.
            Sum to one.
        covariance_weights: Weights of shape ``(P,)`` used for weighted
            covariances. May contain negative entries and need not sum to
            one.
    """

    points: Array
    mean_weights: Array
    covariance_weights: Array

    @property
    def number_of_points(self) -> int:
        """Number of points ``P``."""
        return self.points.shape[0]

    @property
    def dimension(self) -> int:
        """Dimension ``d`` of each point."""
        return self.points.shape[1]

    def center(self) -> Array:
        """Mean-weighted average of the points, shape ``(d,)``."""
        return jnp.einsum("i,ij->j", self.mean_weights, self.points)

    def centered_points(self) -> Array:
        """Points with the weighted center subtracted, shape ``(P, d)``."""
        return self.points - self.center()[None, :]

    def mean_weights_vector(self) -> Array:
        """Mean weights, shape ``(P,)``."""
        return self.mean_weights

    def covariance_weights_vector(self) -> Array:
        """Covariance weights, shape ``(P,)``."""
        return self.covariance_weights


def point_covariance(a: PointSet, b: PointSet) -> Array:
    """Covariance-weighted cross product of two point sets.

    Computes ``sum_i w_i (a_i - mean(a)) (b_i - mean(b))^T`` using the
    covariance weights of *a*. Both point sets must come from the same
    abscissa pattern (e.g. state points and the observation points
    propagated from them), so they share one weight vector.

    Args:
        a: Point set with ``P`` points of dimension ``da``.
        b: Point set with ``P`` points of dimension ``db``.

    Returns:
        jax.Array: Matrix of shape ``(da, db)``.

    Raises:
        DimensionMismatchError: If the point counts differ.
    """
    if a.number_of_points != b.number_of_points:
        raise DimensionMismatchError(
            f"Point sets have {a.number_of_points} and {b.number_of_points} points"
        )
    return jnp.einsum(
        "i,ij,ik->jk", a.covariance_weights, a.centered_points(), b.centered_points()
    )


class Quadrature(Protocol):
    """Protocol for deterministic sigma-point quadrature rules."""

    def number_of_points(self, dimension: int) -> int: ...

    def transform_to_points(
        self,
        prior: GaussianBelief,
        noise_prior: GaussianBelief | None = None,
    ) -> tuple[PointSet, PointSet]: ...

    def propagate_points(
        self,
        fn: Callable[[Array, Array], Array],
        state_points: PointSet,
        noise_points: PointSet,
    ) -> PointSet: ...
