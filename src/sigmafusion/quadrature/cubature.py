"""Third-degree spherical-radial cubature rule.

The cubature rule (Arasaratnam & Haykin, 2009) places ``2d`` equally
weighted points at ``mean +/- sqrt(d) * S[:, j]`` where ``S`` is a square
root of the covariance. All weights are ``1 / (2d)`` and positive, which
keeps propagated covariances positive semi-definite.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

import jax.numpy as jnp
from jax import Array

from sigmafusion.belief import GaussianBelief
from sigmafusion.config import get_dtype
from sigmafusion.quadrature import _common
from sigmafusion.quadrature._types import PointSet


@dataclass(frozen=True)
class CubatureQuadrature:
    """Spherical-radial cubature quadrature with ``2d`` points."""

    def number_of_points(self, dimension: int) -> int:
        """Return ``2 * dimension``."""
        return 2 * dimension

    def weights(self, dimension: int) -> tuple[Array, Array]:
        if dimension < 1:
            raise ValueError(f"Dimension must be positive, got {dimension}")
        W = jnp.full(2 * dimension, 1.0 / (2.0 * dimension), dtype=get_dtype())
        return W, W

    def transform_to_points(
        self,
        prior: GaussianBelief,
        noise_prior: GaussianBelief | None = None,
    ) -> tuple[PointSet, PointSet]:
        """Generate cubature points for the joint ``(state, noise)`` Gaussian.

        Args:
            prior: State belief of dimension ``n``.
            noise_prior: Optional noise Gaussian of dimension ``q``.

        Returns:
            A tuple ``(state_points, noise_points)`` with ``2(n+q)`` points
            each and shared weights.
        """
        mean, cov = _common.joint_moments(prior, noise_prior)
        d = mean.shape[0]
        Wm, Wc = self.weights(d)

        root = _common.matrix_sqrt(d * cov)
        # Drop the center row; cubature has no point at the mean
        points = _common.symmetric_offsets(mean, root)[1:]

        return _common.split_points(points, Wm, Wc, prior.dimension)

    def propagate_points(
        self,
        fn: Callable[[Array, Array], Array],
        state_points: PointSet,
        noise_points: PointSet,
    ) -> PointSet:
        """Propagate points through ``fn(x, w)``, keeping the weights."""
        return _common.propagate_points(fn, state_points, noise_points)
