"""Scaled unscented transform.

Implements the Van der Merwe scaled sigma-point rule. For an augmented
dimension ``d`` the rule places ``2d + 1`` points at the mean and at the
mean plus/minus the columns of a square root of ``(d + lambda) * P``,
with ``lambda = alpha**2 * (d + kappa) - d``.

The generated points reproduce the first two moments of the input
Gaussian exactly. Default values ``alpha=1.0``, ``beta=2.0``,
``kappa=0.0`` produce unit-spread sigma points with well-conditioned
weights, robust for float32 across all dimensions.
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
class UnscentedQuadrature:
    """Scaled unscented sigma-point quadrature.

    Attributes:
        alpha: Spread of sigma points around the mean. ``alpha=1.0``
            gives unit spread and avoids extreme weights that arise
            with small alpha in float32. Default: 1.0.
        beta: Prior knowledge of the distribution. ``beta=2.0`` is
            optimal for Gaussian distributions. Default: 2.0.
        kappa: Secondary scaling parameter. Default: 0.0.

    Examples:
        ```python
        import jax.numpy as jnp
        from sigmafusion import GaussianBelief
        from sigmafusion.quadrature import UnscentedQuadrature

        quadrature = UnscentedQuadrature()
        prior = GaussianBelief.from_moments(jnp.zeros(2), jnp.eye(2))
        X, Q = quadrature.transform_to_points(prior)
        Y = quadrature.propagate_points(lambda x, w: jnp.sin(x), X, Q)
        ```
    """

    alpha: float = 1.0
    beta: float = 2.0
    kappa: float = 0.0

    def number_of_points(self, dimension: int) -> int:
        """Return ``2 * dimension + 1``."""
        return 2 * dimension + 1

    def scaling(self, dimension: int) -> float:
        """Return the scaling parameter ``lambda`` for *dimension*.

        Raises:
            ValueError: If *dimension* is not positive or
                ``dimension + lambda`` is not positive.
        """
        if dimension < 1:
            raise ValueError(f"Dimension must be positive, got {dimension}")
        lam = self.alpha**2 * (dimension + self.kappa) - dimension
        if dimension + lam <= 0.0:
            raise ValueError(
                f"Unscented scaling requires dimension + lambda > 0, got "
                f"{dimension + lam} (alpha={self.alpha}, kappa={self.kappa})"
            )
        return lam

    def weights(self, dimension: int) -> tuple[Array, Array]:
        """Mean and covariance weights for *dimension*.

        Returns:
            A tuple ``(Wm, Wc)`` of shape ``(2d+1,)`` each.
        """
        dtype = get_dtype()
        lam = self.scaling(dimension)

        w0_m = lam / (dimension + lam)
        w0_c = lam / (dimension + lam) + (1.0 - self.alpha**2 + self.beta)
        wi = 1.0 / (2.0 * (dimension + lam))

        Wm = jnp.concatenate(
            [jnp.array([w0_m], dtype=dtype), jnp.full(2 * dimension, wi, dtype=dtype)]
        )
        Wc = jnp.concatenate(
            [jnp.array([w0_c], dtype=dtype), jnp.full(2 * dimension, wi, dtype=dtype)]
        )
        return Wm, Wc

    def transform_to_points(
        self,
        prior: GaussianBelief,
        noise_prior: GaussianBelief | None = None,
    ) -> tuple[PointSet, PointSet]:
        """Generate sigma points for the joint ``(state, noise)`` Gaussian.

        Args:
            prior: State belief of dimension ``n``.
            noise_prior: Optional noise Gaussian of dimension ``q``. When
                omitted the noise point set has zero columns.

        Returns:
            A tuple ``(state_points, noise_points)`` with ``2(n+q)+1``
            points each and shared weights.
        """
        mean, cov = _common.joint_moments(prior, noise_prior)
        d = mean.shape[0]
        lam = self.scaling(d)

        root = _common.matrix_sqrt((d + lam) * cov)
        points = _common.symmetric_offsets(mean, root)
        Wm, Wc = self.weights(d)

        return _common.split_points(points, Wm, Wc, prior.dimension)

    def propagate_points(
        self,
        fn: Callable[[Array, Array], Array],
        state_points: PointSet,
        noise_points: PointSet,
    ) -> PointSet:
        """Propagate points through ``fn(x, w)``, keeping the weights."""
        return _common.propagate_points(fn, state_points, noise_points)
