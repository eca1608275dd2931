"""Gaussian belief over a filter state.

A :class:`GaussianBelief` is the value passed between filter steps. It is
a :class:`~typing.NamedTuple`, which JAX treats as a pytree, so beliefs
can be carried through ``jax.jit`` and ``jax.lax.scan``. Beliefs are
immutable: every predict or update returns a fresh belief, and a failed
call leaves the caller's belief untouched.
"""

from __future__ import annotations

from typing import NamedTuple

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from sigmafusion.config import get_dtype
from sigmafusion.errors import DimensionMismatchError


class GaussianBelief(NamedTuple):
    """Gaussian approximation of a random state.

    Attributes:
        mean: Mean vector of shape ``(n,)``.
        covariance: Covariance matrix of shape ``(n, n)``. Must be
            symmetric positive semi-definite.
    """

    mean: Array
    covariance: Array

    @classmethod
    def from_moments(cls, mean: ArrayLike, covariance: ArrayLike) -> GaussianBelief:
        """Build a validated belief in the configured dtype.

        Args:
            mean: Mean vector of shape ``(n,)``.
            covariance: Covariance matrix of shape ``(n, n)``.

        Returns:
            GaussianBelief: Belief with both moments cast to ``get_dtype()``.

        Raises:
            DimensionMismatchError: If the shapes of *mean* and
                *covariance* disagree.
        """
        dtype = get_dtype()
        belief = cls(
            mean=jnp.asarray(mean, dtype=dtype),
            covariance=jnp.asarray(covariance, dtype=dtype),
        )
        belief.validate()
        return belief

    @property
    def dimension(self) -> int:
        """Dimension ``n`` of the state."""
        return self.mean.shape[0]

    def with_mean(self, mean: ArrayLike) -> GaussianBelief:
        """Return a copy of the belief with a new mean."""
        return self._replace(mean=jnp.asarray(mean, dtype=get_dtype()))

    def with_covariance(self, covariance: ArrayLike) -> GaussianBelief:
        """Return a copy of the belief with a new covariance."""
        return self._replace(covariance=jnp.asarray(covariance, dtype=get_dtype()))

    def validate(self, dimension: int | None = None) -> None:
        """Check that the mean and covariance shapes agree.

        Args:
            dimension: Expected state dimension. If given, the belief must
                also match it.

        Raises:
            DimensionMismatchError: If the shapes are inconsistent.
        """
        mean = jnp.asarray(self.mean)
        cov = jnp.asarray(self.covariance)
        if mean.ndim != 1:
            raise DimensionMismatchError(
                f"Belief mean must be a vector, got shape {mean.shape}"
            )
        n = mean.shape[0]
        if cov.shape != (n, n):
            raise DimensionMismatchError(
                f"Belief covariance must have shape ({n}, {n}), got {cov.shape}"
            )
        if dimension is not None and n != dimension:
            raise DimensionMismatchError(
                f"Belief has dimension {n}, expected {dimension}"
            )
