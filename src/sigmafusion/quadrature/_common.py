"""Helpers shared by the quadrature rules.

Builds the joint ``(state, noise)`` Gaussian, computes covariance square
roots, splits augmented points back into state and noise point sets, and
propagates point sets through arbitrary functions.
"""

from __future__ import annotations

from collections.abc import Callable

import jax
import jax.numpy as jnp
import jax.scipy.linalg
from jax import Array

from sigmafusion.belief import GaussianBelief
from sigmafusion.config import get_dtype
from sigmafusion.errors import DimensionMismatchError
from sigmafusion.quadrature._types import PointSet


def joint_moments(
    prior: GaussianBelief,
    noise_prior: GaussianBelief | None,
) -> tuple[Array, Array]:
    """Stack a state and a noise Gaussian into one augmented Gaussian.

    The state and the noise are independent, so the augmented covariance
    is block diagonal.

    Args:
        prior: State belief of dimension ``n``.
        noise_prior: Noise Gaussian of dimension ``q``, or ``None``.

    Returns:
        A tuple ``(mean, cov)`` of shapes ``(n+q,)`` and ``(n+q, n+q)``.
    """
    dtype = get_dtype()
    prior.validate()
    x = jnp.asarray(prior.mean, dtype=dtype)
    P = jnp.asarray(prior.covariance, dtype=dtype)
    if noise_prior is None:
        return x, P

    noise_prior.validate()
    w = jnp.asarray(noise_prior.mean, dtype=dtype)
    Q = jnp.asarray(noise_prior.covariance, dtype=dtype)
    return jnp.concatenate([x, w]), jax.scipy.linalg.block_diag(P, Q)


def matrix_sqrt(S: Array) -> Array:
    """Return a square root ``M`` of a PSD matrix with ``M @ M.T == S``.

    Uses the Cholesky factor when it exists. Singular matrices (for which
    JAX's Cholesky returns NaNs) fall back to the symmetric eigen
    decomposition with negative eigenvalues clipped to zero, so the result
    stays exact for positive semi-definite input.

    Args:
        S: Symmetric positive semi-definite matrix of shape ``(d, d)``.

    Returns:
        jax.Array: Square root of shape ``(d, d)``.
    """
    S = 0.5 * (S + S.T)
    L = jnp.linalg.cholesky(S)
    eigval, eigvec = jnp.linalg.eigh(S)
    E = eigvec * jnp.sqrt(jnp.clip(eigval, 0.0))[None, :]
    return jnp.where(jnp.all(jnp.isfinite(L)), L, E)


def symmetric_offsets(mean: Array, root: Array) -> Array:
    """Return ``mean``, ``mean + root[:, j]`` and ``mean - root[:, j]`` rows.

    Args:
        mean: Center of shape ``(d,)``.
        root: Scaled square root of shape ``(d, d)``.

    Returns:
        jax.Array: Points of shape ``(2d + 1, d)``, center first.
    """
    points_plus = mean[None, :] + root.T
    points_minus = mean[None, :] - root.T
    return jnp.concatenate([mean[None, :], points_plus, points_minus], axis=0)


def split_points(
    points: Array,
    mean_weights: Array,
    covariance_weights: Array,
    state_dimension: int,
) -> tuple[PointSet, PointSet]:
    """Split augmented points into state and noise point sets.

    Both point sets share the same weights. When there is no noise
    augmentation the noise point set has zero columns.
    """
    state_points = PointSet(points[:, :state_dimension], mean_weights, covariance_weights)
    noise_points = PointSet(points[:, state_dimension:], mean_weights, covariance_weights)
    return state_points, noise_points


def propagate_points(
    fn: Callable[[Array, Array], Array],
    state_points: PointSet,
    noise_points: PointSet,
) -> PointSet:
    """Evaluate ``fn(state_points[i], noise_points[i])`` for every point.

    Evaluation is vectorised with ``jax.vmap``, so *fn* must be composed
    of JAX operations. Weights are a property of the abscissa pattern and
    are carried over unchanged.

    Args:
        fn: Function ``fn(x, w) -> y`` mapping one state point and one
            noise point to a vector (a scalar result is treated as a
            vector of length one).
        state_points: State point set with ``P`` points.
        noise_points: Noise point set with ``P`` points (possibly zero
            columns).

    Returns:
        PointSet: Propagated points of shape ``(P, m)``.

    Raises:
        DimensionMismatchError: If the point counts differ.
    """
    if state_points.number_of_points != noise_points.number_of_points:
        raise DimensionMismatchError(
            f"State and noise point sets have {state_points.number_of_points} "
            f"and {noise_points.number_of_points} points"
        )
    values = jax.vmap(fn)(state_points.points, noise_points.points)
    values = jnp.reshape(values, (state_points.number_of_points, -1))
    return PointSet(values, state_points.mean_weights, state_points.covariance_weights)
