"""Conditioning checks and small matrix helpers for the update policies.

Conditioning can only be inspected on concrete arrays. Under ``jax.jit``
tracing the checks are skipped and a singular matrix surfaces as
non-finite values in the result instead of an exception.
"""

from __future__ import annotations

import jax
import jax.numpy as jnp
from jax import Array

from sigmafusion.config import get_condition_limit
from sigmafusion.errors import SingularCovarianceError


def concrete_bool(value: Array, traced_default: bool) -> bool:
    """Convert a boolean array to ``bool``, or *traced_default* under tracing."""
    try:
        return bool(value)
    except jax.errors.ConcretizationTypeError:
        return traced_default


def symmetrize(M: Array) -> Array:
    return 0.5 * (M + M.T)


def condition_number(M: Array, reference: Array | None = None) -> Array:
    """Condition number of *M* after diagonal equilibration.

    The matrix is rescaled to ``D^{-1/2} M D^{-1/2}`` with ``D`` the
    diagonal of *reference* (or of *M* itself), so states measured in very
    different units do not count as ill-conditioned. A non-positive or
    non-finite diagonal gives an infinite condition number.

    With a *reference* the largest singular value is taken over both
    rescaled matrices. A difference such as ``Cyy - Cyx Cxx^{-1} Cxy`` that
    cancels down to round-off is then reported as ill-conditioned even when
    the round-off itself happens to be well-conditioned.
    """
    d = jnp.diagonal(M if reference is None else reference)
    valid = jnp.all(jnp.isfinite(d) & (d > 0.0))
    scale = jnp.where(d > 0.0, 1.0 / jnp.sqrt(jnp.where(d > 0.0, d, 1.0)), 0.0)

    s = jnp.linalg.svd(M * scale[:, None] * scale[None, :], compute_uv=False)
    largest = s[0]
    if reference is not None:
        R = reference * scale[:, None] * scale[None, :]
        largest = jnp.maximum(largest, jnp.linalg.norm(R, ord=2))
    return jnp.where(valid, largest / s[-1], jnp.inf)


def check_conditioning(
    M: Array,
    label: str,
    sensor_index: int | None = None,
    reference: Array | None = None,
) -> None:
    """Raise if *M* is too ill-conditioned to invert.

    Args:
        M: Square matrix.
        label: Name of the matrix used in the error message.
        sensor_index: Local sensor the matrix belongs to, if any.
        reference: Matrix *M* was derived from, used to scale the check.

    Raises:
        SingularCovarianceError: If the condition number of *M* is not
            finite or exceeds :func:`~sigmafusion.config.get_condition_limit`.
    """
    if M.shape[0] == 0:
        return
    cond = condition_number(M, reference)
    singular = ~jnp.isfinite(cond) | (cond > get_condition_limit())
    if concrete_bool(singular, traced_default=False):
        raise SingularCovarianceError(label, float(cond), sensor_index)


def checked_inverse(
    M: Array,
    label: str,
    sensor_index: int | None = None,
    reference: Array | None = None,
) -> Array:
    """Invert *M* after checking its conditioning.

    Raises:
        SingularCovarianceError: If *M* is singular or ill-conditioned.
    """
    check_conditioning(M, label, sensor_index, reference)
    return jnp.linalg.inv(M)
