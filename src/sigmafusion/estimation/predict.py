"""Sigma-point time update.

Propagates a Gaussian belief through a process model with a quadrature
rule. Non-additive process noise is injected into the augmented sigma
point domain; additive process noise is added to the propagated
covariance.
"""

from __future__ import annotations

import jax.numpy as jnp
from jax.typing import ArrayLike

from sigmafusion.belief import GaussianBelief
from sigmafusion.config import get_dtype
from sigmafusion.errors import DimensionMismatchError
from sigmafusion.estimation._linalg import symmetrize
from sigmafusion.models._types import ProcessModel
from sigmafusion.quadrature import Quadrature, UnscentedQuadrature, point_covariance

_DEFAULT_QUADRATURE = UnscentedQuadrature()


def sigma_point_predict(
    belief: GaussianBelief,
    process_model: ProcessModel,
    quadrature: Quadrature = _DEFAULT_QUADRATURE,
    control: ArrayLike | None = None,
    dt: float = 1.0,
) -> GaussianBelief:
    """Propagate the belief forward one time step using sigma points.

    Args:
        belief: Current belief of dimension ``n``.
        process_model: Process model with state dimension ``n``.
        quadrature: Quadrature rule. Default: ``UnscentedQuadrature()``.
        control: Control input of shape ``(p,)``. Defaults to zeros of the
            model's input dimension.
        dt: Time step passed to the process model.

    Returns:
        GaussianBelief: Predicted belief.

    Raises:
        DimensionMismatchError: If belief, control or noise dimensions do
            not match the process model.

    Examples:
        ```python
        import jax.numpy as jnp
        from sigmafusion import GaussianBelief
        from sigmafusion.estimation import sigma_point_predict
        from sigmafusion.models import LinearProcessModel

        process = LinearProcessModel(
            A=jnp.array([[1.0, 0.1], [0.0, 1.0]]), Q=1e-4 * jnp.eye(2)
        )
        prior = GaussianBelief.from_moments(jnp.array([1.0, 0.5]), 0.01 * jnp.eye(2))
        predicted = sigma_point_predict(prior, process)
        ```
    """
    dtype = get_dtype()
    n = process_model.state_dimension()
    belief.validate(n)

    p = process_model.input_dimension()
    u = jnp.zeros(p, dtype=dtype) if control is None else jnp.asarray(control, dtype=dtype)
    if u.shape != (p,):
        raise DimensionMismatchError(f"Control must have shape ({p},), got {u.shape}")

    noise_prior = process_model.noise_prior()
    noise_prior.validate(process_model.noise_dimension())

    if process_model.additive:
        zero_noise = jnp.zeros(process_model.noise_dimension(), dtype=dtype)
        X, W = quadrature.transform_to_points(belief)

        def transition(x, w):
            return process_model.next_state(x, zero_noise, u, dt)

    else:
        X, W = quadrature.transform_to_points(belief, noise_prior)

        def transition(x, w):
            return process_model.next_state(x, w, u, dt)

    # Propagate sigma points
    Y = quadrature.propagate_points(transition, X, W)
    if Y.dimension != n:
        raise DimensionMismatchError(
            f"Process model returned states of dimension {Y.dimension}, expected {n}"
        )

    mean = Y.center()
    cov = point_covariance(Y, Y)
    if process_model.additive:
        if noise_prior.dimension != n:
            raise DimensionMismatchError(
                f"Additive process noise must have dimension {n}, got {noise_prior.dimension}"
            )
        cov = cov + noise_prior.covariance

    return GaussianBelief(mean=mean, covariance=symmetrize(cov))
