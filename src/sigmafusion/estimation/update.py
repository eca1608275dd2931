"""Single-sensor sigma-point measurement update.

Computes the posterior belief from one observation model, a quadrature
rule, a prior belief and an observation vector, using sigma-point
statistics in place of Jacobians:

- state points ``X`` and noise points ``Q`` from the (augmented) prior
- observation points ``Y = h(X, Q)``
- weighted moments ``mu_x, mu_y, Cxx, Cyy, Cxy``
- gain ``K = Cxy Cyy^{-1}``, mean ``mu_x + K (y - mu_y)`` and covariance
  ``Cxx - K Cyy K^T``

Additive observation noise is not augmented; its covariance is added to
``Cyy`` instead.
"""

from __future__ import annotations

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from sigmafusion.belief import GaussianBelief
from sigmafusion.config import get_dtype
from sigmafusion.errors import DimensionMismatchError
from sigmafusion.estimation._linalg import check_conditioning, symmetrize
from sigmafusion.estimation._types import UpdateResult
from sigmafusion.models._types import ObservationModel
from sigmafusion.quadrature import PointSet, Quadrature, UnscentedQuadrature, point_covariance

_DEFAULT_QUADRATURE = UnscentedQuadrature()


def observation_moments(
    model: ObservationModel,
    quadrature: Quadrature,
    state_points: PointSet,
    noise_points: PointSet,
) -> tuple[Array, Array, Array]:
    """Propagate sigma points through an observation model.

    Non-additive models receive *noise_points*; additive models are
    evaluated with zero noise and their noise covariance is added to the
    observation covariance.

    Args:
        model: Observation model with observation dimension ``m``.
        quadrature: Quadrature rule that produced the points.
        state_points: State sigma points of dimension ``n``.
        noise_points: Noise sigma points matching *model* when it is
            non-additive.

    Returns:
        A tuple ``(mu_y, Cyy, Cxy)`` of shapes ``(m,)``, ``(m, m)`` and
        ``(n, m)``.

    Raises:
        DimensionMismatchError: If the model returns observations of the
            wrong size or the noise points do not match its noise
            dimension.
    """
    m = model.observation_dimension()
    q = model.noise_dimension()

    if model.additive:
        zero_noise = jnp.zeros(q, dtype=get_dtype())

        def h(x, w):
            return model.observe(x, zero_noise)

    else:
        if noise_points.dimension != q:
            raise DimensionMismatchError(
                f"Noise points have dimension {noise_points.dimension}, "
                f"observation model expects {q}"
            )

        def h(x, w):
            return model.observe(x, w)

    Y = quadrature.propagate_points(h, state_points, noise_points)
    if Y.dimension != m:
        raise DimensionMismatchError(
            f"Observation model returned observations of dimension {Y.dimension}, expected {m}"
        )

    mu_y = Y.center()
    Cyy = point_covariance(Y, Y)
    if model.additive:
        noise_prior = model.noise_prior()
        if noise_prior.dimension != m:
            raise DimensionMismatchError(
                f"Additive observation noise must have dimension {m}, "
                f"got {noise_prior.dimension}"
            )
        Cyy = Cyy + noise_prior.covariance
    Cxy = point_covariance(state_points, Y)

    return mu_y, Cyy, Cxy


def sigma_point_update(
    belief: GaussianBelief,
    y: ArrayLike,
    model: ObservationModel,
    quadrature: Quadrature = _DEFAULT_QUADRATURE,
) -> UpdateResult:
    """Incorporate one sensor's measurement into the belief.

    Args:
        belief: Prior belief of dimension ``n``, typically from
            ``sigma_point_predict``.
        y: Observation vector of shape ``(m,)``.
        model: Observation model with state dimension ``n``.
        quadrature: Quadrature rule. Default: ``UnscentedQuadrature()``.

    Returns:
        UpdateResult: Posterior belief, innovation, innovation covariance
            and Kalman gain.

    Raises:
        DimensionMismatchError: If belief, observation or model dimensions
            disagree.
        SingularCovarianceError: If the innovation covariance cannot be
            inverted.

    Examples:
        ```python
        import jax.numpy as jnp
        from sigmafusion import GaussianBelief
        from sigmafusion.estimation import sigma_point_update
        from sigmafusion.models import LinearObservationModel

        prior = GaussianBelief.from_moments(jnp.array([1.0, 0.5]), jnp.eye(2))
        sensor = LinearObservationModel(H=jnp.array([[1.0, 0.0]]), R=[[0.01]])
        result = sigma_point_update(prior, jnp.array([1.1]), sensor)
        posterior = result.belief
        ```
    """
    dtype = get_dtype()
    n = model.state_dimension()
    belief.validate(n)

    m = model.observation_dimension()
    y = jnp.asarray(y, dtype=dtype)
    if y.shape != (m,):
        raise DimensionMismatchError(f"Observation must have shape ({m},), got {y.shape}")

    noise_prior = None
    if not model.additive:
        noise_prior = model.noise_prior()
        noise_prior.validate(model.noise_dimension())

    # Generate sigma points from the (augmented) prior
    X, Q = quadrature.transform_to_points(belief, noise_prior)
    mu_x = X.center()
    Cxx = point_covariance(X, X)

    mu_y, S, Cxy = observation_moments(model, quadrature, X, Q)
    innovation = y - mu_y

    check_conditioning(S, "innovation covariance")

    # Kalman gain: K = Cxy @ S^{-1}
    K = jnp.linalg.solve(S, Cxy.T).T

    mean = mu_x + K @ innovation
    cov = Cxx - K @ S @ K.T

    return UpdateResult(
        belief=GaussianBelief(mean=mean, covariance=symmetrize(cov)),
        innovation=innovation,
        innovation_covariance=S,
        kalman_gain=K,
    )


def normalized_innovation_squared(innovation: ArrayLike, innovation_covariance: ArrayLike) -> Array:
    """Normalized innovation squared ``nu^T S^{-1} nu``.

    For a consistent filter the statistic follows a chi-squared
    distribution with ``m`` degrees of freedom.

    Args:
        innovation: Residual of shape ``(m,)``.
        innovation_covariance: Innovation covariance of shape ``(m, m)``.

    Returns:
        jax.Array: Scalar NIS value.
    """
    dtype = get_dtype()
    nu = jnp.asarray(innovation, dtype=dtype)
    S = jnp.asarray(innovation_covariance, dtype=dtype)
    return nu @ jnp.linalg.solve(S, nu)
