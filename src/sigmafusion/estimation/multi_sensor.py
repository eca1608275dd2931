"""Multi-sensor sigma-point fusion in information form.

Fuses the observations of ``K`` conditionally independent local sensors
against one shared prior. All sensors are evaluated on the same state
sigma points, and each contributes an additive information term, so the
full ``(K m) x (K m)`` joint innovation covariance is never formed:

- ``A_i = Cyx_i Cxx^{-1}`` maps state deviations to sensor ``i``
- ``S_i = Cyy_i - Cyx_i Cxx^{-1} Cxy_i`` is the conditional innovation
  covariance of sensor ``i`` given the state
- ``C = Cxx^{-1} + sum_i A_i^T S_i^{-1} A_i``
- ``D = sum_i A_i^T S_i^{-1} (y_i - mu_y_i)``
- posterior covariance ``C^{-1}`` and mean ``mu_x + C^{-1} D``

The cost is ``K`` inversions of ``m``-dimensional matrices plus two of
the ``n``-dimensional state, instead of one ``K m``-dimensional
inversion. With a single sensor the result equals
:func:`~sigmafusion.estimation.sigma_point_update`.

Non-additive local sensors share one noise sigma-point set, drawn from
the noise prior of the first non-additive sensor. Sensors whose noise
differs should either be additive (each then uses its own covariance) or
fold the difference into their observation function.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from sigmafusion.belief import GaussianBelief
from sigmafusion.errors import DimensionMismatchError, InvalidModelShapeError
from sigmafusion.estimation._linalg import checked_inverse, concrete_bool, symmetrize
from sigmafusion.estimation._types import FusionResult, SensorContribution
from sigmafusion.estimation.update import observation_moments
from sigmafusion.models._types import (
    JointObservationModelLike,
    ObservationModel,
    is_joint_observation_model,
)
from sigmafusion.models.joint import split_stacked_observation
from sigmafusion.quadrature import PointSet, Quadrature, UnscentedQuadrature, point_covariance

logger = logging.getLogger(__name__)

_DEFAULT_QUADRATURE = UnscentedQuadrature()


def shared_noise_prior(local_models: Sequence[ObservationModel]) -> GaussianBelief | None:
    """Noise prior shared by the non-additive local models.

    Args:
        local_models: Local observation models in sensor order.

    Returns:
        The noise prior of the first non-additive model, or ``None`` if
        every model is additive.

    Raises:
        DimensionMismatchError: If non-additive models declare different
            noise dimensions.
    """
    shared = None
    owner = None
    for i, model in enumerate(local_models):
        if model.additive:
            continue
        prior = model.noise_prior()
        prior.validate(model.noise_dimension())
        if shared is None:
            shared, owner = prior, i
            continue
        if prior.dimension != shared.dimension:
            raise DimensionMismatchError(
                f"Sensor {i} has noise dimension {prior.dimension}, but the shared "
                f"noise prior of sensor {owner} has dimension {shared.dimension}"
            )
        same = jnp.allclose(prior.mean, shared.mean) & jnp.allclose(
            prior.covariance, shared.covariance
        )
        if not concrete_bool(same, traced_default=True):
            logger.warning(
                "Sensor %d declares a different noise prior than sensor %d; "
                "the noise prior of sensor %d is used for all non-additive sensors",
                i,
                owner,
                owner,
            )
    return shared


def sensor_contribution(
    model: ObservationModel,
    quadrature: Quadrature,
    state_points: PointSet,
    noise_points: PointSet,
    state_information: Array,
    y: Array,
    sensor_index: int | None = None,
) -> SensorContribution:
    """Information contributed by one local sensor.

    Reads the shared point sets and returns a private result, so calls for
    different sensors are independent of each other.

    Args:
        model: Local observation model.
        quadrature: Quadrature rule that produced the points.
        state_points: Shared state sigma points.
        noise_points: Shared noise sigma points.
        state_information: Inverse ``Cxx^{-1}`` of the state covariance
            reproduced by *state_points*.
        y: Local observation of shape ``(m,)``.
        sensor_index: Index reported in errors.

    Returns:
        SensorContribution: Information increments and diagnostics.

    Raises:
        SingularCovarianceError: If the conditional innovation covariance
            cannot be inverted.
    """
    mu_y, Cyy, Cxy = observation_moments(model, quadrature, state_points, noise_points)
    Cyx = Cxy.T

    A = Cyx @ state_information
    S = symmetrize(Cyy - A @ Cxy)
    S_inv = checked_inverse(S, "conditional innovation covariance", sensor_index, reference=Cyy)
    T = A.T @ S_inv

    innovation = y - mu_y
    return SensorContribution(
        information=T @ A,
        information_vector=T @ innovation,
        innovation=innovation,
        conditional_covariance=S,
    )


def multi_sensor_update(
    belief: GaussianBelief,
    y: ArrayLike,
    model: JointObservationModelLike,
    quadrature: Quadrature = _DEFAULT_QUADRATURE,
    max_workers: int | None = None,
) -> FusionResult:
    """Fuse the observations of all local sensors of a joint model.

    Args:
        belief: Prior belief of dimension ``n``.
        y: Stacked observation, the concatenation of the local
            observations in sensor order.
        model: Joint observation model exposing ``count_local_models`` and
            ``local_model``.
        quadrature: Quadrature rule. Default: ``UnscentedQuadrature()``.
        max_workers: When greater than one, per-sensor contributions are
            computed on a thread pool of this size. Contributions are
            always accumulated in sensor order.

    Returns:
        FusionResult: Posterior belief, accumulated information and
            per-sensor innovations.

    Raises:
        InvalidModelShapeError: If *model* is not a joint observation model.
        DimensionMismatchError: If the stacked observation length, the
            belief or the local models disagree.
        SingularCovarianceError: If the state covariance, a conditional
            innovation covariance (reported with its sensor index) or the
            accumulated information matrix cannot be inverted.

    Examples:
        ```python
        import jax.numpy as jnp
        from sigmafusion import GaussianBelief
        from sigmafusion.estimation import multi_sensor_update
        from sigmafusion.models import JointObservationModel, LinearObservationModel

        sensor = LinearObservationModel(H=jnp.eye(2), R=0.1 * jnp.eye(2))
        joint = JointObservationModel([sensor, sensor])
        prior = GaussianBelief.from_moments(jnp.zeros(2), jnp.eye(2))

        result = multi_sensor_update(prior, jnp.ones(4), joint)
        result.belief.mean  # ~[0.952, 0.952]
        ```
    """
    if not is_joint_observation_model(model):
        raise InvalidModelShapeError(
            f"{type(model).__name__} does not expose count_local_models() and "
            f"local_model(); use sigma_point_update for a single sensor"
        )

    n = model.state_dimension()
    belief.validate(n)

    count = model.count_local_models()
    local_models = [model.local_model(i) for i in range(count)]
    for i, local in enumerate(local_models):
        if local.state_dimension() != n:
            raise DimensionMismatchError(
                f"Sensor {i} has state dimension {local.state_dimension()}, expected {n}"
            )

    blocks = split_stacked_observation(
        y, [local.observation_dimension() for local in local_models]
    )

    # Shared sigma points for every sensor
    X, Q = quadrature.transform_to_points(belief, shared_noise_prior(local_models))
    mu_x = X.center()
    Cxx = point_covariance(X, X)
    Cxx_inv = checked_inverse(Cxx, "state covariance")

    def contribution(i: int) -> SensorContribution:
        logger.debug("Computing information contribution of sensor %d", i)
        return sensor_contribution(local_models[i], quadrature, X, Q, Cxx_inv, blocks[i], i)

    if max_workers is not None and max_workers > 1 and count > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            contributions = list(executor.map(contribution, range(count)))
    else:
        contributions = [contribution(i) for i in range(count)]

    C = Cxx_inv
    D = jnp.zeros(n, dtype=mu_x.dtype)
    for c in contributions:
        C = C + c.information
        D = D + c.information_vector

    cov = symmetrize(checked_inverse(C, "information matrix"))
    mean = mu_x + cov @ D

    return FusionResult(
        belief=GaussianBelief(mean=mean, covariance=cov),
        information_matrix=C,
        information_vector=D,
        innovations=tuple(c.innovation for c in contributions),
    )
