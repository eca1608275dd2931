"""Sigma-point Gaussian filter orchestrator.

:class:`GaussianFilter` bundles a process model, an observation model and
a quadrature rule, and alternates time updates (``predict``) with
measurement updates (``update``). It keeps no belief of its own: each
call takes the current belief and returns a fresh one, so the caller owns
the filter state between cycles.

The measurement update is dispatched on the observation model: a joint
observation model is fused sensor by sensor in information form, any
other model uses the single-sensor sigma-point update.
"""

from __future__ import annotations

import logging

from jax.typing import ArrayLike

from sigmafusion.belief import GaussianBelief
from sigmafusion.errors import DimensionMismatchError
from sigmafusion.estimation._types import FusionResult, UpdateResult
from sigmafusion.estimation.multi_sensor import multi_sensor_update
from sigmafusion.estimation.policies import UpdatePolicy, select_update_policy
from sigmafusion.estimation.predict import sigma_point_predict
from sigmafusion.estimation.update import sigma_point_update
from sigmafusion.models._types import ObservationModel, ProcessModel
from sigmafusion.quadrature import Quadrature, UnscentedQuadrature

logger = logging.getLogger(__name__)


class GaussianFilter:
    """Sigma-point Gaussian filter.

    Args:
        process_model: State transition model.
        observation_model: Single-sensor or joint observation model.
        quadrature: Quadrature rule. Default: ``UnscentedQuadrature()``.
        policy: Update policy. ``None`` selects it from the observation
            model.
        max_workers: Thread pool size for multi-sensor fusion. ``None``
            fuses sensors sequentially.

    Raises:
        InvalidModelShapeError: If a multi-sensor policy is requested for
            a model without the joint observation interface.
        DimensionMismatchError: If the process and observation models
            disagree on the state dimension.

    Examples:
        ```python
        import jax.numpy as jnp
        from sigmafusion import GaussianBelief, GaussianFilter
        from sigmafusion.models import (
            JointObservationModel,
            LinearObservationModel,
            LinearProcessModel,
        )

        process = LinearProcessModel(A=jnp.eye(2), Q=1e-3 * jnp.eye(2))
        sensors = JointObservationModel(
            [LinearObservationModel(jnp.eye(2), 0.1 * jnp.eye(2)) for _ in range(3)]
        )
        kf = GaussianFilter(process, sensors)

        belief = GaussianBelief.from_moments(jnp.zeros(2), jnp.eye(2))
        belief = kf.predict(belief)
        belief = kf.update(belief, jnp.ones(6))
        ```
    """

    def __init__(
        self,
        process_model: ProcessModel,
        observation_model: ObservationModel,
        quadrature: Quadrature | None = None,
        policy: UpdatePolicy | str | None = None,
        max_workers: int | None = None,
    ):
        self.process_model = process_model
        self.observation_model = observation_model
        self.quadrature = UnscentedQuadrature() if quadrature is None else quadrature
        self.policy = select_update_policy(observation_model, policy)
        self.max_workers = max_workers

        n_process = process_model.state_dimension()
        n_obsrv = observation_model.state_dimension()
        if n_process != n_obsrv:
            raise DimensionMismatchError(
                f"Process model state dimension {n_process} does not match "
                f"observation model state dimension {n_obsrv}"
            )
        logger.debug("Created %r", self)

    @property
    def state_dimension(self) -> int:
        return self.process_model.state_dimension()

    def predict(
        self,
        belief: GaussianBelief,
        control: ArrayLike | None = None,
        dt: float = 1.0,
    ) -> GaussianBelief:
        """Propagate *belief* through the process model for one step."""
        return sigma_point_predict(belief, self.process_model, self.quadrature, control, dt)

    def update_with_diagnostics(
        self,
        belief: GaussianBelief,
        observation: ArrayLike,
    ) -> UpdateResult | FusionResult:
        """Condition *belief* on *observation* and return the full result.

        Returns:
            :class:`UpdateResult` for the single-sensor policy,
            :class:`FusionResult` for the multi-sensor policy.
        """
        if self.policy is UpdatePolicy.MULTI_SENSOR:
            return multi_sensor_update(
                belief,
                observation,
                self.observation_model,
                self.quadrature,
                max_workers=self.max_workers,
            )
        return sigma_point_update(belief, observation, self.observation_model, self.quadrature)

    def update(self, belief: GaussianBelief, observation: ArrayLike) -> GaussianBelief:
        """Condition *belief* on *observation*."""
        return self.update_with_diagnostics(belief, observation).belief

    def step(
        self,
        belief: GaussianBelief,
        observation: ArrayLike,
        control: ArrayLike | None = None,
        dt: float = 1.0,
    ) -> GaussianBelief:
        """Run one predict/update cycle."""
        return self.update(self.predict(belief, control, dt), observation)

    def __repr__(self) -> str:
        return (
            f"GaussianFilter(policy={self.policy.value}, "
            f"quadrature={self.quadrature!r}, state_dimension={self.state_dimension})"
        )
