"""Sigma-point Gaussian filters.

Provides predict and update building blocks for sigma-point (unscented
or cubature) Kalman filtering, a multi-sensor information-form fusion
update, and a filter orchestrator that dispatches between them.

Available components:

- :class:`UpdateResult` -- Single-sensor update result with diagnostics
- :class:`FusionResult` -- Multi-sensor fusion result
- :class:`SensorContribution` -- Information added by one local sensor
- :func:`sigma_point_predict` -- Time update through a process model
- :func:`sigma_point_update` -- Single-sensor measurement update
- :func:`multi_sensor_update` -- Information-form fusion of ``K`` sensors
- :func:`sensor_contribution` -- Per-sensor information increment
- :func:`normalized_innovation_squared` -- NIS consistency statistic
- :class:`UpdatePolicy` -- Single- or multi-sensor update strategy
- :func:`select_update_policy` -- Choose the policy for a model
- :class:`GaussianFilter` -- Predict/update orchestrator

The predict and update functions accept concrete arrays and are also
compatible with ``jax.jit``; conditioning checks only raise on concrete
inputs.
"""

from sigmafusion.estimation._types import FusionResult, SensorContribution, UpdateResult
from sigmafusion.estimation.gaussian_filter import GaussianFilter
from sigmafusion.estimation.multi_sensor import multi_sensor_update, sensor_contribution
from sigmafusion.estimation.policies import UpdatePolicy, select_update_policy
from sigmafusion.estimation.predict import sigma_point_predict
from sigmafusion.estimation.update import normalized_innovation_squared, sigma_point_update

__all__ = [
    "UpdateResult",
    "FusionResult",
    "SensorContribution",
    "sigma_point_predict",
    "sigma_point_update",
    "multi_sensor_update",
    "sensor_contribution",
    "normalized_innovation_squared",
    "UpdatePolicy",
    "select_update_policy",
    "GaussianFilter",
]
