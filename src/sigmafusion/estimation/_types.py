"""Type definitions for filter update results.

- :class:`UpdateResult`: Output of a single-sensor update, containing the
  posterior belief plus diagnostic information for filter tuning.
- :class:`SensorContribution`: Information contributed by one local
  sensor during a multi-sensor fusion update.
- :class:`FusionResult`: Output of a multi-sensor fusion update.

All types are :class:`~typing.NamedTuple` instances, which JAX treats as
pytrees automatically.
"""

from __future__ import annotations

from typing import NamedTuple

from jax import Array

from sigmafusion.belief import GaussianBelief


class UpdateResult(NamedTuple):
    """Result of a single-sensor measurement update.

    Attributes:
        belief: Posterior :class:`~sigmafusion.belief.GaussianBelief`.
        innovation: Measurement residual ``y - y_pred`` of shape ``(m,)``.
            Should be zero-mean and consistent with
            ``innovation_covariance`` for a healthy filter.
        innovation_covariance: Innovation covariance ``S`` of shape
            ``(m, m)``.
        kalman_gain: Kalman gain ``K`` of shape ``(n, m)``.
    """

    belief: GaussianBelief
    innovation: Array
    innovation_covariance: Array
    kalman_gain: Array


class SensorContribution(NamedTuple):
    """Information added to the fused posterior by one local sensor.

    Attributes:
        information: Information matrix increment ``A^T S^{-1} A`` of
            shape ``(n, n)``.
        information_vector: Information vector increment
            ``A^T S^{-1} (y_i - y_pred_i)`` of shape ``(n,)``.
        innovation: Local residual ``y_i - y_pred_i`` of shape ``(m_i,)``.
        conditional_covariance: Conditional innovation covariance ``S`` of
            the sensor given the state, shape ``(m_i, m_i)``.
    """

    information: Array
    information_vector: Array
    innovation: Array
    conditional_covariance: Array


class FusionResult(NamedTuple):
    """Result of a multi-sensor fusion update.

    Attributes:
        belief: Posterior :class:`~sigmafusion.belief.GaussianBelief`.
        information_matrix: Accumulated information matrix (inverse of the
            posterior covariance), shape ``(n, n)``.
        information_vector: Accumulated information vector, shape ``(n,)``.
        innovations: Per-sensor residuals, in sensor order.
    """

    belief: GaussianBelief
    information_matrix: Array
    information_vector: Array
    innovations: tuple[Array, ...]
