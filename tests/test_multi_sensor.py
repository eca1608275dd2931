"""Tests for multi-sensor information-form fusion.

Tests cover:
- Reduction to the single-sensor update for one sensor
- Order independence under sensor permutation
- Equivalence with one stacked Kalman update for linear Gaussian sensors
- No-sensor identity
- Two agreeing sensors against a single sensor
- Singular state and conditional innovation covariances
- Thread-pool evaluation of sensor contributions
- Shared noise prior of non-additive sensors
- Stacked observation and model shape errors
- Badly scaled priors and JIT compatibility
"""

import logging

import jax
import jax.numpy as jnp
import numpy as np
import pytest

from sigmafusion import (
    CubatureQuadrature,
    DimensionMismatchError,
    GaussianBelief,
    InvalidModelShapeError,
    NumericalError,
    SingularCovarianceError,
    set_dtype,
)
from sigmafusion.estimation import (
    GaussianFilter,
    multi_sensor_update,
    sensor_contribution,
    sigma_point_update,
)
from sigmafusion.estimation._linalg import condition_number
from sigmafusion.estimation.multi_sensor import shared_noise_prior
from sigmafusion.models import (
    FunctionalObservationModel,
    JointObservationModel,
    LinearObservationModel,
    LinearProcessModel,
)

# ──────────────────────────────────────────────
# Helper functions
# ──────────────────────────────────────────────


def _prior():
    return GaussianBelief.from_moments(
        jnp.array([1.0, -0.5]), jnp.array([[0.8, 0.2], [0.2, 0.5]])
    )


def _range_sensor(anchor, variance=0.01, additive=True):
    anchor = jnp.asarray(anchor)
    if additive:

        def h(x):
            return jnp.array([jnp.linalg.norm(x - anchor)])

    else:

        def h(x, v):
            return jnp.array([jnp.linalg.norm(x - anchor) + v[0]])

    return FunctionalObservationModel(
        h,
        state_dimension=2,
        observation_dimension=1,
        noise_covariance=[[variance]],
        additive=additive,
    )


def _linear_sensors():
    return [
        LinearObservationModel(jnp.eye(2), 0.1 * jnp.eye(2)),
        LinearObservationModel(jnp.array([[1.0, 1.0]]), [[0.2]]),
        LinearObservationModel(jnp.array([[0.5, -1.0], [0.0, 2.0]]), jnp.diag(jnp.array([0.3, 0.4]))),
    ]


def _linear_observations():
    return [jnp.array([1.2, -0.4]), jnp.array([0.9]), jnp.array([1.1, -0.8])]


def _stacked_kalman_update(prior, y, sensors):
    """Closed-form Kalman update on the stacked sensors, computed in numpy."""
    x = np.asarray(prior.mean)
    P = np.asarray(prior.covariance)
    H = np.concatenate([np.asarray(s.H) for s in sensors], axis=0)
    sizes = [s.observation_dimension() for s in sensors]
    R = np.zeros((sum(sizes), sum(sizes)))
    start = 0
    for s, size in zip(sensors, sizes):
        R[start : start + size, start : start + size] = np.asarray(s.R)
        start += size
    S = H @ P @ H.T + R
    K = P @ H.T @ np.linalg.inv(S)
    return x + K @ (np.asarray(y) - H @ x), P - K @ S @ K.T


# ──────────────────────────────────────────────
# Algebraic properties
# ──────────────────────────────────────────────


class TestReduction:
    def test_single_linear_sensor_matches_single_update(self):
        sensor = LinearObservationModel(jnp.array([[1.0, 0.0]]), [[0.05]])
        y = jnp.array([1.4])

        fused = multi_sensor_update(_prior(), y, JointObservationModel([sensor]))
        single = sigma_point_update(_prior(), y, sensor)

        assert jnp.allclose(fused.belief.mean, single.belief.mean, atol=1e-10)
        assert jnp.allclose(fused.belief.covariance, single.belief.covariance, atol=1e-10)

    def test_single_nonlinear_sensor_matches_single_update(self):
        """Holds for any sigma-point moments, not only linear sensors."""
        sensor = _range_sensor([3.0, 2.0])
        y = jnp.array([3.3])

        fused = multi_sensor_update(_prior(), y, JointObservationModel([sensor]))
        single = sigma_point_update(_prior(), y, sensor)

        assert jnp.allclose(fused.belief.mean, single.belief.mean, atol=1e-9)
        assert jnp.allclose(fused.belief.covariance, single.belief.covariance, atol=1e-9)

    def test_single_non_additive_sensor_matches_single_update(self):
        sensor = _range_sensor([3.0, 2.0], additive=False)
        y = jnp.array([3.3])

        fused = multi_sensor_update(_prior(), y, JointObservationModel([sensor]))
        single = sigma_point_update(_prior(), y, sensor)

        assert jnp.allclose(fused.belief.mean, single.belief.mean, atol=1e-9)
        assert jnp.allclose(fused.belief.covariance, single.belief.covariance, atol=1e-9)

    @pytest.mark.parametrize(
        "dtype, variances, rtol",
        [
            (jnp.float32, (1e4, 1e-3), 5e-3),
            (jnp.float64, (1e7, 1e-6), 1e-6),
        ],
    )
    def test_badly_scaled_prior_matches_single_update(self, dtype, variances, rtol):
        """Variances in very different units are still invertible."""
        set_dtype(dtype)
        p_pos, p_vel = variances
        prior = GaussianBelief.from_moments(jnp.zeros(2), jnp.diag(jnp.array(variances)))
        sensor = LinearObservationModel(jnp.array([[1.0, 0.0]]), [[1.0]])
        y = jnp.array([3.0])

        fused = multi_sensor_update(prior, y, JointObservationModel([sensor]))
        single = sigma_point_update(prior, y, sensor)

        assert fused.belief.mean.dtype == dtype
        expected_mean = np.array([3.0 * p_pos / (p_pos + 1.0), 0.0])
        expected_var = np.array([p_pos / (p_pos + 1.0), p_vel])
        np.testing.assert_allclose(np.asarray(fused.belief.mean), expected_mean, rtol=rtol, atol=1e-6)
        np.testing.assert_allclose(
            np.asarray(jnp.diagonal(fused.belief.covariance)), expected_var, rtol=rtol
        )
        np.testing.assert_allclose(
            np.asarray(fused.belief.mean), np.asarray(single.belief.mean), rtol=rtol, atol=1e-6
        )


class TestOrderIndependence:
    def test_permuted_sensors(self):
        sensors = _linear_sensors()
        observations = _linear_observations()
        order = [2, 0, 1]

        forward = multi_sensor_update(
            _prior(), jnp.concatenate(observations), JointObservationModel(sensors)
        )
        permuted = multi_sensor_update(
            _prior(),
            jnp.concatenate([observations[i] for i in order]),
            JointObservationModel([sensors[i] for i in order]),
        )

        assert jnp.allclose(forward.belief.mean, permuted.belief.mean, atol=1e-10)
        assert jnp.allclose(forward.belief.covariance, permuted.belief.covariance, atol=1e-10)

    def test_permuted_nonlinear_sensors(self):
        sensors = [_range_sensor([3.0, 2.0]), _range_sensor([-2.0, 1.0]), _range_sensor([0.0, -4.0])]
        y = [jnp.array([2.9]), jnp.array([3.0]), jnp.array([3.6])]

        forward = multi_sensor_update(_prior(), jnp.concatenate(y), JointObservationModel(sensors))
        reverse = multi_sensor_update(
            _prior(), jnp.concatenate(y[::-1]), JointObservationModel(sensors[::-1])
        )

        assert jnp.allclose(forward.belief.mean, reverse.belief.mean, atol=1e-10)
        assert jnp.allclose(forward.belief.covariance, reverse.belief.covariance, atol=1e-10)


class TestLinearGaussianEquivalence:
    @pytest.mark.parametrize("quadrature", [None, CubatureQuadrature()])
    def test_matches_stacked_kalman_update(self, quadrature):
        """Linear sensors fuse to the same posterior as one stacked update."""
        sensors = _linear_sensors()
        prior = _prior()
        y = jnp.concatenate(_linear_observations())

        kwargs = {} if quadrature is None else {"quadrature": quadrature}
        fused = multi_sensor_update(prior, y, JointObservationModel(sensors), **kwargs)

        expected_mean, expected_cov = _stacked_kalman_update(prior, y, sensors)
        np.testing.assert_allclose(np.asarray(fused.belief.mean), expected_mean, atol=1e-10)
        np.testing.assert_allclose(np.asarray(fused.belief.covariance), expected_cov, atol=1e-10)

    def test_information_form(self):
        """The information matrix is the posterior precision."""
        fused = multi_sensor_update(
            _prior(), jnp.concatenate(_linear_observations()), JointObservationModel(_linear_sensors())
        )
        assert jnp.allclose(
            fused.information_matrix @ fused.belief.covariance, jnp.eye(2), atol=1e-10
        )
        assert len(fused.innovations) == 3
        assert [nu.shape[0] for nu in fused.innovations] == [2, 1, 2]


class TestNoSensors:
    def test_prior_returned(self):
        prior = _prior()
        fused = multi_sensor_update(prior, jnp.zeros(0), JointObservationModel([], state_dimension=2))

        assert jnp.allclose(fused.belief.mean, prior.mean, atol=1e-12)
        assert jnp.allclose(fused.belief.covariance, prior.covariance, atol=1e-12)
        assert jnp.allclose(fused.information_vector, jnp.zeros(2))
        assert fused.innovations == ()


class TestAgreeingSensors:
    """Two sensors ``h(x) = x + v`` with ``R = 0.1 I`` both reporting ``(1, 1)``."""

    def _setup(self):
        prior = GaussianBelief.from_moments(jnp.zeros(2), jnp.eye(2))
        sensor = LinearObservationModel(jnp.eye(2), 0.1 * jnp.eye(2))
        return prior, sensor

    def test_posterior_near_measurement(self):
        prior, sensor = self._setup()
        fused = multi_sensor_update(prior, jnp.ones(4), JointObservationModel([sensor, sensor]))

        assert jnp.allclose(fused.belief.mean, jnp.full(2, 20.0 / 21.0), atol=1e-10)
        assert jnp.allclose(fused.belief.covariance, jnp.eye(2) / 21.0, atol=1e-10)

    def test_tighter_than_single_sensor(self):
        """Two sensors leave strictly less uncertainty than one."""
        prior, sensor = self._setup()
        fused = multi_sensor_update(prior, jnp.ones(4), JointObservationModel([sensor, sensor]))
        single = sigma_point_update(prior, jnp.ones(2), sensor)

        assert jnp.allclose(single.belief.covariance, jnp.eye(2) / 11.0, atol=1e-10)
        gap = single.belief.covariance - fused.belief.covariance
        assert float(jnp.min(jnp.linalg.eigvalsh(gap))) > 0.0


# ──────────────────────────────────────────────
# Failure modes
# ──────────────────────────────────────────────


class TestSingularCovariances:
    def test_zero_prior_raises(self):
        """A deterministic prior has no invertible state covariance."""
        prior = GaussianBelief.from_moments(jnp.zeros(2), jnp.zeros((2, 2)))
        sensor = LinearObservationModel(jnp.eye(2), 0.1 * jnp.eye(2))

        with pytest.raises(SingularCovarianceError, match="state covariance") as exc:
            multi_sensor_update(prior, jnp.ones(4), JointObservationModel([sensor, sensor]))
        assert exc.value.sensor_index is None

    def test_zero_prior_is_numerical_error(self):
        prior = GaussianBelief.from_moments(jnp.zeros(2), jnp.zeros((2, 2)))
        sensor = LinearObservationModel(jnp.eye(2), 0.1 * jnp.eye(2))
        with pytest.raises(NumericalError):
            multi_sensor_update(prior, jnp.ones(2), JointObservationModel([sensor]))

    def test_noise_free_sensor_reports_index(self):
        """A sensor with no noise has a singular conditional covariance."""
        sensors = [
            LinearObservationModel(jnp.eye(2), 0.1 * jnp.eye(2)),
            LinearObservationModel(jnp.eye(2), jnp.zeros((2, 2))),
        ]
        with pytest.raises(SingularCovarianceError, match="sensor 1") as exc:
            multi_sensor_update(_prior(), jnp.ones(4), JointObservationModel(sensors))
        assert exc.value.sensor_index == 1
        assert exc.value.label == "conditional innovation covariance"

    def test_prior_untouched_on_failure(self):
        prior = _prior()
        sensors = [LinearObservationModel(jnp.eye(2), jnp.zeros((2, 2)))]
        with pytest.raises(SingularCovarianceError):
            multi_sensor_update(prior, jnp.ones(2), JointObservationModel(sensors))
        assert jnp.allclose(prior.covariance, jnp.array([[0.8, 0.2], [0.2, 0.5]]))

    def test_condition_number_ignores_units(self):
        """Diagonal scaling does not change the measured conditioning."""
        M = jnp.diag(jnp.array([1e8, 1e-8]))
        assert float(condition_number(M)) == pytest.approx(1.0)

    def test_condition_number_detects_rank_deficiency(self):
        v = jnp.array([1e3, 1e-3])
        cond = condition_number(jnp.outer(v, v))
        assert not jnp.isfinite(cond) or float(cond) > 1e12

    def test_condition_number_zero_diagonal_is_infinite(self):
        assert jnp.isinf(condition_number(jnp.diag(jnp.array([1.0, 0.0]))))


class TestShapeErrors:
    def test_stacked_length_mismatch(self):
        joint = JointObservationModel(_linear_sensors())
        with pytest.raises(DimensionMismatchError, match="Stacked observation"):
            multi_sensor_update(_prior(), jnp.zeros(4), joint)

    def test_belief_dimension_mismatch(self):
        joint = JointObservationModel(_linear_sensors())
        belief = GaussianBelief.from_moments(jnp.zeros(3), jnp.eye(3))
        with pytest.raises(DimensionMismatchError):
            multi_sensor_update(belief, jnp.zeros(5), joint)

    def test_single_model_rejected(self):
        sensor = LinearObservationModel(jnp.eye(2), jnp.eye(2))
        with pytest.raises(InvalidModelShapeError, match="count_local_models"):
            multi_sensor_update(_prior(), jnp.ones(2), sensor)

    def test_invalid_model_is_type_error(self):
        with pytest.raises(TypeError):
            multi_sensor_update(_prior(), jnp.ones(2), object())


# ──────────────────────────────────────────────
# Parallel evaluation
# ──────────────────────────────────────────────


class TestParallelContributions:
    def test_thread_pool_matches_sequential(self):
        sensors = [_range_sensor([3.0, 2.0]), _range_sensor([-2.0, 1.0]), _range_sensor([0.0, -4.0])]
        joint = JointObservationModel(sensors)
        y = jnp.array([2.9, 3.0, 3.6])

        sequential = multi_sensor_update(_prior(), y, joint)
        parallel = multi_sensor_update(_prior(), y, joint, max_workers=3)

        assert jnp.allclose(sequential.belief.mean, parallel.belief.mean, atol=1e-12)
        assert jnp.allclose(sequential.belief.covariance, parallel.belief.covariance, atol=1e-12)
        for a, b in zip(sequential.innovations, parallel.innovations):
            assert jnp.allclose(a, b)

    def test_thread_pool_reports_sensor_index(self):
        sensors = [
            LinearObservationModel(jnp.eye(2), 0.1 * jnp.eye(2)),
            LinearObservationModel(jnp.eye(2), 0.1 * jnp.eye(2)),
            LinearObservationModel(jnp.eye(2), jnp.zeros((2, 2))),
        ]
        with pytest.raises(SingularCovarianceError) as exc:
            multi_sensor_update(_prior(), jnp.ones(6), JointObservationModel(sensors), max_workers=2)
        assert exc.value.sensor_index == 2

    def test_selector_not_used(self):
        """Fusion reads local models by index and leaves the selector alone."""
        joint = JointObservationModel(_linear_sensors())
        joint.select_local_model(1)
        multi_sensor_update(_prior(), jnp.concatenate(_linear_observations()), joint, max_workers=2)
        assert joint.active_index == 1


class TestSensorContribution:
    def test_information_of_linear_sensor(self):
        """A linear sensor adds ``H^T R^{-1} H`` of information."""
        prior = _prior()
        sensor = LinearObservationModel(jnp.array([[1.0, 1.0]]), [[0.2]])
        quadrature = CubatureQuadrature()
        X, Q = quadrature.transform_to_points(prior)

        c = sensor_contribution(
            sensor, quadrature, X, Q, jnp.linalg.inv(prior.covariance), jnp.array([1.0])
        )

        H = sensor.H
        assert jnp.allclose(c.information, H.T @ H / 0.2, atol=1e-10)
        assert jnp.allclose(c.conditional_covariance, jnp.array([[0.2]]), atol=1e-10)
        assert jnp.allclose(c.innovation, jnp.array([1.0 - 0.5]), atol=1e-10)


# ──────────────────────────────────────────────
# Shared noise prior
# ──────────────────────────────────────────────


class TestSharedNoisePrior:
    def test_all_additive(self):
        assert shared_noise_prior(_linear_sensors()) is None

    def test_first_non_additive_wins(self):
        sensors = [
            _range_sensor([1.0, 0.0]),
            _range_sensor([0.0, 1.0], variance=0.04, additive=False),
            _range_sensor([1.0, 1.0], variance=0.04, additive=False),
        ]
        prior = shared_noise_prior(sensors)
        assert jnp.allclose(prior.covariance, jnp.array([[0.04]]))

    def test_heterogeneous_noise_warns(self, caplog):
        sensors = [
            _range_sensor([1.0, 0.0], variance=0.01, additive=False),
            _range_sensor([0.0, 1.0], variance=0.09, additive=False),
        ]
        with caplog.at_level(logging.WARNING, logger="sigmafusion.estimation.multi_sensor"):
            prior = shared_noise_prior(sensors)
        assert jnp.allclose(prior.covariance, jnp.array([[0.01]]))
        assert "different noise prior" in caplog.text

    def test_identical_noise_does_not_warn(self, caplog):
        sensors = [
            _range_sensor([1.0, 0.0], additive=False),
            _range_sensor([0.0, 1.0], additive=False),
        ]
        with caplog.at_level(logging.WARNING, logger="sigmafusion.estimation.multi_sensor"):
            shared_noise_prior(sensors)
        assert caplog.text == ""

    def test_noise_dimension_mismatch_raises(self):
        wide = FunctionalObservationModel(
            lambda x, v: jnp.array([x[0] + v[0] + v[1]]),
            state_dimension=2,
            observation_dimension=1,
            noise_covariance=jnp.eye(2),
            additive=False,
        )
        with pytest.raises(DimensionMismatchError, match="noise dimension"):
            shared_noise_prior([_range_sensor([0.0, 0.0], additive=False), wide])

    def test_non_additive_fusion(self):
        """Non-additive sensors with a shared noise prior fuse to a finite posterior."""
        sensors = [
            _range_sensor([3.0, 2.0], additive=False),
            _range_sensor([-2.0, 1.0], additive=False),
        ]
        fused = multi_sensor_update(_prior(), jnp.array([2.9, 3.0]), JointObservationModel(sensors))

        assert jnp.all(jnp.isfinite(fused.belief.mean))
        assert float(jnp.trace(fused.belief.covariance)) < float(jnp.trace(_prior().covariance))


# ──────────────────────────────────────────────
# JAX compatibility tests
# ──────────────────────────────────────────────


class TestJAXCompatibility:
    def _agreeing(self):
        sensor = LinearObservationModel(jnp.eye(2), 0.1 * jnp.eye(2))
        return JointObservationModel([sensor, sensor])

    def test_jit_fusion(self):
        joint = self._agreeing()

        @jax.jit
        def fuse(belief, y):
            return multi_sensor_update(belief, y, joint).belief

        prior = GaussianBelief.from_moments(jnp.zeros(2), jnp.eye(2))
        posterior = fuse(prior, jnp.ones(4))

        assert jnp.allclose(posterior.mean, jnp.full(2, 20.0 / 21.0), atol=1e-10)
        assert jnp.allclose(posterior.covariance, jnp.eye(2) / 21.0, atol=1e-10)

    def test_jit_filter_update_on_joint_model(self):
        process = LinearProcessModel(A=jnp.eye(2), Q=1e-3 * jnp.eye(2))
        kf = GaussianFilter(process, self._agreeing())

        prior = GaussianBelief.from_moments(jnp.zeros(2), jnp.eye(2))
        posterior = jax.jit(kf.update)(prior, jnp.ones(4))

        assert jnp.allclose(posterior.mean, jnp.full(2, 20.0 / 21.0), atol=1e-10)

    def test_jit_singular_prior_is_non_finite(self):
        """Conditioning checks are skipped under tracing."""
        joint = self._agreeing()

        @jax.jit
        def fuse(belief, y):
            return multi_sensor_update(belief, y, joint).belief

        prior = GaussianBelief.from_moments(jnp.zeros(2), jnp.zeros((2, 2)))
        posterior = fuse(prior, jnp.ones(4))

        assert not bool(jnp.all(jnp.isfinite(posterior.covariance)))
