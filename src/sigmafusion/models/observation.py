"""Generic single-sensor observation models.

- :class:`LinearObservationModel` -- affine sensor ``y = H x + b + v``.
- :class:`FunctionalObservationModel` -- wraps a user function, with
  additive (``y = h(x) + v``) or non-additive (``y = h(x, v)``) noise.

Both expose the :class:`~sigmafusion.models.ObservationModel` interface
and can be used on their own or as local models of a
:class:`~sigmafusion.models.JointObservationModel`.
"""

from __future__ import annotations

from collections.abc import Callable

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from sigmafusion.belief import GaussianBelief
from sigmafusion.config import get_dtype
from sigmafusion.errors import DimensionMismatchError


def _noise_prior(R: Array) -> GaussianBelief:
    return GaussianBelief(mean=jnp.zeros(R.shape[0], dtype=R.dtype), covariance=R)


def _square(name: str, M: ArrayLike, size: int | None = None) -> Array:
    M = jnp.atleast_2d(jnp.asarray(M, dtype=get_dtype()))
    if M.shape[0] != M.shape[1] or (size is not None and M.shape[0] != size):
        expected = f"({size}, {size})" if size is not None else "square"
        raise DimensionMismatchError(f"{name} must be {expected}, got shape {M.shape}")
    return M


class LinearObservationModel:
    """Affine observation model ``y = H x + b + v`` with ``v ~ N(0, R)``.

    Args:
        H: Observation matrix of shape ``(m, n)``.
        R: Noise covariance of shape ``(m, m)``.
        offset: Optional constant ``b`` of shape ``(m,)``.
        additive: Whether filters treat the noise additively. The
            observation is the same either way; non-additive treatment
            injects noise sigma points instead of adding ``R``.

    Examples:
        ```python
        import jax.numpy as jnp
        from sigmafusion.models import LinearObservationModel

        sensor = LinearObservationModel(H=jnp.eye(2), R=0.1 * jnp.eye(2))
        sensor.observation_dimension()  # 2
        ```
    """

    def __init__(
        self,
        H: ArrayLike,
        R: ArrayLike,
        offset: ArrayLike | None = None,
        additive: bool = True,
    ):
        dtype = get_dtype()
        self.H = jnp.atleast_2d(jnp.asarray(H, dtype=dtype))
        m = self.H.shape[0]
        self.R = _square("R", R, m)
        self.offset = (
            jnp.zeros(m, dtype=dtype) if offset is None else jnp.asarray(offset, dtype=dtype)
        )
        if self.offset.shape != (m,):
            raise DimensionMismatchError(
                f"offset must have shape ({m},), got {self.offset.shape}"
            )
        self.additive = additive

    def state_dimension(self) -> int:
        return self.H.shape[1]

    def observation_dimension(self) -> int:
        return self.H.shape[0]

    def noise_dimension(self) -> int:
        return self.R.shape[0]

    def noise_prior(self) -> GaussianBelief:
        return _noise_prior(self.R)

    def observe(self, state: Array, noise: Array) -> Array:
        return self.H @ state + self.offset + noise

    def __repr__(self) -> str:
        return (
            f"LinearObservationModel(state_dimension={self.state_dimension()}, "
            f"observation_dimension={self.observation_dimension()}, "
            f"additive={self.additive})"
        )


class FunctionalObservationModel:
    """Observation model defined by a user function.

    With ``additive=True`` the function has signature ``fn(x) -> y`` and
    the observation is ``fn(x) + v``. With ``additive=False`` it has
    signature ``fn(x, v) -> y`` and the noise enters nonlinearly.

    Args:
        fn: Observation function built from JAX operations.
        state_dimension: Dimension ``n`` of the state.
        observation_dimension: Dimension ``m`` of the observation.
        noise_covariance: Noise covariance of shape ``(q, q)``. For
            additive models ``q`` must equal ``m``.
        additive: Whether the noise is additive. Default: ``True``.

    Examples:
        ```python
        import jax.numpy as jnp
        from sigmafusion.models import FunctionalObservationModel

        def range_bearing(x):
            return jnp.array([jnp.hypot(x[0], x[1]), jnp.arctan2(x[1], x[0])])

        sensor = FunctionalObservationModel(
            range_bearing,
            state_dimension=4,
            observation_dimension=2,
            noise_covariance=jnp.diag(jnp.array([0.5**2, 0.01**2])),
        )
        ```
    """

    def __init__(
        self,
        fn: Callable[..., Array],
        state_dimension: int,
        observation_dimension: int,
        noise_covariance: ArrayLike,
        additive: bool = True,
    ):
        self.fn = fn
        self._state_dimension = int(state_dimension)
        self._observation_dimension = int(observation_dimension)
        self.R = _square(
            "noise_covariance",
            noise_covariance,
            self._observation_dimension if additive else None,
        )
        self.additive = additive

    def state_dimension(self) -> int:
        return self._state_dimension

    def observation_dimension(self) -> int:
        return self._observation_dimension

    def noise_dimension(self) -> int:
        return self.R.shape[0]

    def noise_prior(self) -> GaussianBelief:
        return _noise_prior(self.R)

    def observe(self, state: Array, noise: Array) -> Array:
        if self.additive:
            return jnp.reshape(self.fn(state), (-1,)) + noise
        return jnp.reshape(self.fn(state, noise), (-1,))

    def __repr__(self) -> str:
        name = getattr(self.fn, "__name__", repr(self.fn))
        return (
            f"FunctionalObservationModel({name}, state_dimension={self._state_dimension}, "
            f"observation_dimension={self._observation_dimension}, "
            f"additive={self.additive})"
        )
