"""Generic process (state transition) models.

- :class:`LinearProcessModel` -- ``x' = A x + B u + w``.
- :class:`FunctionalProcessModel` -- wraps a user transition function,
  with additive or non-additive process noise.
"""

from __future__ import annotations

from collections.abc import Callable

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from sigmafusion.belief import GaussianBelief
from sigmafusion.config import get_dtype
from sigmafusion.errors import DimensionMismatchError
from sigmafusion.models.observation import _noise_prior, _square


class LinearProcessModel:
    """Linear process model ``x' = A x + B u + w`` with ``w ~ N(0, Q)``.

    The time step is ignored; ``A`` and ``B`` are already discretised.

    Args:
        A: State transition matrix of shape ``(n, n)``.
        Q: Process noise covariance of shape ``(n, n)``.
        B: Optional input matrix of shape ``(n, p)``.
    """

    additive = True

    def __init__(self, A: ArrayLike, Q: ArrayLike, B: ArrayLike | None = None):
        dtype = get_dtype()
        self.A = _square("A", A)
        n = self.A.shape[0]
        self.Q = _square("Q", Q, n)
        self.B = jnp.zeros((n, 0), dtype=dtype) if B is None else jnp.asarray(B, dtype=dtype)
        if self.B.ndim != 2 or self.B.shape[0] != n:
            raise DimensionMismatchError(f"B must have {n} rows, got shape {self.B.shape}")

    def state_dimension(self) -> int:
        return self.A.shape[0]

    def noise_dimension(self) -> int:
        return self.Q.shape[0]

    def input_dimension(self) -> int:
        return self.B.shape[1]

    def noise_prior(self) -> GaussianBelief:
        return _noise_prior(self.Q)

    def next_state(self, state: Array, noise: Array, control: Array, dt: float) -> Array:
        return self.A @ state + self.B @ control + noise


class FunctionalProcessModel:
    """Process model defined by a user transition function.

    With ``additive=True`` the function has signature
    ``fn(x, u, dt) -> x'`` and process noise is added afterwards. With
    ``additive=False`` it has signature ``fn(x, w, u, dt) -> x'``.

    Args:
        fn: Transition function built from JAX operations.
        state_dimension: Dimension ``n`` of the state.
        noise_covariance: Process noise covariance of shape ``(q, q)``.
            For additive models ``q`` must equal ``n``.
        input_dimension: Dimension ``p`` of the control input. Default: 0.
        additive: Whether the noise is additive. Default: ``True``.

    Examples:
        ```python
        import jax.numpy as jnp
        from sigmafusion.models import FunctionalProcessModel

        def constant_velocity(x, u, dt):
            return jnp.array([x[0] + dt * x[1], x[1]])

        process = FunctionalProcessModel(
            constant_velocity, state_dimension=2, noise_covariance=1e-3 * jnp.eye(2)
        )
        ```
    """

    def __init__(
        self,
        fn: Callable[..., Array],
        state_dimension: int,
        noise_covariance: ArrayLike,
        input_dimension: int = 0,
        additive: bool = True,
    ):
        self.fn = fn
        self._state_dimension = int(state_dimension)
        self._input_dimension = int(input_dimension)
        self.Q = _square(
            "noise_covariance",
            noise_covariance,
            self._state_dimension if additive else None,
        )
        self.additive = additive

    def state_dimension(self) -> int:
        return self._state_dimension

    def noise_dimension(self) -> int:
        return self.Q.shape[0]

    def input_dimension(self) -> int:
        return self._input_dimension

    def noise_prior(self) -> GaussianBelief:
        return _noise_prior(self.Q)

    def next_state(self, state: Array, noise: Array, control: Array, dt: float) -> Array:
        if self.additive:
            return self.fn(state, control, dt) + noise
        return self.fn(state, noise, control, dt)
