"""Structural interfaces for process and observation models.

Filters only rely on the methods declared here, so any object with the
right shape can be used as a model. Model functions are evaluated on
sigma points through ``jax.vmap`` and must be composed of JAX operations.

Every model carries an ``additive`` flag. Additive models are evaluated
with zero noise on un-augmented sigma points and their noise covariance
is added after propagation. Non-additive models receive noise sigma
points drawn from ``noise_prior()``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from jax import Array

if TYPE_CHECKING:
    from sigmafusion.belief import GaussianBelief


@runtime_checkable
class ProcessModel(Protocol):
    """Protocol for state transition models ``x' = f(x, w, u, dt)``."""

    additive: bool

    def state_dimension(self) -> int: ...

    def noise_dimension(self) -> int: ...

    def input_dimension(self) -> int: ...

    def noise_prior(self) -> GaussianBelief: ...

    def next_state(self, state: Array, noise: Array, control: Array, dt: float) -> Array: ...


@runtime_checkable
class ObservationModel(Protocol):
    """Protocol for single-sensor observation models ``y = h(x, v)``."""

    additive: bool

    def state_dimension(self) -> int: ...

    def noise_dimension(self) -> int: ...

    def observation_dimension(self) -> int: ...

    def noise_prior(self) -> GaussianBelief: ...

    def observe(self, state: Array, noise: Array) -> Array: ...


@runtime_checkable
class JointObservationModelLike(ObservationModel, Protocol):
    """Protocol for a view over several local observation models."""

    def count_local_models(self) -> int: ...

    def local_model(self, index: int) -> ObservationModel: ...

    def select_local_model(self, index: int) -> None: ...


def is_joint_observation_model(model: Any) -> bool:
    """Return whether *model* exposes the multi-sensor interface.

    Args:
        model: Any object.

    Returns:
        bool: ``True`` if *model* has callable ``count_local_models`` and
            ``local_model`` methods.
    """
    return callable(getattr(model, "count_local_models", None)) and callable(
        getattr(model, "local_model", None)
    )
