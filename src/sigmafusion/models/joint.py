"""Joint observation model over several local sensors.

A :class:`JointObservationModel` is a view over ``K`` local observation
models that observe the same state. Local models may be homogeneous or
heterogeneous. The joint observation vector is the concatenation of the
local observations in sensor order.

Local models are reachable by index through :meth:`local_model`, which
has no side effects, so per-sensor evaluation does not depend on call
order. The model also keeps an *active selector* for callers that
evaluate it as a single observation model: ``observe``,
``observation_dimension``, ``noise_dimension``, ``noise_prior`` and
``additive`` all refer to the active local model.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from sigmafusion.belief import GaussianBelief
from sigmafusion.config import get_dtype
from sigmafusion.errors import DimensionMismatchError
from sigmafusion.models._types import ObservationModel


def split_stacked_observation(y: ArrayLike, dimensions: Sequence[int]) -> tuple[Array, ...]:
    """Split a stacked observation into blocks of the given lengths.

    Args:
        y: Stacked observation of length ``sum(dimensions)``.
        dimensions: Length of each local block, in sensor order.

    Returns:
        tuple: One array per block, in sensor order.

    Raises:
        DimensionMismatchError: If the length of *y* does not match.
    """
    y = jnp.asarray(y, dtype=get_dtype())
    dimensions = [int(m) for m in dimensions]
    expected = sum(dimensions)
    if y.ndim != 1 or y.shape[0] != expected:
        raise DimensionMismatchError(
            f"Stacked observation must have shape ({expected},) for sensor "
            f"dimensions {dimensions}, got {y.shape}"
        )
    blocks = []
    start = 0
    for m in dimensions:
        blocks.append(y[start : start + m])
        start += m
    return tuple(blocks)


class JointObservationModel:
    """View over ``K`` local observation models sharing one state.

    Args:
        local_models: Local observation models in sensor order.
        state_dimension: Dimension of the shared state. Required when
            *local_models* is empty, otherwise it must agree with every
            local model.

    Raises:
        DimensionMismatchError: If local models disagree on the state
            dimension.
        ValueError: If no local models and no state dimension are given.

    Examples:
        ```python
        import jax.numpy as jnp
        from sigmafusion.models import JointObservationModel, LinearObservationModel

        joint = JointObservationModel([
            LinearObservationModel(jnp.eye(2), 0.1 * jnp.eye(2)),
            LinearObservationModel(jnp.eye(2), 0.2 * jnp.eye(2)),
        ])
        joint.count_local_models()            # 2
        joint.stacked_observation_dimension()  # 4
        ```
    """

    def __init__(
        self,
        local_models: Sequence[ObservationModel],
        state_dimension: int | None = None,
    ):
        self._local_models = tuple(local_models)
        if not self._local_models and state_dimension is None:
            raise ValueError("state_dimension is required for a joint model without sensors")

        dims = {int(m.state_dimension()) for m in self._local_models}
        if state_dimension is not None:
            dims.add(int(state_dimension))
        if len(dims) > 1:
            raise DimensionMismatchError(
                f"Local observation models disagree on state dimension: {sorted(dims)}"
            )
        self._state_dimension = dims.pop()
        self._active = 0

    # Indexed access

    def count_local_models(self) -> int:
        return len(self._local_models)

    def local_model(self, index: int) -> ObservationModel:
        """Return local model *index* without touching the selector.

        Raises:
            IndexError: If *index* is out of range.
        """
        if not 0 <= index < len(self._local_models):
            raise IndexError(
                f"Local model index {index} out of range for {len(self._local_models)} models"
            )
        return self._local_models[index]

    def __len__(self) -> int:
        return len(self._local_models)

    def __getitem__(self, index: int) -> ObservationModel:
        return self.local_model(index)

    def __iter__(self) -> Iterator[ObservationModel]:
        return iter(self._local_models)

    # Active selector

    def select_local_model(self, index: int) -> None:
        """Make local model *index* the active one.

        Raises:
            IndexError: If *index* is out of range.
        """
        self.local_model(index)
        self._active = index

    @property
    def active_index(self) -> int:
        return self._active

    def _active_model(self) -> ObservationModel:
        return self.local_model(self._active)

    @property
    def additive(self) -> bool:
        return self._active_model().additive

    def state_dimension(self) -> int:
        return self._state_dimension

    def observation_dimension(self) -> int:
        return self._active_model().observation_dimension()

    def noise_dimension(self) -> int:
        return self._active_model().noise_dimension()

    def noise_prior(self) -> GaussianBelief:
        return self._active_model().noise_prior()

    def observe(self, state: Array, noise: Array) -> Array:
        return self._active_model().observe(state, noise)

    # Stacked observations

    def observation_dimensions(self) -> tuple[int, ...]:
        """Observation dimension of every local model, in sensor order."""
        return tuple(int(m.observation_dimension()) for m in self._local_models)

    def stacked_observation_dimension(self) -> int:
        """Length of the stacked observation vector."""
        return sum(self.observation_dimensions())

    def split_observation(self, y: ArrayLike) -> tuple[Array, ...]:
        """Split a stacked observation into local blocks.

        Raises:
            DimensionMismatchError: If the length of *y* does not match.
        """
        return split_stacked_observation(y, self.observation_dimensions())

    def stack_observations(self, blocks: Sequence[ArrayLike]) -> Array:
        """Concatenate local observations into one stacked vector.

        Raises:
            DimensionMismatchError: If the number or sizes of the blocks do
                not match the local models.
        """
        dtype = get_dtype()
        blocks = [jnp.reshape(jnp.asarray(b, dtype=dtype), (-1,)) for b in blocks]
        sizes = tuple(b.shape[0] for b in blocks)
        if sizes != self.observation_dimensions():
            raise DimensionMismatchError(
                f"Observation blocks have sizes {sizes}, expected {self.observation_dimensions()}"
            )
        if not blocks:
            return jnp.zeros(0, dtype=dtype)
        return jnp.concatenate(blocks)

    def __repr__(self) -> str:
        return (
            f"JointObservationModel(local_models={len(self._local_models)}, "
            f"state_dimension={self._state_dimension})"
        )
