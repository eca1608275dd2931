"""Process and observation models for Gaussian filtering.

Filters talk to models through the structural interfaces in this module;
the concrete classes cover linear models and models built from user
functions.

Available components:

- :class:`ProcessModel` -- Protocol for state transition models
- :class:`ObservationModel` -- Protocol for single-sensor observation models
- :class:`JointObservationModelLike` -- Protocol for multi-sensor views
- :func:`is_joint_observation_model` -- Check for the multi-sensor interface
- :class:`LinearProcessModel` -- ``x' = A x + B u + w``
- :class:`FunctionalProcessModel` -- User transition function
- :class:`LinearObservationModel` -- ``y = H x + b + v``
- :class:`FunctionalObservationModel` -- User observation function
- :class:`JointObservationModel` -- ``K`` local sensors over one state
- :func:`split_stacked_observation` -- Split a stacked observation by sensor
"""

from sigmafusion.models._types import (
    JointObservationModelLike,
    ObservationModel,
    ProcessModel,
    is_joint_observation_model,
)
from sigmafusion.models.joint import JointObservationModel, split_stacked_observation
from sigmafusion.models.observation import (
    FunctionalObservationModel,
    LinearObservationModel,
)
from sigmafusion.models.process import FunctionalProcessModel, LinearProcessModel

__all__ = [
    "ProcessModel",
    "ObservationModel",
    "JointObservationModelLike",
    "is_joint_observation_model",
    "LinearProcessModel",
    "FunctionalProcessModel",
    "LinearObservationModel",
    "FunctionalObservationModel",
    "JointObservationModel",
    "split_stacked_observation",
]
