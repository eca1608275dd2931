"""Update policy selection.

A Gaussian filter performs its measurement update with one of a closed
set of policies:

- :attr:`UpdatePolicy.SINGLE_SENSOR` -- :func:`sigma_point_update`
- :attr:`UpdatePolicy.MULTI_SENSOR` -- :func:`multi_sensor_update`
"""

from __future__ import annotations

import enum
from typing import Any

from sigmafusion.errors import InvalidModelShapeError
from sigmafusion.models._types import is_joint_observation_model


class UpdatePolicy(enum.Enum):
    """Measurement update strategy of a Gaussian filter."""

    SINGLE_SENSOR = "single_sensor"
    MULTI_SENSOR = "multi_sensor"


def select_update_policy(model: Any, policy: UpdatePolicy | str | None = None) -> UpdatePolicy:
    """Choose the update policy for an observation model.

    Args:
        model: Observation model.
        policy: Requested policy. ``None`` selects ``MULTI_SENSOR`` for
            joint observation models and ``SINGLE_SENSOR`` otherwise.

    Returns:
        UpdatePolicy: The policy to use.

    Raises:
        InvalidModelShapeError: If ``MULTI_SENSOR`` is requested for a
            model without the joint observation interface.
        ValueError: If *policy* is not a known policy name.
    """
    joint = is_joint_observation_model(model)
    if policy is None:
        return UpdatePolicy.MULTI_SENSOR if joint else UpdatePolicy.SINGLE_SENSOR

    policy = UpdatePolicy(policy)
    if policy is UpdatePolicy.MULTI_SENSOR and not joint:
        raise InvalidModelShapeError(
            f"Multi-sensor update requires a joint observation model, got "
            f"{type(model).__name__} without count_local_models() and local_model()"
        )
    return policy
