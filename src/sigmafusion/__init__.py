"""
sigmafusion is a small sigma-point Gaussian filtering library implemented in JAX,
with multi-sensor fusion in information form.
"""

from .config import set_dtype, get_dtype, set_condition_limit, get_condition_limit

from .errors import (
    SigmaFusionError,
    DimensionMismatchError,
    InvalidModelShapeError,
    NumericalError,
    SingularCovarianceError,
)

from .belief import GaussianBelief

from .quadrature import (
    PointSet,
    point_covariance,
    UnscentedQuadrature,
    CubatureQuadrature,
)

from .models import (
    LinearProcessModel,
    FunctionalProcessModel,
    LinearObservationModel,
    FunctionalObservationModel,
    JointObservationModel,
)

from .estimation import (
    UpdateResult,
    FusionResult,
    sigma_point_predict,
    sigma_point_update,
    multi_sensor_update,
    UpdatePolicy,
    GaussianFilter,
)

__all__ = [
    "set_dtype",
    "get_dtype",
    "set_condition_limit",
    "get_condition_limit",
    "SigmaFusionError",
    "DimensionMismatchError",
    "InvalidModelShapeError",
    "NumericalError",
    "SingularCovarianceError",
    "GaussianBelief",
    "PointSet",
    "point_covariance",
    "UnscentedQuadrature",
    "CubatureQuadrature",
    "LinearProcessModel",
    "FunctionalProcessModel",
    "LinearObservationModel",
    "FunctionalObservationModel",
    "JointObservationModel",
    "UpdateResult",
    "FusionResult",
    "sigma_point_predict",
    "sigma_point_update",
    "multi_sensor_update",
    "UpdatePolicy",
    "GaussianFilter",
]
