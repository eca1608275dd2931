"""Deterministic sigma-point quadrature.

Approximates nonlinear transformations of Gaussian random variables with
small, weighted point sets whose first two moments match the input
Gaussian exactly.

Available components:

- :class:`PointSet` -- Weighted sigma-point cloud
- :func:`point_covariance` -- Weighted cross covariance of two point sets
- :class:`Quadrature` -- Protocol implemented by quadrature rules
- :class:`UnscentedQuadrature` -- Scaled unscented transform (``2d+1`` points)
- :class:`CubatureQuadrature` -- Spherical-radial cubature (``2d`` points)
- :func:`propagate_points` -- Push a point set through ``f(x, w)``
"""

from sigmafusion.quadrature._common import propagate_points
from sigmafusion.quadrature._types import PointSet, Quadrature, point_covariance
from sigmafusion.quadrature.cubature import CubatureQuadrature
from sigmafusion.quadrature.unscented import UnscentedQuadrature

__all__ = [
    "PointSet",
    "Quadrature",
    "point_covariance",
    "propagate_points",
    "UnscentedQuadrature",
    "CubatureQuadrature",
]
