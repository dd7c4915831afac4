from functools import lru_cache
from typing import Type

from .quadrature import Quadrature, PointQuadrature
from .gauss_legendre import GaussLegendreQuadrature, gauss_legendre
from .stroud_quadrature import StroudQuadrature
from .tensor_product_quadrature import TensorProductQuadrature

from ..mesh.geometry import (
    ElementGeometry, Point, Edge, Triangle, Quadrilateral, Tetrahedron, Hexahedron
)


@lru_cache(maxsize=None)
def quadrature_rule(geometry: Type[ElementGeometry], order: int) -> Quadrature:
    """Quadrature rule on the reference element of `geometry` that integrates
    polynomials up to degree `order` exactly. Negative orders are clamped to 0.
    Rules are cached and must not be modified."""
    order = max(int(order), 0)
    if geometry is Point:
        return PointQuadrature(order)
    elif geometry is Edge:
        return GaussLegendreQuadrature(order)
    elif geometry is Triangle:
        return StroudQuadrature(2, order)
    elif geometry is Tetrahedron:
        return StroudQuadrature(3, order)
    elif geometry is Quadrilateral:
        return TensorProductQuadrature(2, order)
    elif geometry is Hexahedron:
        return TensorProductQuadrature(3, order)
    raise ValueError(f"No quadrature rule for geometry {geometry}.")
