
import numpy as np
import sympy as sp

from ..typing import TensorLike
from ..mesh.geometry import Triangle, Quadrilateral, Tetrahedron
from .finite_element import FiniteElement, SYMBOLS
from .hdiv_moment_fe import HdivMomentElement

x, y, z = SYMBOLS


class HdivRT0(FiniteElement):
    """Lowest-order Raviart-Thomas elements.

    The reference basis function of local face k has unit outward flux through
    face k and zero normal flux through the others. Global dofs are fluxes in
    the direction of the global face normal; the per-item signs account for
    cells that see the face from the other side.
    """
    conformity = 'Hdiv'
    interpolation = 'face_flux'
    patterns = {Triangle: "f1", Quadrilateral: "f1", Tetrahedron: "f1"}
    orders = {Triangle: 1, Quadrilateral: 1, Tetrahedron: 1}
    trace_operators = ('NormalFlux', )
    face_degree = 0

    def __init__(self, ncomponents=None):
        super().__init__(None)

    def basis_expressions(self, geometry, nc):
        if geometry is Triangle:
            return [[x, y - 1], [x, y], [x - 1, y]]
        elif geometry is Quadrilateral:
            zero = sp.Integer(0)
            return [[zero, y - 1], [x, zero], [zero, y], [x - 1, zero]]
        return [
            [2*x, 2*y, 2*(z - 1)], [2*x, 2*(y - 1), 2*z],
            [2*x, 2*y, 2*z], [2*(x - 1), 2*y, 2*z]]

    def trace_element(self):
        return self

    def cell_coefficients(self, space, cell: int) -> TensorLike:
        mesh = space.mesh
        faces = mesh.cell_to_face()[cell]
        left = mesh.face_to_cell()[faces, 0]
        return np.where(left == cell, 1.0, -1.0)


class HdivRT1(HdivMomentElement):
    """Raviart-Thomas elements of order one on triangles.

    The span is P1^2 + x P1, with the flux moments against 1 and 2t - 1 on
    every face and the cell means of both components as interior dofs.
    """
    patterns = {Triangle: "f2i2"}
    orders = {Triangle: 2}
    face_degree = 1

    def span(self, geometry):
        zero, one = sp.Integer(0), sp.Integer(1)
        return [[one, zero], [x, zero], [y, zero], [zero, one], [zero, x], [zero, y],
                [x*x, x*y], [x*y, y*y]]

    def interior_tests(self, geometry):
        zero, one = sp.Integer(0), sp.Integer(1)
        return [[one, zero], [zero, one]]
