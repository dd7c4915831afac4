
import numpy as np
import sympy as sp

from ..typing import TensorLike
from ..mesh.geometry import Triangle, Quadrilateral
from .finite_element import FiniteElement, SYMBOLS, expand_components
from .lagrange_fe import H1P1

x, y, z = SYMBOLS


class H1BR(FiniteElement):
    """Bernardi-Raugel elements: vector-valued P1 (Q1) enriched by one face
    bubble per face times the unit face normal.

    The reference basis carries the bubble in every component; the normal is
    applied per item through the coefficients.
    """
    has_coefficients = True
    interpolation = 'bernardi_raugel'
    patterns = {Triangle: "N1f1", Quadrilateral: "N1f1"}
    orders = {Triangle: 2, Quadrilateral: 3}

    def __init__(self, ncomponents=None):
        super().__init__(None)

    def face_bubbles(self, geometry):
        if geometry is Triangle:
            lam = [1 - x - y, x, y]
            return [4*lam[a]*lam[b] for a, b in Triangle.faces]
        a, b = 1 - x, 1 - y
        return [4*x*a*b, 4*y*x*b, 4*x*y*a, 4*y*a*b]

    def basis_expressions(self, geometry, nc):
        nodal = expand_components(H1P1().scalar_basis(geometry), nc)
        bubbles = [[bf]*nc for bf in self.face_bubbles(geometry)]
        return nodal + bubbles

    def cell_coefficients(self, space, cell: int) -> TensorLike:
        mesh = space.mesh
        faces = mesh.cell_to_face()[cell]
        nc = space.ncomponents
        nn = mesh.cell[cell].shape[0]
        coef = np.ones((nc, nc*nn + faces.shape[0]), dtype=np.float64)
        coef[:, nc*nn:] = mesh.face_unit_normal(faces).T
        return coef
