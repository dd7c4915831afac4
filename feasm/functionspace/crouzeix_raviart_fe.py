
import sympy as sp

from ..mesh.geometry import Triangle, Quadrilateral, Tetrahedron
from .finite_element import FiniteElement, SYMBOLS, expand_components

x, y, z = SYMBOLS


class H1CR(FiniteElement):
    """Nonconforming Crouzeix-Raviart elements, one dof per face.

    The basis function of face k has mean one on face k and mean zero on the
    other faces. On simplices this equals the midpoint value; on
    quadrilaterals the parametric rotated bilinear span {1, s, t, s^2 - t^2}
    is used with these face means.
    """
    interpolation = 'face_mean'
    patterns = {Triangle: "F1", Quadrilateral: "F1", Tetrahedron: "F1"}
    orders = {Triangle: 1, Quadrilateral: 2, Tetrahedron: 1}

    def basis_expressions(self, geometry, nc):
        if geometry is Triangle:
            scalar = [1 - 2*y, 2*(x + y) - 1, 1 - 2*x]
        elif geometry is Tetrahedron:
            lam = [1 - x - y - z, x, y, z]
            # face k is opposite to the vertex it does not contain
            opposite = [3, 2, 0, 1]
            scalar = [1 - 3*lam[v] for v in opposite]
        else:
            s, t = 2*x - 1, 2*y - 1
            q, h, r = sp.Rational(1, 4), sp.Rational(1, 2), sp.Rational(3, 8)*(s*s - t*t)
            scalar = [q - h*t - r, q + h*s + r, q + h*t - r, q - h*s + r]
        return expand_components(scalar, nc)
