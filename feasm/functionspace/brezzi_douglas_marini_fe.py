
import sympy as sp

from ..mesh.geometry import Triangle
from .finite_element import SYMBOLS
from .hdiv_moment_fe import HdivMomentElement

x, y, z = SYMBOLS


class HdivBDM2(HdivMomentElement):
    """Brezzi-Douglas-Marini elements of order two on triangles.

    The span is P2^2. Every face carries three flux moments; the interior
    dofs are the moments against the gradients of the second and third
    barycentric coordinates and the curl of the cubic bubble.
    """
    patterns = {Triangle: "f3i3"}
    orders = {Triangle: 2}
    face_degree = 2

    def span(self, geometry):
        zero = sp.Integer(0)
        monomials = [sp.Integer(1), x, y, x*x, x*y, y*y]
        return [[p, zero] for p in monomials] + [[zero, p] for p in monomials]

    def interior_tests(self, geometry):
        zero, one = sp.Integer(0), sp.Integer(1)
        bubble = (1 - x - y)*x*y
        return [[one, zero], [zero, one], [sp.diff(bubble, y), -sp.diff(bubble, x)]]
