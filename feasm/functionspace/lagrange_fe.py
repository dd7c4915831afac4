
from typing import List

import numpy as np
import sympy as sp

from ..mesh.geometry import (
    Point, Edge, Triangle, Quadrilateral, Tetrahedron, Hexahedron
)
from .finite_element import FiniteElement, SYMBOLS, expand_components

x, y, z = SYMBOLS


def _barycentric(geometry) -> List[sp.Expr]:
    if geometry is Edge:
        return [1 - x, x]
    elif geometry is Triangle:
        return [1 - x - y, x, y]
    elif geometry is Tetrahedron:
        return [1 - x - y - z, x, y, z]
    raise ValueError(f"{geometry} is not a simplex.")


def _multilinear(geometry) -> List[sp.Expr]:
    if geometry is Quadrilateral:
        return [(1 - x)*(1 - y), x*(1 - y), x*y, (1 - x)*y]
    q = _multilinear(Quadrilateral)
    return [phi*(1 - z) for phi in q] + [phi*z for phi in q]


def _midpoints(geometry, entities):
    return np.array([geometry.refnodes[list(e)].mean(axis=0) for e in entities])


class LagrangeFiniteElement(FiniteElement):
    """Nodal elements. The basis function of dof k is one at the k-th
    interpolation point and zero at the others."""
    trace_operators = ('Identity', )

    def scalar_basis(self, geometry) -> List[sp.Expr]:
        raise NotImplementedError

    def basis_expressions(self, geometry, nc):
        return expand_components(self.scalar_basis(geometry), nc)

    def trace_element(self):
        return self


class H1P0(LagrangeFiniteElement):
    """Piecewise constants."""
    patterns = {G: "I1" for G in (Edge, Triangle, Quadrilateral, Tetrahedron, Hexahedron)}
    orders = {G: 0 for G in patterns}

    def scalar_basis(self, geometry):
        return [sp.Integer(1)]

    def trace_element(self):
        return None

    def interpolation_points(self, geometry):
        self._check(geometry)
        return geometry.barycenter()[None, :]


class H1P1(LagrangeFiniteElement):
    """Continuous piecewise linear (simplices) or multilinear (tensor-product
    cells) elements."""
    patterns = {G: "N1" for G in (Point, Edge, Triangle, Quadrilateral, Tetrahedron, Hexahedron)}
    orders = {Point: 0, Edge: 1, Triangle: 1, Quadrilateral: 2, Tetrahedron: 1, Hexahedron: 3}

    def scalar_basis(self, geometry):
        if geometry is Point:
            return [sp.Integer(1)]
        if geometry.simplex:
            return _barycentric(geometry)
        return _multilinear(geometry)

    def interpolation_points(self, geometry):
        self._check(geometry)
        return geometry.refnodes.copy()


class H1P2(LagrangeFiniteElement):
    """Continuous piecewise quadratic elements; serendipity on
    quadrilaterals."""
    patterns = {
        Point: "N1", Edge: "N1I1", Triangle: "N1F1",
        Quadrilateral: "N1F1", Tetrahedron: "N1E1"}
    orders = {Point: 0, Edge: 2, Triangle: 2, Quadrilateral: 3, Tetrahedron: 2}

    def scalar_basis(self, geometry):
        if geometry is Point:
            return [sp.Integer(1)]
        if geometry is Quadrilateral:
            return self._serendipity()
        lam = _barycentric(geometry)
        if geometry is Edge:
            pairs = ((0, 1), )
        elif geometry is Triangle:
            pairs = Triangle.faces
        else:
            pairs = Tetrahedron.edges
        vertex = [l*(2*l - 1) for l in lam]
        edge = [4*lam[a]*lam[b] for a, b in pairs]
        return vertex + edge

    def _serendipity(self):
        xi, eta = 2*x - 1, 2*y - 1
        corners = ((-1, -1), (1, -1), (1, 1), (-1, 1))
        vertex = [(1 + xi*a)*(1 + eta*b)*(xi*a + eta*b - 1)/4 for a, b in corners]
        mids = ((0, -1), (1, 0), (0, 1), (-1, 0))
        edge = []
        for a, b in mids:
            if a == 0:
                edge.append((1 - xi**2)*(1 + eta*b)/2)
            else:
                edge.append((1 + xi*a)*(1 - eta**2)/2)
        return vertex + edge

    def interpolation_points(self, geometry):
        self._check(geometry)
        if geometry is Point:
            return np.zeros((1, 0))
        if geometry is Edge:
            return np.array([[0.0], [1.0], [0.5]])
        entities = Tetrahedron.edges if geometry is Tetrahedron else geometry.faces
        return np.concatenate([geometry.refnodes, _midpoints(geometry, entities)], axis=0)


class H1P2B(LagrangeFiniteElement):
    """Quadratic elements enriched by the cubic cell bubble on triangles.

    The quadratic functions are corrected by the bubble so that the basis
    stays nodal with the barycenter as seventh point."""
    patterns = {Triangle: "N1F1I1"}
    orders = {Triangle: 3}

    def scalar_basis(self, geometry):
        lam = _barycentric(geometry)
        bubble = 27*lam[0]*lam[1]*lam[2]
        vertex = [l*(2*l - 1) + bubble/9 for l in lam]
        edge = [4*lam[a]*lam[b] - 4*bubble/9 for a, b in Triangle.faces]
        return vertex + edge + [bubble]

    def trace_element(self):
        return H1P2(self._ncomponents)

    def interpolation_points(self, geometry):
        self._check(geometry)
        p2 = H1P2().interpolation_points(geometry)
        return np.concatenate([p2, geometry.barycenter()[None, :]], axis=0)
