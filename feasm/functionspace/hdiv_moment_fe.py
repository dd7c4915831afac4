"""
H(div) elements defined by normal-flux moments on the faces and interior
moments.

The degrees of freedom of a face are the moments of the normal flux against
the shifted Legendre polynomials of the face, taken along the global face
normal and in the stored face orientation. The reference basis is dual to the
same functionals on the reference cell; the contravariant Piola transform
preserves them, so only the per-item signs of `cell_coefficients` are needed
to switch between the local and the global face conventions. Interior test
functions are mapped covariantly, `q = J^{-T} q_ref`.
"""
from functools import lru_cache
from typing import Callable, List

import numpy as np
import sympy as sp

from ..typing import TensorLike
from ..errors import ConfigurationError
from ..mesh.geometry import geometry_by_tag
from ..quadrature import quadrature_rule
from .finite_element import FiniteElement, SYMBOLS

x, y, z = SYMBOLS
t = sp.Symbol('t')

# increasing powers, orthogonal on [0, 1]
_LEGENDRE = ((1, ), (-1, 2), (1, -6, 6))


def shifted_legendre(m: int, s):
    """Legendre polynomial of degree `m` on [0, 1]; works on numbers, arrays
    and sympy expressions."""
    return sum(c*s**k for k, c in enumerate(_LEGENDRE[m]))


def _integrate_triangle(expr):
    return sp.integrate(sp.integrate(expr, (y, 0, 1 - x)), (x, 0, 1))


@lru_cache(maxsize=None)
def _dual_basis(element: "HdivMomentElement", geometry) -> List[List[sp.Expr]]:
    span = element.span(geometry)
    nodes = [sp.Matrix([sp.nsimplify(v) for v in p]) for p in geometry.refnodes]
    rows = []
    for a, b in geometry.faces:
        e = nodes[b] - nodes[a]
        # outward normal times the face length on a counterclockwise cell
        nl = (e[1], -e[0])
        point = {x: nodes[a][0] + t*e[0], y: nodes[a][1] + t*e[1]}
        for m in range(element.face_degree + 1):
            rows.append([sp.integrate(sp.expand((p[0]*nl[0] + p[1]*nl[1]).subs(point)
                                                *shifted_legendre(m, t)), (t, 0, 1))
                         for p in span])
    for q in element.interior_tests(geometry):
        rows.append([_integrate_triangle(sp.expand(p[0]*q[0] + p[1]*q[1]))
                     for p in span])
    A = sp.Matrix(rows)
    if A.shape[0] != A.shape[1]:
        raise ConfigurationError(f"{element} has {A.shape[0]} functionals for "
                                 f"a span of dimension {A.shape[1]}.")
    B = A.inv()
    n = len(span)
    return [[sp.expand(sum(B[k, j]*span[k][c] for k in range(n))) for c in range(2)]
            for j in range(n)]


class HdivMomentElement(FiniteElement):
    """Base class of H(div) elements with `face_degree + 1` flux moments per
    face and the moments against `interior_tests` inside the cell."""
    conformity = 'Hdiv'
    interpolation = 'face_moment'
    trace_operators = ('NormalFlux', )
    face_degree: int = 0

    def __init__(self, ncomponents=None):
        super().__init__(None)

    def span(self, geometry) -> List[List[sp.Expr]]:
        raise NotImplementedError

    def interior_tests(self, geometry) -> List[List[sp.Expr]]:
        return []

    def basis_expressions(self, geometry, nc):
        return _dual_basis(self, geometry)

    def trace_element(self):
        return self

    def cell_coefficients(self, space, cell: int) -> TensorLike:
        """Sign `s*o**m` of the moment `m` of every face, where `s` flips the
        outward normal to the global one and `o` the local orientation to the
        stored one. Interior dofs keep sign one."""
        mesh = space.mesh
        faces = mesh.cell_to_face()[cell]
        G = geometry_by_tag(mesh.cell_geotag[cell])
        s = np.where(mesh.face_to_cell()[faces, 0] == cell, 1.0, -1.0)
        first = mesh.cell[cell][[fv[0] for fv in G.faces]]
        o = np.where(first == mesh.face.dense(faces)[:, 0], 1.0, -1.0)
        m = np.arange(self.face_degree + 1)
        signs = (s[:, None]*o[:, None]**m[None, :]).reshape(-1)
        nint = len(self.interior_tests(G))
        return np.concatenate([signs, np.ones(nint)])


def moment_functionals(element: HdivMomentElement, mesh, geometry, cells: TensorLike,
                       values: Callable[[TensorLike], TensorLike], order: int) -> TensorLike:
    """The global functionals of `element` applied to functions given on
    `cells`.

    Parameters:
        element (HdivMomentElement): Element defining the functionals.
        mesh (Mesh): The mesh, with affine cells of `geometry`.
        geometry (Type[ElementGeometry]): Geometry of the cells.
        cells (TensorLike): Cell indices, shaped (NC, ).
        values (Callable): Maps reference points (NQ, TD) to the physical
            values of n functions on every cell, shaped (NC, NQ, n, GD).
        order (int): Quadrature order.

    Returns:
        TensorLike: Functional values shaped (NC, n, nfunctionals), in the
            local dof order of the element.
    """
    c2n = mesh.cell.dense(cells)
    X = mesh.node[c2n]
    gphi = geometry.grad_shape_function(geometry.barycenter()[None, :])[0]
    J = np.einsum('cvg, vt -> cgt', X, gphi)

    c2f = mesh.cell_to_face().dense(cells)
    normal = mesh.face_unit_normal()
    fm = mesh.entity_measure('face')
    s, ws = quadrature_rule(geometry.face_geometry, order).get_quadrature_points_and_weights()
    out = []
    for lf, fv in enumerate(geometry.faces):
        faces = c2f[:, lf]
        same = c2n[:, fv[0]] == mesh.face.dense(faces)[:, 0]
        flux = np.einsum('cqig, cg -> cqi', values(geometry.face_to_cell(lf, s)), normal[faces])
        for m in range(element.face_degree + 1):
            P = np.where(same[:, None], shifted_legendre(m, s[:, 0])[None, :],
                         shifted_legendre(m, 1 - s[:, 0])[None, :])
            out.append(np.einsum('q, cq, cqi, c -> ci', ws, P, flux, fm[faces]))

    tests = element.interior_tests(geometry)
    if tests:
        bcs, ws = quadrature_rule(geometry, order).get_quadrature_points_and_weights()
        f = sp.lambdify(SYMBOLS[:geometry.TD], [list(q) for q in tests], modules='numpy')
        q = np.stack([np.broadcast_to(np.asarray(v, dtype=np.float64), (bcs.shape[0], ))
                      for row in f(*bcs.T) for v in row], axis=-1).reshape(bcs.shape[0], len(tests), -1)
        G = np.swapaxes(np.linalg.inv(J), -1, -2)
        qphys = np.einsum('cgt, qkt -> cqkg', G, q)
        cm = mesh.entity_measure('cell', cells)
        val = values(bcs)
        out.extend(np.einsum('q, cqig, cqkg, c -> kci', ws, val, qphys, cm))
    return np.stack(out, axis=-1)
