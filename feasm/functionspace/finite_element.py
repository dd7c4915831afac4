
from functools import lru_cache
from typing import Dict, List, Optional, Sequence, Tuple, Type

import numpy as np
import sympy as sp

from ..typing import TensorLike
from ..errors import ConfigurationError
from ..mesh.geometry import ElementGeometry

SYMBOLS = sp.symbols('x y z')


def _lambdify_array(exprs: List[sp.Expr], symbols: Sequence[sp.Symbol]):
    """Turn a flat list of expressions into a function of points (NQ, TD)
    returning an array shaped (NQ, len(exprs))."""
    f = sp.lambdify(symbols, exprs, modules='numpy')
    n = len(exprs)

    def evaluate(xref: TensorLike) -> TensorLike:
        NQ = xref.shape[0]
        vals = f(*[xref[:, i] for i in range(len(symbols))])
        out = np.empty((NQ, n), dtype=np.float64)
        for k, v in enumerate(vals):
            out[:, k] = v
        return out

    return evaluate


class ReferenceBasis():
    """Reference basis of one element on one geometry.

    The basis is given symbolically; values and derivatives are lambdified
    once at construction. Evaluation is a pure function of the reference
    points.

    Parameters:
        exprs (List[List[sp.Expr]]): One list of `nc` component expressions
            per local basis function.
        TD (int): Reference dimension.
    """
    def __init__(self, exprs: List[List[sp.Expr]], TD: int) -> None:
        self.exprs = exprs
        self.TD = TD
        self.ldof = len(exprs)
        self.nc = len(exprs[0]) if self.ldof > 0 else 0
        self.symbols = SYMBOLS[:TD]
        flat = [sp.sympify(e) for row in exprs for e in row]
        self._values = _lambdify_array(flat, self.symbols)
        grads = [sp.diff(e, s) for e in flat for s in self.symbols]
        self._grads = _lambdify_array(grads, self.symbols)
        self._hess = None
        self._flat = flat

    def values(self, xref: TensorLike) -> TensorLike:
        """Basis values shaped (NQ, ldof, nc)."""
        return self._values(xref).reshape(-1, self.ldof, self.nc)

    def gradients(self, xref: TensorLike) -> TensorLike:
        """Reference gradients shaped (NQ, ldof, nc, TD)."""
        return self._grads(xref).reshape(-1, self.ldof, self.nc, self.TD)

    def hessians(self, xref: TensorLike) -> TensorLike:
        """Reference Hessians shaped (NQ, ldof, nc, TD, TD)."""
        if self._hess is None:
            hess = [sp.diff(e, s, t) for e in self._flat
                    for s in self.symbols for t in self.symbols]
            self._hess = _lambdify_array(hess, self.symbols)
        TD = self.TD
        return self._hess(xref).reshape(-1, self.ldof, self.nc, TD, TD)


@lru_cache(maxsize=None)
def _reference_basis(element: "FiniteElement", geometry: Type[ElementGeometry], nc: int) -> ReferenceBasis:
    exprs = element.basis_expressions(geometry, nc)
    return ReferenceBasis(exprs, geometry.TD)


def expand_components(scalar: List[sp.Expr], nc: int) -> List[List[sp.Expr]]:
    """Component-blocked vector basis: all functions of the first component
    come first."""
    out = []
    for c in range(nc):
        for phi in scalar:
            row = [sp.Integer(0)]*nc
            row[c] = phi
            out.append(row)
    return out


class FiniteElement():
    """Base class of finite element families.

    Subclasses declare per geometry a dof pattern and a polynomial order, and
    provide the symbolic reference basis. Elements are immutable values;
    equality is by type and component count.
    """
    conformity: str = 'H1'
    has_coefficients: bool = False
    interpolation: str = 'nodal'
    patterns: Dict[Type[ElementGeometry], str] = {}
    orders: Dict[Type[ElementGeometry], int] = {}
    trace_operators: Tuple[str, ...] = ()

    def __init__(self, ncomponents: Optional[int]=1) -> None:
        self._ncomponents = ncomponents

    def __eq__(self, other) -> bool:
        return type(self) is type(other) and self._ncomponents == other._ncomponents

    def __hash__(self) -> int:
        return hash((type(self), self._ncomponents))

    def __repr__(self) -> str:
        nc = '' if self._ncomponents in (None, 1) else f"(ncomponents={self._ncomponents})"
        return f"{self.__class__.__name__}{nc}"

    def number_of_components(self, TD: int) -> int:
        """Component count on a mesh of dimension `TD`; vector-valued
        families tie it to the dimension."""
        if self._ncomponents is None:
            return TD
        return self._ncomponents

    def supports(self, geometry: Type[ElementGeometry]) -> bool:
        return geometry in self.patterns

    def _check(self, geometry: Type[ElementGeometry]):
        if not self.supports(geometry):
            raise ConfigurationError(f"{self} is not defined on {geometry}.")

    def dof_pattern(self, geometry: Type[ElementGeometry]) -> str:
        self._check(geometry)
        return self.patterns[geometry]

    def polynomial_order(self, geometry: Type[ElementGeometry]) -> int:
        self._check(geometry)
        return self.orders[geometry]

    def basis_expressions(self, geometry: Type[ElementGeometry], nc: int) -> List[List[sp.Expr]]:
        raise NotImplementedError

    def reference_basis(self, geometry: Type[ElementGeometry], nc: int) -> ReferenceBasis:
        self._check(geometry)
        return _reference_basis(self, geometry, nc)

    def trace_element(self) -> Optional["FiniteElement"]:
        """Element whose basis on a face geometry lists the face dofs in
        face-dof order, or None when face items must resolve to cells."""
        return None

    def cell_coefficients(self, space, cell: int) -> Optional[TensorLike]:
        """Per-item coefficients multiplying the reference basis.

        H1 families return an array shaped (nc, ldof); H(div) families a sign
        per local dof. None means no coefficients."""
        return None

    def interpolation_points(self, geometry: Type[ElementGeometry]) -> TensorLike:
        raise ConfigurationError(f"{self} has no nodal interpolation points.")
