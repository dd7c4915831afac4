"""
Basis evaluators.

A basis evaluator holds the values of one operator applied to the basis
functions of one space at the quadrature points of one reference geometry.
The reference data is computed once at construction; `update(item)`
transforms it to a mesh item. Values are laid out as `(ldof, NQ, resultdim)`.

Implementations are registered per (conformity, operator, route), where the
route is 'cell' when the dofs are taken from a cell and 'face' when they are
taken from a face.
"""
from typing import Dict, Optional, Tuple, Type

import numpy as np

from .. import logger
from ..typing import TensorLike
from ..errors import ConfigurationError
from ..mesh.geometry import ElementGeometry, Edge
from ..functionspace.hdiv_moment_fe import shifted_legendre
from .transformer import L2GTransformer
from .operators import (
    FunctionOperator, Identity, NormalFlux, TangentFlux, Trace, Deviator,
    Gradient, SymmetricGradient, TangentialGradient, Divergence, Curl,
    Rotation, Laplacian, Hessian, ReconstructionIdentity,
    ReconstructionDivergence
)

_REGISTRY: Dict[Tuple[str, type, str], type] = {}

_VOIGT = {1: [], 2: [(0, 1)], 3: [(0, 1), (0, 2), (1, 2)]}


def register_evaluator(conformity: str, *operators, route: str='cell'):
    def decorator(cls):
        for op in operators:
            _REGISTRY[(conformity, op, route)] = cls
        return cls
    return decorator


def find_evaluator(element, operator, route: str='cell') -> type:
    for klass in operator.__mro__:
        key = (element.conformity, klass, route)
        if key in _REGISTRY:
            return _REGISTRY[key]
    raise ConfigurationError(
        f"No basis evaluator for operator {operator} on {element} "
        f"({element.conformity}, route '{route}').")


def make_basis_evaluator(space, geometry: Type[ElementGeometry], operator: Type[FunctionOperator],
                         xref: TensorLike, *, route: str='cell', localface: Optional[int]=None):
    """Create the registered evaluator for `operator` applied to the basis of
    `space` on `geometry` at the reference points `xref`.

    Parameters:
        space (FESpace): The space.
        geometry (Type[ElementGeometry]): Geometry of the dof item.
        operator (Type[FunctionOperator]): The operator.
        xref (TensorLike): Reference points of the dof item, shaped (NQ, TD).
        route (str, optional): 'cell' or 'face'. Defaults to 'cell'.
        localface (int, optional): Local index of the face the points lie on,
            when cell dofs are evaluated on a face.

    Raises:
        ConfigurationError: When no evaluator is registered for the
            combination, or it does not support it.
    """
    cls = find_evaluator(space.element, operator, route)
    evaluator = cls(space, geometry, operator, xref, route=route, localface=localface)
    logger.debug(f"{cls.__name__} for {operator} of {space.element} on {geometry} "
                 f"(route '{route}', localface {localface}, NQ={xref.shape[0]}).")
    return evaluator


class BasisEvaluator():
    def __init__(self, space, geometry, operator, xref, *, route='cell', localface=None) -> None:
        self.space = space
        self.element = space.element
        self.mesh = space.mesh
        self.geometry = geometry
        self.operator = operator
        self.xref = np.asarray(xref, dtype=np.float64)
        self.route = route
        self.localface = localface
        self.GD = self.mesh.geo_dimension()
        self.nc = space.ncomponents
        self.NQ = self.xref.shape[0]
        self.resultdim = operator.length(self.GD, self.nc)
        self.citem = -1
        self.L2G = L2GTransformer(self.mesh, geometry, 'cell' if route == 'cell' else 'face')
        self.prepare()
        self.cvals = np.zeros((self.ldof, self.NQ, self.resultdim), dtype=np.float64)

    def __repr__(self) -> str:
        return (f"{self.__class__.__name__}({self.operator}, {self.element}, "
                f"{self.geometry}, item={self.citem})")

    def prepare(self):
        """Compute the reference data and set `ldof`."""
        raise NotImplementedError

    def compute(self, item: int):
        """Fill `cvals` for `item`; the transformer is already updated."""
        raise NotImplementedError

    def update(self, item: int):
        if item == self.citem:
            return
        self.L2G.update(item)
        self.compute(item)
        self.citem = item

    def value_at(self, dof: int, qp: int) -> TensorLike:
        return self.cvals[dof, qp]

    def evaluate(self, coefficients: TensorLike) -> TensorLike:
        """Values of the function with local `coefficients`, shaped
        (NQ, resultdim)."""
        return np.einsum('i, iqr -> qr', coefficients, self.cvals)

    def clone(self) -> "BasisEvaluator":
        """An independent evaluator with the same reference data."""
        return self.__class__(self.space, self.geometry, self.operator, self.xref,
                              route=self.route, localface=self.localface)

    def normal(self, item: int) -> TensorLike:
        """Unit normal of the face the points lie on, in the global face
        orientation."""
        if self.route == 'face':
            return self.mesh.face_unit_normal(item)
        if self.localface is None:
            raise ConfigurationError(f"{self.operator} needs a face, but the points "
                                     f"lie inside cells.")
        face = self.mesh.cell_to_face()[item][self.localface]
        return self.mesh.face_unit_normal(face)

    def _require_face(self):
        if self.route != 'face' and self.localface is None:
            raise ConfigurationError(f"{self.operator} is only defined on faces.")

    def _require_components(self, ok: bool, what: str):
        if not ok:
            raise ConfigurationError(f"{self.operator} needs {what}, but {self.element} "
                                     f"has {self.nc} components in dimension {self.GD}.")


def _value_operator(evaluator: BasisEvaluator, vals: TensorLike, item: int) -> TensorLike:
    """Apply a zero-order operator to values shaped (ldof, NQ, nc)."""
    op = evaluator.operator
    GD = evaluator.GD
    if issubclass(op, NormalFlux):
        n = evaluator.normal(item)
        nb = vals.shape[-1]//GD
        return np.einsum('iqbd, d -> iqb', vals.reshape(vals.shape[:2] + (nb, GD)), n)
    elif issubclass(op, TangentFlux):
        n = evaluator.normal(item)
        if GD == 2:
            t = np.array([-n[1], n[0]])
            return np.einsum('iqd, d -> iq', vals, t)[..., None]
        return np.cross(n[None, None, :], vals)
    elif issubclass(op, Trace):
        M = vals.reshape(vals.shape[:2] + (GD, GD))
        return np.trace(M, axis1=-2, axis2=-1)[..., None]
    elif issubclass(op, Deviator):
        M = vals.reshape(vals.shape[:2] + (GD, GD))
        tr = np.trace(M, axis1=-2, axis2=-1)
        M = M - tr[..., None, None]*np.eye(GD)/GD
        return M.reshape(vals.shape)
    return vals


def _check_value_operator(evaluator: BasisEvaluator):
    op = evaluator.operator
    nc, GD = evaluator.nc, evaluator.GD
    if issubclass(op, NormalFlux):
        evaluator._require_face()
        evaluator._require_components(nc % GD == 0, f"a multiple of {GD} components")
    elif issubclass(op, TangentFlux):
        evaluator._require_face()
        evaluator._require_components(nc == GD and GD in (2, 3), "a 2D or 3D vector")
    elif issubclass(op, (Trace, Deviator)):
        evaluator._require_components(nc == GD*GD, f"{GD*GD} components")


### H1 evaluators

@register_evaluator('H1', Identity, NormalFlux, TangentFlux, Trace, Deviator)
class H1ValueEvaluator(BasisEvaluator):
    def prepare(self):
        _check_value_operator(self)
        basis = self.element.reference_basis(self.geometry, self.nc)
        self.ldof = basis.ldof
        self.refvals = np.ascontiguousarray(basis.values(self.xref).transpose(1, 0, 2))

    def compute(self, item):
        vals = self.refvals
        coef = self.element.cell_coefficients(self.space, item)
        if coef is not None:
            vals = vals*coef.T[:, None, :]
        self.cvals[:] = _value_operator(self, vals, item)


@register_evaluator('H1', Gradient, SymmetricGradient, TangentialGradient,
                    Divergence, Curl, Rotation)
class H1GradientEvaluator(BasisEvaluator):
    """First-derivative operators through the chain rule
    grad(phi) = J^{-T} grad_ref(phi)."""
    def prepare(self):
        op, nc, GD = self.operator, self.nc, self.GD
        if issubclass(op, (SymmetricGradient, Divergence)):
            self._require_components(nc % GD == 0, f"a multiple of {GD} components")
        elif issubclass(op, TangentialGradient):
            self._require_face()
            self._require_components(nc == 1 and GD == 2, "a scalar in 2D")
        elif issubclass(op, Curl):
            self._require_components((GD == 2) or (GD == 3 and nc == 3),
                                     "a 2D function or a 3D vector")
        elif issubclass(op, Rotation):
            self._require_components(GD == 2 and nc == 2, "a 2D vector")
        basis = self.element.reference_basis(self.geometry, self.nc)
        self.ldof = basis.ldof
        self.refgrads = np.ascontiguousarray(basis.gradients(self.xref).transpose(1, 0, 2, 3))

    def compute(self, item):
        G = self.L2G.jacobian_inverse_transpose(self.xref)
        grads = np.einsum('iqct, qgt -> iqcg', self.refgrads, G)
        coef = self.element.cell_coefficients(self.space, item)
        if coef is not None:
            grads = grads*coef.T[:, None, :, None]

        op, GD = self.operator, self.GD
        ldof, NQ = grads.shape[:2]
        if issubclass(op, Gradient):
            self.cvals[:] = grads.reshape(ldof, NQ, -1)
        elif issubclass(op, SymmetricGradient):
            nb = self.nc//GD
            blocks = []
            for b in range(nb):
                D = grads[:, :, b*GD:(b+1)*GD, :]
                blocks.extend(D[..., k, k] for k in range(GD))
                blocks.extend(D[..., i, j] + D[..., j, i] for i, j in _VOIGT[GD])
            self.cvals[:] = np.stack(blocks, axis=-1)
        elif issubclass(op, Divergence):
            nb = self.nc//GD
            D = grads.reshape(ldof, NQ, nb, GD, GD)
            self.cvals[:] = np.trace(D, axis1=-2, axis2=-1)
        elif issubclass(op, TangentialGradient):
            n = self.normal(item)
            t = np.array([-n[1], n[0]])
            self.cvals[:] = np.einsum('iqg, g -> iq', grads[:, :, 0, :], t)[..., None]
        elif issubclass(op, Curl):
            if GD == 2:
                self.cvals[:] = np.stack([grads[..., 1], -grads[..., 0]], axis=-1).reshape(ldof, NQ, -1)
            else:
                D = grads
                self.cvals[:] = np.stack([
                    D[..., 2, 1] - D[..., 1, 2],
                    D[..., 0, 2] - D[..., 2, 0],
                    D[..., 1, 0] - D[..., 0, 1]], axis=-1)
        elif issubclass(op, Rotation):
            self.cvals[:] = (grads[..., 1, 0] - grads[..., 0, 1])[..., None]


@register_evaluator('H1', Hessian, Laplacian)
class H1HessianEvaluator(BasisEvaluator):
    """Second derivatives on affine items, H = G H_ref G^T."""
    def prepare(self):
        if not self.geometry.affine:
            raise ConfigurationError(f"{self.operator} is only available on affine "
                                     f"geometries, not on {self.geometry}.")
        basis = self.element.reference_basis(self.geometry, self.nc)
        self.ldof = basis.ldof
        self.refhess = np.ascontiguousarray(basis.hessians(self.xref).transpose(1, 0, 2, 3, 4))

    def compute(self, item):
        G = self.L2G.jacobian_inverse_transpose(self.xref[:1])[0]
        H = np.einsum('gs, iqcst, ht -> iqcgh', G, self.refhess, G)
        coef = self.element.cell_coefficients(self.space, item)
        if coef is not None:
            H = H*coef.T[:, None, :, None, None]
        ldof, NQ = H.shape[:2]
        if issubclass(self.operator, Laplacian):
            self.cvals[:] = np.trace(H, axis1=-2, axis2=-1)
        else:
            self.cvals[:] = H.reshape(ldof, NQ, -1)


@register_evaluator('H1', Identity, route='face')
class H1TraceEvaluator(BasisEvaluator):
    """Values of the face dofs on a face, through the trace element of the
    space. The dofs are ordered as the face-to-dof map."""
    def prepare(self):
        trace = self.element.trace_element()
        if trace is None:
            raise ConfigurationError(f"{self.element} has no trace element.")
        basis = trace.reference_basis(self.geometry, self.nc)
        self.ldof = basis.ldof
        self.refvals = np.ascontiguousarray(basis.values(self.xref).transpose(1, 0, 2))

    def compute(self, item):
        self.cvals[:] = self.refvals


### H(div) evaluators

class _HdivEvaluator(BasisEvaluator):
    def prepare(self):
        basis = self.element.reference_basis(self.geometry, self.GD)
        self.ldof = basis.ldof
        self.basis = basis

    def signs(self, item: int) -> TensorLike:
        return self.element.cell_coefficients(self.space, item)


@register_evaluator('Hdiv', Identity, NormalFlux)
class HdivValueEvaluator(_HdivEvaluator):
    """Contravariant Piola transform J psi_ref / det(J)."""
    def prepare(self):
        super().prepare()
        if issubclass(self.operator, NormalFlux):
            self._require_face()
        self.refvals = self.basis.values(self.xref)

    def compute(self, item):
        J = self.L2G.jacobian(self.xref)
        det = np.linalg.det(J)
        vals = np.einsum('qgt, qit -> iqg', J, self.refvals)/det[None, :, None]
        vals *= self.signs(item)[:, None, None]
        if issubclass(self.operator, NormalFlux):
            vals = np.einsum('iqg, g -> iq', vals, self.normal(item))[..., None]
        self.cvals[:] = vals


@register_evaluator('Hdiv', Divergence)
class HdivDivergenceEvaluator(_HdivEvaluator):
    def prepare(self):
        super().prepare()
        grads = self.basis.gradients(self.xref)
        self.refdiv = np.trace(grads, axis1=-2, axis2=-1).T

    def compute(self, item):
        det = self.L2G.piola_factor(self.xref)
        div = self.refdiv/det[None, :]*self.signs(item)[:, None]
        self.cvals[:] = div[..., None]


@register_evaluator('Hdiv', Gradient)
class HdivGradientEvaluator(_HdivEvaluator):
    """Gradient of the Piola-transformed basis on affine items."""
    def prepare(self):
        if not self.geometry.affine:
            raise ConfigurationError(f"The gradient of {self.element} is only available "
                                     f"on affine geometries, not on {self.geometry}.")
        super().prepare()
        self.refgrads = self.basis.gradients(self.xref)

    def compute(self, item):
        J = self.L2G.jacobian(self.xref[:1])[0]
        G = self.L2G.jacobian_inverse_transpose(self.xref[:1])[0]
        det = np.linalg.det(J)
        grads = np.einsum('ga, qiab, hb -> iqgh', J, self.refgrads, G)/det
        grads *= self.signs(item)[:, None, None, None]
        ldof, NQ = grads.shape[:2]
        self.cvals[:] = grads.reshape(ldof, NQ, -1)


@register_evaluator('Hdiv', NormalFlux, route='face')
class HdivTraceEvaluator(BasisEvaluator):
    """Normal flux of the face dofs along the global face normal. The dof of
    moment m is (2m + 1) P_m(t)/|F| in the stored face orientation; 1/|F|
    for a single flux dof."""
    def prepare(self):
        k = self.element.face_degree
        if k > 0 and self.geometry is not Edge:
            raise ConfigurationError(f"Face moments of {self.element} are only "
                                     f"available on edges, not on {self.geometry}.")
        t = self.xref[:, 0] if k > 0 else np.zeros(self.NQ)
        self.ldof = k + 1
        self.reftrace = np.stack([(2*m + 1)*shifted_legendre(m, t)*np.ones(self.NQ)
                                  for m in range(k + 1)], axis=0)

    def compute(self, item):
        self.cvals[:] = self.reftrace[..., None]/self.mesh.entity_measure('face', item)


### Reconstruction

@register_evaluator('H1', ReconstructionIdentity, ReconstructionDivergence)
class ReconstructionEvaluator(BasisEvaluator):
    """Operator applied to the reconstruction of the basis into another
    element family: the target basis contracted with the per-cell
    reconstruction coefficients."""
    def prepare(self):
        op = self.operator
        if op.target is None:
            raise ConfigurationError(f"{op.__name__} needs a target element.")
        self.target = op.target
        self.rspace = self.space.reconstruction_space(self.target)
        self.inner = make_basis_evaluator(self.rspace, self.geometry, op.applied, self.xref,
                                          route='cell', localface=self.localface)
        self.ldof = self.element.reference_basis(self.geometry, self.nc).ldof

    def compute(self, item):
        self.inner.update(item)
        C = self.space.reconstruction_coefficients(self.target)[item]
        self.cvals[:] = np.einsum('ij, jqr -> iqr', C, self.inner.cvals)
