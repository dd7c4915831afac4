
from typing import Dict, List, Optional, Tuple

import numpy as np

from .. import logger
from ..typing import TensorLike, Regions
from ..errors import ConfigurationError, DimensionMismatchError
from ..logs import progress
from ..mesh.geometry import geometry_by_tag
from ..quadrature import quadrature_rule
from ..functionspace.fe_vector import FEVectorBlock
from ..functionspace.fe_matrix import FEMatrixBlock
from .operators import face_coefficients
from .dofitems import DofItemResolver, face_points_in_cell
from .evaluator import make_basis_evaluator
from .transformer import L2GTransformer
from .action import Action

_ASSEMBLY_TYPES = ('cell', 'face', 'bface')


class AssemblyPattern():
    """Common prepare phase of item integrators and forms.

    Parameters:
        spaces (Sequence[FESpace] | None): One space per argument; item
            integrators receive them with the functions at evaluation time.
        operators (Sequence[Type[FunctionOperator]]): One operator per argument.
        action (Action, optional): Kernel applied before integration.
        regions (int | Sequence[int], optional): Region tags of the assembly
            items to visit. Defaults to all items.
        assembly_type (str, optional): 'cell', 'face' or 'bface'. Defaults to 'cell'.
        name (str, optional): Name used in messages.
    """
    def __init__(self, spaces, operators, action: Optional[Action]=None, *,
                 regions: Regions=None, assembly_type: str='cell',
                 name: Optional[str]=None) -> None:
        if assembly_type not in _ASSEMBLY_TYPES:
            raise ConfigurationError(f"Unknown assembly type '{assembly_type}', "
                                     f"should be one of {_ASSEMBLY_TYPES}.")
        self.operators = list(operators)
        if spaces is not None:
            spaces = list(spaces)
            if len(spaces) != len(self.operators):
                raise ConfigurationError(f"{len(spaces)} spaces given for "
                                         f"{len(self.operators)} operators.")
        self.spaces = spaces
        self.action = action
        self.assembly_type = assembly_type
        if regions is not None and np.ndim(regions) == 0:
            regions = [regions]
        self.regions = None if regions is None else [int(r) for r in regions]
        self.name = name if name is not None else self.__class__.__name__
        self._prepared_for = None

    def __repr__(self) -> str:
        ops = ', '.join(repr(op) for op in self.operators)
        return (f"{self.name}([{ops}], action={self.action!r}, "
                f"assembly_type='{self.assembly_type}')")

    def argument_length(self, k: int, space=None) -> int:
        space = self.spaces[k] if space is None else space
        op, _ = face_coefficients(self.operators[k])
        return op.length(space.mesh.geo_dimension(), space.ncomponents)

    def prepare(self, spaces=None):
        """Select items, quadrature rules and evaluators for `spaces`.

        Raises:
            ConfigurationError: For unknown regions, spaces on different meshes
                or unsupported element/operator combinations.
        """
        spaces = self.spaces if spaces is None else list(spaces)
        key = tuple(id(s) for s in spaces)
        if self._prepared_for == key:
            return
        mesh = spaces[0].mesh
        for s in spaces[1:]:
            if s.mesh is not mesh:
                raise ConfigurationError(f"All spaces of {self.name} must live on the same mesh.")
        AT = self.assembly_type
        self.mesh = mesh
        self.active_spaces = spaces

        geotag = mesh.entity_geometry_tag(AT)
        self.item_region = mesh.entity_region(AT)
        self.item_measure = mesh.entity_measure(AT)
        self.nitems = geotag.shape[0]
        if self.regions is None:
            items = np.arange(self.nitems)
        else:
            known = set(np.unique(self.item_region).tolist())
            unknown = [r for r in self.regions if r not in known]
            if unknown:
                raise ConfigurationError(f"{self.name}: unknown regions {unknown} for "
                                         f"'{AT}' items, the mesh has regions {sorted(known)}.")
            items = np.nonzero(np.isin(self.item_region, self.regions))[0]

        self.resolvers = [DofItemResolver(s, op, AT) for s, op in zip(spaces, self.operators)]
        self.groups: List[Tuple[type, TensorLike]] = []
        self.quadrature = {}
        self.transformers = {}
        bonus = self.action.bonus_quadorder if self.action is not None else 0
        etype = 'cell' if AT == 'cell' else 'face'
        for tag in np.unique(geotag[items]):
            IG = geometry_by_tag(tag)
            group = items[geotag[items] == tag]
            order = bonus
            for s, op, resolver in zip(spaces, self.operators, self.resolvers):
                order += max(op.polynomial_order(s.element, G)
                             for G in resolver.cell_geometries(group))
            order = max(order, 0)
            self.groups.append((IG, group))
            self.quadrature[IG] = quadrature_rule(IG, order)
            self.transformers[IG] = L2GTransformer(mesh, IG, etype)
            logger.debug(f"{self.name}: {group.shape[0]} '{AT}' items of geometry {IG}, "
                         f"quadrature order {order}, {self.quadrature[IG]}.")

        self._evaluators: Dict[tuple, object] = {}
        self._prepared_for = key
        for IG, group in self.groups:
            self.sides_of_all(group[0], IG)

    def entity_index(self, item: int) -> int:
        if self.assembly_type == 'bface':
            return int(self.mesh.boundary_face_index()[item])
        return item

    def evaluator(self, k: int, IG, dofitem):
        resolver = self.resolvers[k]
        space = self.active_spaces[k]
        key = (id(space), resolver.operator, resolver.route, IG,
               dofitem.geometry, dofitem.localface, dofitem.perm)
        if key not in self._evaluators:
            bcs, _ = self.quadrature[IG].get_quadrature_points_and_weights()
            if dofitem.localface is None:
                xref = bcs
            else:
                xref = face_points_in_cell(dofitem.geometry, dofitem.localface, dofitem.perm, bcs)
            self._evaluators[key] = make_basis_evaluator(
                space, dofitem.geometry, resolver.operator, xref,
                route=resolver.route, localface=dofitem.localface)
        return self._evaluators[key]

    def sides(self, k: int, item: int, IG) -> List[Tuple[TensorLike, TensorLike, float]]:
        """Basis values `(ldof, NQ, length)`, global dofs and coefficient of
        each dof item of argument `k` on `item`. The values are copies."""
        out = []
        for dofitem in self.resolvers[k].resolve(item):
            if dofitem is None:
                continue
            ev = self.evaluator(k, IG, dofitem)
            ev.update(dofitem.item)
            out.append((ev.cvals.copy(), self.resolvers[k].dofs(dofitem), dofitem.coefficient))
        return out

    def sides_of_all(self, item: int, IG):
        return [self.sides(k, item, IG) for k in range(len(self.operators))]

    def function_values(self, k: int, item: int, IG, coefficients: TensorLike) -> TensorLike:
        """Values of argument `k` of the function with global `coefficients`
        on `item`, shaped (NQ, length). Both sides are combined."""
        val = 0.0
        for vals, dofs, coef in self.sides(k, item, IG):
            val = val + coef*np.einsum('i, iqr -> qr', coefficients[dofs], vals)
        return val

    def iterate(self, desc: str):
        """Yield `(item, IG, weights, kwargs)` over the selected items, where
        `kwargs` holds the extra action arguments."""
        needs_x = self.action is not None and self.action.needs('X')
        for IG, group in self.groups:
            bcs, ws = self.quadrature[IG].get_quadrature_points_and_weights()
            T = self.transformers[IG]
            for item in progress(group, total=group.shape[0], desc=f"{desc} ({IG})"):
                item = int(item)
                points = None
                if needs_x or not IG.affine:
                    T.update(self.entity_index(item))
                if needs_x:
                    points = T.ref2phys(bcs)
                if IG.affine:
                    weights = ws*self.item_measure[item]
                else:
                    # det J varies over the item
                    weights = ws*IG.measure*T.piola_factor(bcs)
                kwargs = {'points': points, 'refpoints': bcs, 'item': item,
                          'region': int(self.item_region[item])}
                yield item, IG, weights, kwargs


def coefficient_array(fe, space=None, name: str='coefficient vector') -> TensorLike:
    """Plain coefficient array of an `FEVectorBlock` or array, checked
    against `space`."""
    if isinstance(fe, FEVectorBlock):
        array = fe.array
        space = fe.space if space is None else space
    else:
        array = np.asarray(fe, dtype=np.float64)
    if space is not None and (array.ndim != 1 or array.shape[0] != space.number_of_global_dofs()):
        raise DimensionMismatchError(f"The {name} should have length "
                                     f"{space.number_of_global_dofs()}, but got shape {array.shape}.")
    return array


def vector_destination(b, n: int, resultdim: int=1) -> TensorLike:
    if isinstance(b, FEVectorBlock):
        b = b.array
    if not isinstance(b, np.ndarray):
        raise DimensionMismatchError(f"Vector destination should be an array, got {type(b).__name__}.")
    if resultdim == 1 and b.shape == (n, ):
        return b
    if b.shape != (n, resultdim):
        expect = (n, ) if resultdim == 1 else (n, resultdim)
        raise DimensionMismatchError(f"Vector destination should have shape {expect}, "
                                     f"but got {b.shape}.")
    return b


def check_matrix_destination(A, shape: Tuple[int, int]):
    got = A.shape if hasattr(A, 'shape') else None
    if got is None or tuple(got) != tuple(shape):
        raise DimensionMismatchError(f"Matrix destination should have shape {shape}, "
                                     f"but got {got}.")


def scatter_matrix(A, rows: TensorLike, cols: TensorLike, values: TensorLike):
    if isinstance(A, FEMatrixBlock):
        A.add(rows, cols, values)
    else:
        np.add.at(A, (rows[:, None], cols[None, :]), values)
