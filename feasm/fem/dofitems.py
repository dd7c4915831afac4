
from typing import NamedTuple, Optional, Tuple, Type

import numpy as np

from ..typing import TensorLike
from ..errors import ConfigurationError
from ..mesh.geometry import ElementGeometry, geometry_by_tag
from .operators import FaceOperator, face_coefficients


class DofItem(NamedTuple):
    """Item carrying the dofs used on an assembly item.

    `localface` and `perm` are set when cell dofs are evaluated on a face:
    the local index of the face in the cell, and for each stored face vertex
    its position in the local face of the cell.
    """
    item: int
    geometry: Type[ElementGeometry]
    localface: Optional[int]
    perm: Optional[Tuple[int, ...]]
    coefficient: float


def dofitem_route(space, operator, assembly_type: str) -> str:
    """'face' when the dofs of a face item can be read from the face itself,
    'cell' when they have to come from the adjacent cells."""
    if assembly_type == 'cell':
        if issubclass(operator, FaceOperator):
            raise ConfigurationError(f"{operator} is only defined on face items.")
        return 'cell'
    if issubclass(operator, FaceOperator):
        return 'cell'
    element = space.element
    if element.trace_element() is not None and operator.__name__ in element.trace_operators:
        return 'face'
    return 'cell'


def local_face_permutation(mesh, cell: int, localface: int, face: int) -> Tuple[int, ...]:
    G = geometry_by_tag(mesh.cell_geotag[cell])
    local = mesh.cell[cell][list(G.faces[localface])]
    stored = mesh.face[face]
    perm = tuple(int(np.nonzero(local == v)[0][0]) for v in stored)
    return perm


def face_points_in_cell(geometry: Type[ElementGeometry], localface: int,
                        perm: Tuple[int, ...], xref: TensorLike) -> TensorLike:
    """Map points given on the reference element of a stored face into the
    reference coordinates of a cell that holds it as local face
    `localface`."""
    phi = geometry.face_geometry.shape_function(xref)
    vertices = np.array(geometry.faces[localface])[list(perm)]
    return phi @ geometry.refnodes[vertices]


class DofItemResolver():
    """Resolve assembly items to at most two dof items.

    Parameters:
        space (FESpace): The space of the argument.
        operator (Type[FunctionOperator]): Operator of the argument, possibly
            wrapped in `Jump` or `Average`.
        assembly_type (str): 'cell', 'face' or 'bface'.
    """
    def __init__(self, space, operator, assembly_type: str) -> None:
        self.space = space
        self.mesh = space.mesh
        self.assembly_type = assembly_type
        self.operator, self.coefficients = face_coefficients(operator)
        self.twosided = issubclass(operator, FaceOperator)
        self.route = dofitem_route(space, operator, assembly_type)
        if assembly_type == 'bface':
            self._faces = self.mesh.boundary_face_index()
        else:
            self._faces = None

    def face_index(self, item: int) -> int:
        return int(self._faces[item]) if self._faces is not None else item

    def dof_geometries(self, items: TensorLike):
        """Geometries of the dof items reached from `items`."""
        mesh = self.mesh
        if self.assembly_type == 'cell':
            tags = mesh.cell_geotag[items]
        elif self.route == 'face':
            faces = items if self._faces is None else self._faces[items]
            tags = mesh.face_geotag[faces]
        else:
            faces = items if self._faces is None else self._faces[items]
            f2c = mesh.face_to_cell()[faces]
            cells = f2c[:, :2].ravel() if self.twosided else f2c[:, 0]
            tags = mesh.cell_geotag[cells]
        return [geometry_by_tag(t) for t in np.unique(tags)]

    def cell_geometries(self, items: TensorLike):
        """Cell geometries adjacent to `items`; used for polynomial orders."""
        mesh = self.mesh
        if self.assembly_type == 'cell':
            tags = mesh.cell_geotag[items]
        else:
            faces = items if self._faces is None else self._faces[items]
            tags = mesh.cell_geotag[mesh.face_to_cell()[faces, :2].ravel()]
        return [geometry_by_tag(t) for t in np.unique(tags)]

    def resolve(self, item: int) -> Tuple[DofItem, Optional[DofItem]]:
        mesh = self.mesh
        if self.assembly_type == 'cell':
            G = geometry_by_tag(mesh.cell_geotag[item])
            return DofItem(item, G, None, None, 1.0), None

        face = self.face_index(item)
        if self.route == 'face':
            G = geometry_by_tag(mesh.face_geotag[face])
            return DofItem(face, G, None, None, 1.0), None

        f2c = mesh.face_to_cell()[face]
        left = self._cell_side(f2c[0], f2c[2], face, self.coefficients[0])
        if not self.twosided or f2c[0] == f2c[1]:
            return left, None
        right = self._cell_side(f2c[1], f2c[3], face, self.coefficients[1])
        return left, right

    def _cell_side(self, cell, localface, face, coefficient) -> DofItem:
        G = geometry_by_tag(self.mesh.cell_geotag[cell])
        perm = local_face_permutation(self.mesh, cell, localface, face)
        return DofItem(int(cell), G, int(localface), perm, coefficient)

    def dofs(self, dofitem: DofItem) -> TensorLike:
        if dofitem.localface is None and self.route == 'face':
            return self.space.face_to_dof()[dofitem.item]
        return self.space.cell_to_dof()[dofitem.item]
