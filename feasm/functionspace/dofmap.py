
import re
from typing import Dict, List, Tuple, Type

import numpy as np

from .. import logger
from ..typing import TensorLike
from ..errors import ConfigurationError
from ..mesh.adjacency import VariableAdjacency
from ..mesh.geometry import geometry_by_tag, ElementGeometry

_PATTERN = re.compile(r'([NEFInefi])(\d+)')
_ORDER = 'NEFI'


def parse_dof_pattern(pattern: str) -> List[Tuple[str, int]]:
    """Split a pattern like "N1F1I1" into `[('N', 1), ('F', 1), ('I', 1)]`.

    Letters refer to nodes, edges, faces and the interior. Uppercase entries
    repeat for every component; lowercase entries appear once.
    """
    entries = _PATTERN.findall(pattern)
    if ''.join(l + n for l, n in entries) != pattern or len(entries) == 0:
        raise ConfigurationError(f"Invalid dof pattern '{pattern}'.")
    return [(l, int(n)) for l, n in entries]


class DofMap():
    """Global numbering of the dofs of a finite element space.

    The numbering is component-blocked for uppercase pattern entries: all
    dofs of the first component come first, each block ordered as nodes,
    edges, faces and cell interiors. Lowercase entries follow once, in the
    same entity order.
    """
    def __init__(self, mesh, element, nc: int) -> None:
        self.mesh = mesh
        self.element = element
        self.nc = nc
        self.patterns: Dict[int, List[Tuple[str, int]]] = {}
        for tag in np.unique(mesh.cell_geotag):
            G = geometry_by_tag(tag)
            self.patterns[int(tag)] = parse_dof_pattern(element.dof_pattern(G))
        self._layout()
        self._cell2dof = self._build_cell_to_dof()
        self._face2dof = None
        logger.debug(f"DofMap for {element}: {self.gdof} global dofs, "
                     f"patterns {[element.dof_pattern(geometry_by_tag(t)) for t in self.patterns]}")

    def _layout(self):
        mesh = self.mesh
        counts = {L: 0 for L in 'NEFnef'}
        for entries in self.patterns.values():
            letters = [l for l, _ in entries]
            if len(set(letters)) != len(letters):
                raise ConfigurationError(f"Repeated entity letter in dof pattern of {self.element}.")
            for l, n in entries:
                if l in 'NEFnef':
                    if counts[l] not in (0, n):
                        raise ConfigurationError(
                            f"{self.element} attaches different numbers of dofs to "
                            f"shared '{l}' entities on different geometries.")
                    counts[l] = n
        self.counts = counts
        # interior dofs may differ between geometries
        NC = mesh.number_of_cells()
        interior = {'I': np.zeros(NC, dtype=np.int64), 'i': np.zeros(NC, dtype=np.int64)}
        for tag, entries in self.patterns.items():
            idx = mesh.cell_geotag == tag
            for l, n in entries:
                if l in 'Ii':
                    interior[l][idx] = n
        self.interior_offsets = {}
        for l in 'Ii':
            offsets = np.zeros(NC + 1, dtype=np.int64)
            np.cumsum(interior[l], out=offsets[1:])
            self.interior_offsets[l] = offsets

        sizes = {
            'N': mesh.number_of_nodes(), 'E': mesh.number_of_edges(),
            'F': mesh.number_of_faces()}
        self.base: Dict[str, int] = {}
        start = 0
        for L in _ORDER:
            self.base[L] = start
            if L == 'I':
                start += int(self.interior_offsets[L][-1])
            else:
                start += sizes[L]*counts[L]
        self.component_stride = start
        start *= self.nc
        for L in _ORDER:
            l = L.lower()
            self.base[l] = start
            if L == 'I':
                start += int(self.interior_offsets[l][-1])
            else:
                start += sizes[L]*counts[l]
        self.gdof = int(start)

    def number_of_global_dofs(self) -> int:
        return self.gdof

    def _entity_dofs(self, l: str, n: int, entities: TensorLike, c: int=0) -> TensorLike:
        stride = self.component_stride if l.isupper() else 0
        base = self.base[l] + c*stride
        return (base + entities[:, None]*n + np.arange(n)[None, :]).reshape(-1)

    def _cell_entities(self, l: str, cell: int) -> TensorLike:
        mesh = self.mesh
        L = l.upper()
        if L == 'N':
            return mesh.cell[cell]
        elif L == 'E':
            return mesh.cell_to_edge()[cell]
        elif L == 'F':
            return mesh.cell_to_face()[cell]
        raise ValueError(l)

    def _build_cell_to_dof(self) -> VariableAdjacency:
        mesh = self.mesh
        lists = []
        for cell in range(mesh.number_of_cells()):
            entries = self.patterns[int(mesh.cell_geotag[cell])]
            dofs = []
            for upper in (True, False):
                ncomp = self.nc if upper else 1
                sel = [(l, n) for l, n in entries if l.isupper() == upper]
                for c in range(ncomp):
                    for l, n in sel:
                        if l in 'Ii':
                            start = self.interior_offsets[l][cell]
                            stride = self.component_stride if upper else 0
                            dofs.append(self.base[l] + c*stride + start + np.arange(n))
                        else:
                            dofs.append(self._entity_dofs(l, n, self._cell_entities(l, cell), c))
            lists.append(np.concatenate(dofs))
        return VariableAdjacency.from_lists(lists)

    def _build_face_to_dof(self) -> VariableAdjacency:
        mesh = self.mesh
        f2c = mesh.face_to_cell()
        lists = []
        for face in range(mesh.number_of_faces()):
            entries = self.patterns[int(mesh.cell_geotag[f2c[face, 0]])]
            dofs = []
            for upper in (True, False):
                ncomp = self.nc if upper else 1
                sel = [(l, n) for l, n in entries if l.isupper() == upper and l not in 'Ii']
                for c in range(ncomp):
                    for l, n in sel:
                        L = l.upper()
                        if L == 'N':
                            ent = mesh.face[face]
                        elif L == 'E':
                            ent = mesh.face_to_edge()[face]
                        else:
                            ent = np.array([face])
                        dofs.append(self._entity_dofs(l, n, ent, c))
            lists.append(np.concatenate(dofs) if dofs else np.zeros(0, dtype=np.int64))
        return VariableAdjacency.from_lists(lists)

    def cell_to_dof(self) -> VariableAdjacency:
        return self._cell2dof

    def face_to_dof(self) -> VariableAdjacency:
        if self._face2dof is None:
            self._face2dof = self._build_face_to_dof()
        return self._face2dof

    def bdface_to_dof(self) -> VariableAdjacency:
        f2d = self.face_to_dof()
        lists = [f2d[f] for f in self.mesh.boundary_face_index()]
        return VariableAdjacency.from_lists(lists)

    def dofs_for_item(self, assembly_type: str, item: int) -> TensorLike:
        if assembly_type == 'cell':
            return self._cell2dof[item]
        elif assembly_type == 'face':
            return self.face_to_dof()[item]
        elif assembly_type == 'bface':
            return self.face_to_dof()[self.mesh.boundary_face_index()[item]]
        raise ConfigurationError(f"Unknown assembly type '{assembly_type}'.")

    def number_of_local_dofs(self, geometry: Type[ElementGeometry]) -> int:
        n = 0
        counts = {'N': geometry.number_of_vertices(), 'E': geometry.number_of_edges(),
                  'F': geometry.number_of_faces(), 'I': 1}
        if geometry.TD == 2:
            counts['E'] = geometry.number_of_faces()
        for l, k in parse_dof_pattern(self.element.dof_pattern(geometry)):
            n += counts[l.upper()]*k*(self.nc if l.isupper() else 1)
        return n
