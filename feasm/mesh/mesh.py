
from typing import Callable, List, Optional, Sequence, Union

import numpy as np

from .. import logger
from ..typing import TensorLike, EntityName, Index, _S
from .adjacency import VariableAdjacency
from .geometry import (
    Point, Edge, Triangle, Quadrilateral, Tetrahedron, Hexahedron,
    geometry_by_tag, geometry_from_vertices
)

_RegionLike = Union[TensorLike, Sequence[int], Callable[[TensorLike], TensorLike], None]


def _pad(arrays: List[TensorLike]) -> TensorLike:
    width = max(a.shape[1] for a in arrays)
    out = []
    for a in arrays:
        if a.shape[1] < width:
            fill = -np.ones((a.shape[0], width - a.shape[1]), dtype=np.int64)
            a = np.concatenate([a, fill], axis=1)
        out.append(a)
    return np.concatenate(out, axis=0)


def _strip(rows: TensorLike) -> VariableAdjacency:
    mask = rows >= 0
    lengths = mask.sum(axis=1)
    offsets = np.zeros(rows.shape[0] + 1, dtype=np.int64)
    np.cumsum(lengths, out=offsets[1:])
    return VariableAdjacency(rows[mask], offsets)


def _unique_rows(rows: TensorLike):
    key = np.sort(rows, axis=1)
    _, first, inv = np.unique(key, axis=0, return_index=True, return_inverse=True)
    return first, inv.reshape(-1)


class Mesh():
    """Unstructured mesh with possibly mixed cell geometries.

    Parameters:
        node (TensorLike): Node coordinates shaped (NN, GD).
        cell (TensorLike | Sequence[Sequence[int]]): Cell-to-node connectivity,
            either a rectangular array or one node list per cell.
        cell_region (TensorLike, optional): Region tag of each cell, defaults to 1.
        bdface_region (TensorLike | Callable, optional): Region tag of each
            boundary face in boundary-face order, or a function of the boundary
            face barycenters returning them. Defaults to 1.
    """
    def __init__(self, node, cell, *, cell_region: _RegionLike=None,
                 bdface_region: _RegionLike=None) -> None:
        node = np.asarray(node, dtype=np.float64)
        if node.ndim == 1:
            node = node[:, None]
        self.node = node
        self.GD = node.shape[1]
        self.TD = self.GD
        self.cell = VariableAdjacency.from_data(cell)

        nv = self.cell.number_of_targets()
        self.cell_geotag = np.zeros(len(self.cell), dtype=np.int64)
        for n in np.unique(nv):
            self.cell_geotag[nv == n] = geometry_from_vertices(int(n), self.TD).tag

        self.construct()

        NC = self.number_of_cells()
        if cell_region is None:
            self.cell_region = np.ones(NC, dtype=np.int64)
        else:
            self.cell_region = np.asarray(cell_region, dtype=np.int64)
            if self.cell_region.shape != (NC, ):
                raise ValueError(f"cell_region should have shape ({NC},), "
                                 f"but got {self.cell_region.shape}.")
        self.set_bdface_region(bdface_region)
        logger.debug(f"Mesh constructed: NN={self.number_of_nodes()}, "
                     f"NC={NC}, NF={self.number_of_faces()}, "
                     f"geometries={[geometry_by_tag(t) for t in np.unique(self.cell_geotag)]}")

    def construct(self):
        """Enumerate faces and (in 3D) edges, and build the cell-to-face,
        cell-to-edge, face-to-cell and face-to-edge relations."""
        NC = len(self.cell)
        nfaces = np.zeros(NC, dtype=np.int64)
        nodes, cells, local, geo = [], [], [], []
        for tag in np.unique(self.cell_geotag):
            G = geometry_by_tag(tag)
            cidx = np.nonzero(self.cell_geotag == tag)[0]
            nfaces[cidx] = G.number_of_faces()
            c2n = self.cell.dense(cidx)
            for lf, fv in enumerate(G.faces):
                nodes.append(c2n[:, list(fv)])
                cells.append(cidx)
                local.append(np.full(cidx.shape[0], lf, dtype=np.int64))
                geo.append(np.full(cidx.shape[0], G.face_geometry.tag, dtype=np.int64))
        nodes = _pad(nodes)
        cells = np.concatenate(cells)
        local = np.concatenate(local)
        geo = np.concatenate(geo)

        first, inv = _unique_rows(nodes)
        count = np.bincount(inv)
        if np.any(count > 2):
            raise ValueError("Non-manifold mesh: some faces are shared by more than two cells.")
        self.face = _strip(nodes[first])
        self.face_geotag = geo[first]
        NF = first.shape[0]

        face2cell = np.zeros((NF, 4), dtype=np.int64)
        face2cell[:, 0] = cells[first]
        face2cell[:, 1] = cells[first]
        face2cell[:, 2] = local[first]
        face2cell[:, 3] = local[first]
        isright = np.arange(inv.shape[0]) != first[inv]
        face2cell[inv[isright], 1] = cells[isright]
        face2cell[inv[isright], 3] = local[isright]
        self.face2cell = face2cell

        offsets = np.zeros(NC + 1, dtype=np.int64)
        np.cumsum(nfaces, out=offsets[1:])
        flat = np.zeros(offsets[-1], dtype=np.int64)
        flat[offsets[cells] + local] = inv
        self.cell2face = VariableAdjacency(flat, offsets)

        if self.TD == 3:
            self._construct_edges()
        elif self.TD == 2:
            self.edge = self.face
            self.cell2edge = self.cell2face
            self.face2edge = VariableAdjacency.from_array(np.arange(NF)[:, None])
        else:
            self.edge = VariableAdjacency.from_lists([])
            self.cell2edge = VariableAdjacency.from_lists([[] for _ in range(NC)])
            self.face2edge = VariableAdjacency.from_lists([[] for _ in range(NF)])

    def _construct_edges(self):
        NC = len(self.cell)
        nedges = np.zeros(NC, dtype=np.int64)
        nodes, cells, local = [], [], []
        for tag in np.unique(self.cell_geotag):
            G = geometry_by_tag(tag)
            cidx = np.nonzero(self.cell_geotag == tag)[0]
            nedges[cidx] = G.number_of_edges()
            c2n = self.cell.dense(cidx)
            for le, ev in enumerate(G.edges):
                nodes.append(c2n[:, list(ev)])
                cells.append(cidx)
                local.append(np.full(cidx.shape[0], le, dtype=np.int64))
        nodes = np.concatenate(nodes)
        cells = np.concatenate(cells)
        local = np.concatenate(local)
        first, inv = _unique_rows(nodes)
        edge = nodes[first]
        self.edge = VariableAdjacency.from_array(edge)

        offsets = np.zeros(NC + 1, dtype=np.int64)
        np.cumsum(nedges, out=offsets[1:])
        flat = np.zeros(offsets[-1], dtype=np.int64)
        flat[offsets[cells] + local] = inv
        self.cell2edge = VariableAdjacency(flat, offsets)

        # face edges follow the local edge order of the face geometry
        NN = self.number_of_nodes()
        key = np.sort(edge, axis=1)
        key = key[:, 0]*NN + key[:, 1]
        order = np.argsort(key)
        lists = []
        for f in range(len(self.face)):
            fn = self.face[f]
            FG = geometry_by_tag(self.face_geotag[f])
            pairs = np.sort(fn[np.array(FG.faces)], axis=1)
            k = pairs[:, 0]*NN + pairs[:, 1]
            lists.append(order[np.searchsorted(key, k, sorter=order)])
        self.face2edge = VariableAdjacency.from_lists(lists)

    def set_bdface_region(self, bdface_region: _RegionLike=None):
        isbd = self.face2cell[:, 0] == self.face2cell[:, 1]
        self._bdface_index = np.nonzero(isbd)[0]
        NBF = self._bdface_index.shape[0]
        if bdface_region is None:
            region = np.ones(NBF, dtype=np.int64)
        elif callable(bdface_region):
            bc = self.entity_barycenter('face', index=self._bdface_index)
            region = np.asarray(bdface_region(bc), dtype=np.int64)
        else:
            region = np.asarray(bdface_region, dtype=np.int64)
        if region.shape != (NBF, ):
            raise ValueError(f"bdface_region should have shape ({NBF},), "
                             f"but got {region.shape}.")
        self.bdface_region = region
        self.face_region = np.zeros(self.number_of_faces(), dtype=np.int64)
        self.face_region[self._bdface_index] = region

    ## Counters and accessors
    def geo_dimension(self) -> int:
        return self.GD

    def top_dimension(self) -> int:
        return self.TD

    def number_of_nodes(self) -> int:
        return self.node.shape[0]

    def number_of_cells(self) -> int:
        return len(self.cell)

    def number_of_faces(self) -> int:
        return len(self.face)

    def number_of_edges(self) -> int:
        return len(self.edge)

    def number_of_boundary_faces(self) -> int:
        return self._bdface_index.shape[0]

    def count(self, etype: str) -> int:
        if etype == 'node':
            return self.number_of_nodes()
        elif etype == 'cell':
            return self.number_of_cells()
        elif etype == 'face':
            return self.number_of_faces()
        elif etype == 'edge':
            return self.number_of_edges()
        elif etype in ('bdface', 'bface'):
            return self.number_of_boundary_faces()
        raise ValueError(f"Invalid entity type '{etype}'.")

    def entity(self, etype: str) -> VariableAdjacency:
        if etype == 'node':
            NN = self.number_of_nodes()
            return VariableAdjacency.from_array(np.arange(NN)[:, None])
        elif etype == 'cell':
            return self.cell
        elif etype == 'face':
            return self.face
        elif etype == 'edge':
            return self.edge
        raise ValueError(f"Invalid entity type '{etype}'.")

    def entity_geometry_tag(self, etype: str) -> TensorLike:
        if etype == 'cell':
            return self.cell_geotag
        elif etype == 'face':
            return self.face_geotag
        elif etype in ('bdface', 'bface'):
            return self.face_geotag[self._bdface_index]
        raise ValueError(f"Invalid entity type '{etype}'.")

    def entity_region(self, etype: str) -> TensorLike:
        if etype == 'cell':
            return self.cell_region
        elif etype == 'face':
            return self.face_region
        elif etype in ('bdface', 'bface'):
            return self.bdface_region
        raise ValueError(f"Invalid entity type '{etype}'.")

    def entity_barycenter(self, etype: str, index: Index=_S) -> TensorLike:
        if etype == 'node':
            return self.node[index]
        entity = self.entity(etype)
        lengths = entity.number_of_targets()
        s = np.add.reduceat(self.node[entity.flat], entity.offsets[:-1], axis=0)
        return (s / lengths[:, None])[index]

    def entity_measure(self, etype: str, index: Index=_S) -> TensorLike:
        if etype == 'node':
            return np.ones(self.number_of_nodes(), dtype=np.float64)[index]
        if etype == 'cell':
            if not hasattr(self, '_cell_measure'):
                self._cell_measure = self._measure(self.cell, self.cell_geotag)
            return self._cell_measure[index]
        if etype == 'face':
            if not hasattr(self, '_face_measure'):
                self._face_measure = self._measure(self.face, self.face_geotag)
            return self._face_measure[index]
        if etype in ('bdface', 'bface'):
            return self.entity_measure('face', self._bdface_index)[index]
        if etype == 'edge':
            return self._measure(self.edge, np.full(len(self.edge), Edge.tag))[index]
        raise ValueError(f"Invalid entity type '{etype}'.")

    def _measure(self, entity: VariableAdjacency, geotag: TensorLike) -> TensorLike:
        out = np.zeros(len(entity), dtype=np.float64)
        for tag in np.unique(geotag):
            G = geometry_by_tag(tag)
            idx = np.nonzero(geotag == tag)[0]
            X = self.node[entity.dense(idx)]
            if G is Point:
                out[idx] = 1.0
            elif G is Edge:
                out[idx] = np.linalg.norm(X[:, 1] - X[:, 0], axis=-1)
            elif G is Triangle and self.GD == 2:
                a = X[:, 1] - X[:, 0]
                b = X[:, 2] - X[:, 0]
                out[idx] = 0.5*np.abs(a[:, 0]*b[:, 1] - a[:, 1]*b[:, 0])
            elif G is Triangle:
                v = np.cross(X[:, 1] - X[:, 0], X[:, 2] - X[:, 0])
                out[idx] = 0.5*np.linalg.norm(v, axis=-1)
            elif G is Quadrilateral and self.GD == 3:
                v = np.cross(X[:, 2] - X[:, 0], X[:, 3] - X[:, 1])
                out[idx] = 0.5*np.linalg.norm(v, axis=-1)
            elif G is Tetrahedron:
                v = np.einsum('ci, ci -> c', np.cross(X[:, 1] - X[:, 0], X[:, 2] - X[:, 0]),
                              X[:, 3] - X[:, 0])
                out[idx] = np.abs(v)/6
            else:
                # bilinear/trilinear maps: two-point Gauss is exact for det(J)
                g = np.array([0.5 - 0.5/np.sqrt(3), 0.5 + 0.5/np.sqrt(3)])
                pts = np.stack(np.meshgrid(*([g]*G.TD), indexing='ij'), axis=-1).reshape(-1, G.TD)
                gphi = G.grad_shape_function(pts)
                J = np.einsum('cvg, qvt -> cqgt', X, gphi)
                out[idx] = np.abs(np.linalg.det(J)).sum(axis=-1)/pts.shape[0]
        return out

    def face_unit_normal(self, index: Index=_S) -> TensorLike:
        """Unit normal of each face, pointing out of the left cell
        `face_to_cell()[:, 0]`."""
        if not hasattr(self, '_face_normal'):
            self._face_normal = self._compute_face_normal()
        return self._face_normal[index]

    def _compute_face_normal(self) -> TensorLike:
        NF = self.number_of_faces()
        n = np.zeros((NF, self.GD), dtype=np.float64)
        for tag in np.unique(self.face_geotag):
            G = geometry_by_tag(tag)
            idx = np.nonzero(self.face_geotag == tag)[0]
            X = self.node[self.face.dense(idx)]
            if G is Point:
                lc = self.face2cell[idx, 0]
                c2n = self.cell.dense(lc)
                direction = np.sign(self.node[c2n[:, 1], 0] - self.node[c2n[:, 0], 0])
                sign = np.where(self.face2cell[idx, 2] == 0, -1.0, 1.0)
                n[idx, 0] = sign*direction
            elif G is Edge:
                t = X[:, 1] - X[:, 0]
                v = np.stack([t[:, 1], -t[:, 0]], axis=-1)
                n[idx] = v/np.linalg.norm(v, axis=-1, keepdims=True)
            elif G is Triangle:
                v = np.cross(X[:, 1] - X[:, 0], X[:, 2] - X[:, 0])
                n[idx] = v/np.linalg.norm(v, axis=-1, keepdims=True)
            else:
                v = np.cross(X[:, 2] - X[:, 0], X[:, 3] - X[:, 1])
                n[idx] = v/np.linalg.norm(v, axis=-1, keepdims=True)
        return n

    def face_to_cell(self) -> TensorLike:
        """Face-to-cell relation shaped (NF, 4): left cell, right cell, local
        index in the left cell, local index in the right cell. Boundary faces
        have the same left and right cell."""
        return self.face2cell

    def cell_to_node(self) -> VariableAdjacency:
        return self.cell

    def cell_to_face(self) -> VariableAdjacency:
        return self.cell2face

    def cell_to_edge(self) -> VariableAdjacency:
        return self.cell2edge

    def face_to_node(self) -> VariableAdjacency:
        return self.face

    def face_to_edge(self) -> VariableAdjacency:
        return self.face2edge

    def boundary_face_index(self) -> TensorLike:
        return self._bdface_index

    def boundary_face_flag(self) -> TensorLike:
        return self.face2cell[:, 0] == self.face2cell[:, 1]

    def __repr__(self) -> str:
        return (f"{self.__class__.__name__}(NN={self.number_of_nodes()}, "
                f"NC={self.number_of_cells()}, GD={self.GD})")

    ## Structured constructors
    @classmethod
    def from_interval_domain(cls, interval=[0, 1], nx=10, **kwargs):
        node = np.linspace(interval[0], interval[1], nx + 1)
        cell = np.stack([np.arange(nx), np.arange(1, nx + 1)], axis=-1)
        return cls(node, cell, **kwargs)

    @classmethod
    def from_box(cls, box=[0, 1, 0, 1], nx=10, ny=10, *, etype: str='triangle', **kwargs):
        """Structured mesh of a rectangle with triangles or quadrilaterals."""
        x = np.linspace(box[0], box[1], nx + 1)
        y = np.linspace(box[2], box[3], ny + 1)
        X, Y = np.meshgrid(x, y, indexing='ij')
        node = np.stack([X.ravel(), Y.ravel()], axis=-1)
        idx = np.arange((nx + 1)*(ny + 1)).reshape(nx + 1, ny + 1)
        v0 = idx[:-1, :-1].ravel()
        v1 = idx[1:, :-1].ravel()
        v2 = idx[1:, 1:].ravel()
        v3 = idx[:-1, 1:].ravel()
        if etype in {'quadrangle', 'quadrilateral', 'quad'}:
            cell = np.stack([v0, v1, v2, v3], axis=-1)
        elif etype in {'triangle', 'tri'}:
            cell = np.concatenate([
                np.stack([v0, v1, v2], axis=-1),
                np.stack([v0, v2, v3], axis=-1)], axis=0)
        else:
            raise ValueError(f"Unsupported etype '{etype}' for a 2D box.")
        return cls(node, cell, **kwargs)

    @classmethod
    def from_box_3d(cls, box=[0, 1, 0, 1, 0, 1], nx=2, ny=2, nz=2, *,
                    etype: str='tetrahedron', **kwargs):
        """Structured mesh of a box with tetrahedra (six per cube) or
        hexahedra."""
        x = np.linspace(box[0], box[1], nx + 1)
        y = np.linspace(box[2], box[3], ny + 1)
        z = np.linspace(box[4], box[5], nz + 1)
        X, Y, Z = np.meshgrid(x, y, z, indexing='ij')
        node = np.stack([X.ravel(), Y.ravel(), Z.ravel()], axis=-1)
        idx = np.arange(node.shape[0]).reshape(nx + 1, ny + 1, nz + 1)
        hexa = np.stack([
            idx[:-1, :-1, :-1], idx[1:, :-1, :-1], idx[1:, 1:, :-1], idx[:-1, 1:, :-1],
            idx[:-1, :-1, 1:], idx[1:, :-1, 1:], idx[1:, 1:, 1:], idx[:-1, 1:, 1:]
        ], axis=-1).reshape(-1, 8)
        if etype in {'hexahedron', 'hex'}:
            cell = hexa
        elif etype in {'tetrahedron', 'tet'}:
            local = np.array([
                [0, 1, 2, 6], [0, 2, 3, 6], [0, 3, 7, 6],
                [0, 7, 4, 6], [0, 4, 5, 6], [0, 5, 1, 6]])
            cell = hexa[:, local].reshape(-1, 4)
            v = node[cell]
            det = np.einsum('ci, ci -> c', np.cross(v[:, 1] - v[:, 0], v[:, 2] - v[:, 0]),
                            v[:, 3] - v[:, 0])
            flip = det < 0
            cell[flip, 1], cell[flip, 2] = cell[flip, 2], cell[flip, 1].copy()
        else:
            raise ValueError(f"Unsupported etype '{etype}' for a 3D box.")
        return cls(node, cell, **kwargs)
