"""
Reference element geometries.

The classes in this module are tags: they are used for dispatch and carry
static reference data only. They are never instantiated.
"""
from typing import Tuple, Type

import numpy as np

from ..typing import TensorLike


class _GeometryMeta(type):
    def __repr__(cls):
        return cls.__name__


class ElementGeometry(metaclass=_GeometryMeta):
    tag: int = -1
    TD: int = 0
    affine: bool = True
    simplex: bool = True
    measure: float = 1.0
    refnodes: TensorLike = np.zeros((1, 0), dtype=np.float64)
    faces: Tuple[Tuple[int, ...], ...] = ()
    edges: Tuple[Tuple[int, ...], ...] = ()
    face_geometry: "Type[ElementGeometry]"

    def __new__(cls, *args, **kwargs):
        raise TypeError(f"{cls.__name__} is a geometry tag and cannot be instantiated.")

    @classmethod
    def number_of_vertices(cls) -> int:
        return cls.refnodes.shape[0]

    @classmethod
    def number_of_faces(cls) -> int:
        return len(cls.faces)

    @classmethod
    def number_of_edges(cls) -> int:
        return len(cls.edges)

    @classmethod
    def barycenter(cls) -> TensorLike:
        return np.mean(cls.refnodes, axis=0)

    @classmethod
    def shape_function(cls, xref: TensorLike) -> TensorLike:
        """Vertex shape functions of the reference map, shaped (NQ, NV)."""
        raise NotImplementedError

    @classmethod
    def grad_shape_function(cls, xref: TensorLike) -> TensorLike:
        """Gradients of the vertex shape functions, shaped (NQ, NV, TD)."""
        raise NotImplementedError

    @classmethod
    def face_to_cell(cls, face: int, xref: TensorLike) -> TensorLike:
        """Map points given in the reference coordinates of local face `face`
        into the reference coordinates of the cell."""
        phi = cls.face_geometry.shape_function(xref)
        return phi @ cls.refnodes[list(cls.faces[face])]


class Point(ElementGeometry):
    tag = 0
    TD = 0

    @classmethod
    def shape_function(cls, xref):
        return np.ones((xref.shape[0], 1), dtype=np.float64)

    @classmethod
    def grad_shape_function(cls, xref):
        return np.zeros((xref.shape[0], 1, 0), dtype=np.float64)


class Edge(ElementGeometry):
    tag = 1
    TD = 1
    refnodes = np.array([[0.0], [1.0]])
    faces = ((0, ), (1, ))
    face_geometry = Point

    @classmethod
    def shape_function(cls, xref):
        x = xref[:, 0]
        return np.stack([1 - x, x], axis=-1)

    @classmethod
    def grad_shape_function(cls, xref):
        NQ = xref.shape[0]
        g = np.array([[-1.0], [1.0]])
        return np.broadcast_to(g, (NQ, 2, 1)).copy()


class Triangle(ElementGeometry):
    tag = 2
    TD = 2
    measure = 0.5
    refnodes = np.array([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0]])
    faces = ((0, 1), (1, 2), (2, 0))
    edges = faces
    face_geometry = Edge

    @classmethod
    def shape_function(cls, xref):
        x, y = xref[:, 0], xref[:, 1]
        return np.stack([1 - x - y, x, y], axis=-1)

    @classmethod
    def grad_shape_function(cls, xref):
        NQ = xref.shape[0]
        g = np.array([[-1.0, -1.0], [1.0, 0.0], [0.0, 1.0]])
        return np.broadcast_to(g, (NQ, 3, 2)).copy()


class Quadrilateral(ElementGeometry):
    tag = 3
    TD = 2
    affine = False
    simplex = False
    refnodes = np.array([[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0]])
    faces = ((0, 1), (1, 2), (2, 3), (3, 0))
    edges = faces
    face_geometry = Edge

    @classmethod
    def shape_function(cls, xref):
        x, y = xref[:, 0], xref[:, 1]
        return np.stack([(1 - x)*(1 - y), x*(1 - y), x*y, (1 - x)*y], axis=-1)

    @classmethod
    def grad_shape_function(cls, xref):
        x, y = xref[:, 0], xref[:, 1]
        gx = np.stack([-(1 - y), 1 - y, y, -y], axis=-1)
        gy = np.stack([-(1 - x), -x, x, 1 - x], axis=-1)
        return np.stack([gx, gy], axis=-1)


class Tetrahedron(ElementGeometry):
    tag = 4
    TD = 3
    measure = 1/6
    refnodes = np.array([
        [0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]])
    faces = ((0, 2, 1), (0, 1, 3), (1, 2, 3), (0, 3, 2))
    edges = ((0, 1), (0, 2), (0, 3), (1, 2), (1, 3), (2, 3))
    face_geometry = Triangle

    @classmethod
    def shape_function(cls, xref):
        x, y, z = xref[:, 0], xref[:, 1], xref[:, 2]
        return np.stack([1 - x - y - z, x, y, z], axis=-1)

    @classmethod
    def grad_shape_function(cls, xref):
        NQ = xref.shape[0]
        g = np.array([
            [-1.0, -1.0, -1.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]])
        return np.broadcast_to(g, (NQ, 4, 3)).copy()


class Hexahedron(ElementGeometry):
    tag = 5
    TD = 3
    affine = False
    simplex = False
    refnodes = np.array([
        [0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [1.0, 1.0, 0.0], [0.0, 1.0, 0.0],
        [0.0, 0.0, 1.0], [1.0, 0.0, 1.0], [1.0, 1.0, 1.0], [0.0, 1.0, 1.0]])
    faces = (
        (0, 3, 2, 1), (0, 1, 5, 4), (1, 2, 6, 5),
        (2, 3, 7, 6), (3, 0, 4, 7), (4, 5, 6, 7))
    edges = (
        (0, 1), (1, 2), (2, 3), (3, 0), (0, 4), (1, 5),
        (2, 6), (3, 7), (4, 5), (5, 6), (6, 7), (7, 4))
    face_geometry = Quadrilateral

    @classmethod
    def shape_function(cls, xref):
        x, y, z = xref[:, 0], xref[:, 1], xref[:, 2]
        phi2 = Quadrilateral.shape_function(xref[:, :2])
        return np.concatenate([phi2 * (1 - z)[:, None], phi2 * z[:, None]], axis=-1)

    @classmethod
    def grad_shape_function(cls, xref):
        z = xref[:, 2:3]
        phi2 = Quadrilateral.shape_function(xref[:, :2])
        g2 = Quadrilateral.grad_shape_function(xref[:, :2])
        lower = np.concatenate([g2 * (1 - z)[..., None], -phi2[..., None]], axis=-1)
        upper = np.concatenate([g2 * z[..., None], phi2[..., None]], axis=-1)
        return np.concatenate([lower, upper], axis=1)


GEOMETRIES = (Point, Edge, Triangle, Quadrilateral, Tetrahedron, Hexahedron)


def geometry_by_tag(tag: int) -> Type[ElementGeometry]:
    return GEOMETRIES[int(tag)]


def geometry_from_vertices(nvertices: int, TD: int) -> Type[ElementGeometry]:
    """Infer the element geometry from the number of vertices of an item with
    topological dimension `TD`."""
    for G in GEOMETRIES:
        if G.TD == TD and G.number_of_vertices() == nvertices:
            return G
    raise ValueError(f"No element geometry with {nvertices} vertices "
                     f"in dimension {TD}.")
