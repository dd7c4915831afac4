
from .geometry import (
    ElementGeometry, Point, Edge, Triangle, Quadrilateral, Tetrahedron, Hexahedron,
    GEOMETRIES, geometry_by_tag, geometry_from_vertices
)
from .adjacency import VariableAdjacency
from .mesh import Mesh
