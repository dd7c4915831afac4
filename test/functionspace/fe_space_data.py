import numpy as np

from feasm.functionspace import H1P0, H1P1, H1P2, H1P2B, H1CR, H1BR, HdivRT0, HdivRT1, HdivBDM2

gdof_data = [
    {"mesh": ("box", "triangle", 2), "element": H1P0(), "gdof": 8},
    {"mesh": ("box", "triangle", 2), "element": H1P1(), "gdof": 9},
    {"mesh": ("box", "triangle", 2), "element": H1P1(2), "gdof": 18},
    {"mesh": ("box", "triangle", 2), "element": H1P2(), "gdof": 25},
    {"mesh": ("box", "triangle", 2), "element": H1P2B(), "gdof": 33},
    {"mesh": ("box", "triangle", 2), "element": H1CR(), "gdof": 16},
    {"mesh": ("box", "triangle", 2), "element": H1CR(2), "gdof": 32},
    {"mesh": ("box", "triangle", 2), "element": HdivRT0(), "gdof": 16},
    {"mesh": ("box", "triangle", 2), "element": H1BR(), "gdof": 34},
    {"mesh": ("box", "triangle", 2), "element": HdivRT1(), "gdof": 48},
    {"mesh": ("box", "triangle", 2), "element": HdivBDM2(), "gdof": 72},
    {"mesh": ("box", "quadrangle", 2), "element": H1P1(), "gdof": 9},
    {"mesh": ("box", "quadrangle", 2), "element": H1P2(), "gdof": 21},
    {"mesh": ("box", "quadrangle", 2), "element": H1CR(), "gdof": 12},
    {"mesh": ("box", "quadrangle", 2), "element": H1BR(), "gdof": 30},
    {"mesh": ("box3d", "tetrahedron", 1), "element": H1P1(), "gdof": 8},
    {"mesh": ("box3d", "tetrahedron", 1), "element": H1P2(), "gdof": 27},
    {"mesh": ("box3d", "tetrahedron", 1), "element": H1CR(), "gdof": 18},
    {"mesh": ("box3d", "tetrahedron", 1), "element": HdivRT0(), "gdof": 18},
    {"mesh": ("box3d", "hexahedron", 2), "element": H1P1(), "gdof": 27},
]


def linear(p):
    return 1 + 2*p[:, 0] - p[:, 1]


def bilinear(p):
    return 1 + p[:, 0] + p[:, 1] + p[:, 0]*p[:, 1]


def quadratic(p):
    x, y = p[:, 0], p[:, 1]
    return x**2 + x*y - y**2 + 1


def serendipity(p):
    x, y = p[:, 0], p[:, 1]
    return x**2 + x*y + x*y**2 + 2


def rotated_bilinear(p):
    x, y = p[:, 0], p[:, 1]
    return x**2 - y**2 + x


def linear_3d(p):
    return 1 + p[:, 0] - 2*p[:, 1] + 3*p[:, 2]


def quadratic_3d(p):
    x, y, z = p[:, 0], p[:, 1], p[:, 2]
    return x**2 + y*z - z


def trilinear(p):
    x, y, z = p[:, 0], p[:, 1], p[:, 2]
    return x*y*z + x


def vector_linear(p):
    x, y = p[:, 0], p[:, 1]
    return np.stack([x + 1, y - 2*x], axis=-1)


def vector_bilinear(p):
    x, y = p[:, 0], p[:, 1]
    return np.stack([x*y, x - y], axis=-1)


def rt_field(p):
    x, y = p[:, 0], p[:, 1]
    return np.stack([1 + x, 2 + y], axis=-1)


def bdm_field(p):
    x, y = p[:, 0], p[:, 1]
    return np.stack([x**2 - y, x*y + y**2 + 1], axis=-1)


def rt_field_quad(p):
    x, y = p[:, 0], p[:, 1]
    return np.stack([1 + x, 2 - 3*y], axis=-1)


def rt_field_3d(p):
    x, y, z = p[:, 0], p[:, 1], p[:, 2]
    return np.stack([1 + x, y, 2 + z], axis=-1)


interpolation_data = [
    {"mesh": ("box", "triangle", 2), "element": H1P1(), "f": linear},
    {"mesh": ("box", "quadrangle", 2), "element": H1P1(), "f": bilinear},
    {"mesh": ("box", "triangle", 2), "element": H1P2(), "f": quadratic},
    {"mesh": ("box", "quadrangle", 2), "element": H1P2(), "f": serendipity},
    {"mesh": ("box", "triangle", 2), "element": H1P2B(), "f": quadratic},
    {"mesh": ("box", "triangle", 2), "element": H1CR(), "f": linear},
    {"mesh": ("box", "quadrangle", 2), "element": H1CR(), "f": rotated_bilinear},
    {"mesh": ("box", "triangle", 2), "element": H1P1(2), "f": vector_linear},
    {"mesh": ("box", "triangle", 2), "element": H1CR(2), "f": vector_linear},
    {"mesh": ("box", "triangle", 2), "element": H1BR(), "f": vector_linear},
    {"mesh": ("box", "quadrangle", 2), "element": H1BR(), "f": vector_bilinear},
    {"mesh": ("box", "triangle", 2), "element": HdivRT0(), "f": rt_field},
    {"mesh": ("box", "quadrangle", 2), "element": HdivRT0(), "f": rt_field_quad},
    {"mesh": ("box", "triangle", 2), "element": HdivRT1(), "f": vector_linear},
    {"mesh": ("box", "triangle", 2), "element": HdivBDM2(), "f": bdm_field},
    {"mesh": ("box3d", "tetrahedron", 1), "element": H1P1(), "f": linear_3d},
    {"mesh": ("box3d", "tetrahedron", 1), "element": H1P2(), "f": quadratic_3d},
    {"mesh": ("box3d", "tetrahedron", 1), "element": H1CR(), "f": linear_3d},
    {"mesh": ("box3d", "tetrahedron", 1), "element": HdivRT0(), "f": rt_field_3d},
    {"mesh": ("box3d", "hexahedron", 2), "element": H1P1(), "f": trilinear},
]
