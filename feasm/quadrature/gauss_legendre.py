
import numpy as np
from scipy.linalg import eigh_tridiagonal

from .quadrature import Quadrature


def gauss_legendre(n: int):
    """n-point Gauss rule on [0, 1] with weights summing to one.

    Nodes are the eigenvalues of the Jacobi matrix of the Legendre
    polynomials; weights come from the first components of the eigenvectors.
    """
    if n == 1:
        return np.array([0.5]), np.array([1.0])
    k = np.arange(1, n, dtype=np.float64)
    beta = k/np.sqrt(4*k**2 - 1)
    t, v = eigh_tridiagonal(np.zeros(n), beta)
    w = v[0, :]**2
    return (t + 1)/2, w/w.sum()


class GaussLegendreQuadrature(Quadrature):
    """Rules on the reference interval [0, 1].

    Order 0 and 1 use the midpoint, order 2 the Simpson rule and higher
    orders the Gauss rule with `order//2 + 1` points.
    """
    def make(self, index: int):
        if index <= 1:
            x, w = np.array([0.5]), np.array([1.0])
        elif index == 2:
            x, w = np.array([0.0, 0.5, 1.0]), np.array([1/6, 2/3, 1/6])
        else:
            x, w = gauss_legendre(index//2 + 1)
        return x[:, None], w
