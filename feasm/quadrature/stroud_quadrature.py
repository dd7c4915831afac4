import numpy as np
from scipy.special import roots_jacobi

from .quadrature import Quadrature


class StroudQuadrature(Quadrature):
    """Conical product rules on the reference simplex of dimension `dim`.

    The rule combines Gauss-Jacobi rules in the collapsed coordinates, is
    exact up to `order` and has `(order//2 + 1)**dim` points. Order 0 and 1
    use the centroid, and order 2 on triangles the three edge midpoints.
    """
    def __init__(self, dim: int, index: int, **kwargs):
        self.dim = dim
        super().__init__(index, **kwargs)

    def make(self, index: int):
        d = self.dim
        refnodes = np.concatenate([np.zeros((1, d)), np.eye(d)], axis=0)
        if index <= 1:
            bcs = np.full((1, d+1), 1/(d+1))
            weights = np.ones(1)
        elif index == 2 and d == 2:
            bcs = np.array([[0.5, 0.5, 0.0], [0.0, 0.5, 0.5], [0.5, 0.0, 0.5]])
            weights = np.full(3, 1/3)
        else:
            p, weights = self._compute_quadrature(index//2 + 1)
            bcs = self._to_simplex(p)
        return bcs @ refnodes, weights

    def _to_simplex(self, points):
        d = self.dim
        shape = points.shape[:-1]
        bcs = np.zeros(shape+(d+1, ), dtype=np.float64)
        bcs[:, 0] = points[:, 0]
        for i in range(1, d):
            bcs[:, i] = points[:, i] * (1-bcs[:, :i].sum(axis=-1))
        bcs[:, d] = 1-bcs[:, :d].sum(axis=-1)
        return bcs

    def _compute_quadrature(self, n: int):
        d = self.dim
        points = []
        weights = []
        for i in range(1, d+1):
            p, w, s = roots_jacobi(n, d-i, 0, mu=True)
            points.append((p+1)/2)
            weights.append(w/s)
        points = np.meshgrid(*points, indexing='ij')
        weights = np.meshgrid(*weights, indexing='ij')

        points = np.array([p.flatten() for p in points]).T
        weights = np.prod([w.flatten() for w in weights], axis=0)
        return points, weights
