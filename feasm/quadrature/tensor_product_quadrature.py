import numpy as np

from .quadrature import Quadrature
from .gauss_legendre import gauss_legendre


class TensorProductQuadrature(Quadrature):
    """Tensor products of the 1-D Gauss rule on [0, 1]**dim."""
    def __init__(self, dim: int, index: int, **kwargs):
        self.dim = dim
        super().__init__(index, **kwargs)

    def make(self, index: int):
        d = self.dim
        if index <= 1:
            return np.full((1, d), 0.5), np.ones(1)
        x, w = gauss_legendre(index//2 + 1)
        points = np.meshgrid(*([x]*d), indexing='ij')
        weights = np.meshgrid(*([w]*d), indexing='ij')
        points = np.stack([p.ravel() for p in points], axis=-1)
        weights = np.prod([w.ravel() for w in weights], axis=0)
        return points, weights
