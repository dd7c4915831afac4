from typing import Tuple, Optional

import numpy as np

from ..typing import TensorLike


class Quadrature():
    r"""Base class for quadrature generators.

    Points are given in the reference coordinates of the element geometry and
    the weights sum to one, i.e. they are normalized by the reference measure.
    """
    def __init__(self, index: Optional[int]=None, *, dtype=None) -> None:
        self.dtype = dtype if dtype else np.float64
        self.order = max(int(index), 0) if index is not None else 0
        quadpts, weights = self.make(self.order)
        self.quadpts = np.asarray(quadpts, dtype=self.dtype)
        self.weights = np.asarray(weights, dtype=self.dtype)
        self.quadpts.flags.writeable = False
        self.weights.flags.writeable = False

    def __len__(self) -> int:
        return self.number_of_quadrature_points()

    def __getitem__(self, i: int) -> TensorLike:
        return self.get_quadrature_point_and_weight(i)

    def __repr__(self) -> str:
        return (f"{self.__class__.__name__}(order={self.order}, "
                f"NQ={self.number_of_quadrature_points()})")

    def make(self, index: int) -> TensorLike:
        raise NotImplementedError

    def number_of_quadrature_points(self) -> int:
        return self.weights.shape[0]

    def get_quadrature_points_and_weights(self) -> Tuple[TensorLike, TensorLike]:
        """Get all quadrature points and weights in the formula.

        Returns:
            (Tensor, Tensor): Quadrature points shaped (NQ, TD) and weights shaped (NQ,).
        """
        return self.quadpts, self.weights

    def get_quadrature_point_and_weight(self, i: int) -> Tuple[TensorLike, TensorLike]:
        """Get the i-th quadrature point and weight."""
        return self.quadpts[i, :], self.weights[i]


class PointQuadrature(Quadrature):
    """Trivial rule for zero-dimensional items."""
    def make(self, index: int):
        return np.zeros((1, 0)), np.ones(1)
