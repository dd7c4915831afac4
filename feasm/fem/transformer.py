
from typing import Type

import numpy as np

from ..typing import TensorLike
from ..errors import DegenerateGeometryError
from ..mesh.geometry import ElementGeometry


class L2GTransformer():
    """Map from the reference element of `geometry` to one mesh item at a
    time.

    Parameters:
        mesh (Mesh): The mesh.
        geometry (Type[ElementGeometry]): Geometry of the items.
        etype (str): 'cell' or 'face'.
    """
    def __init__(self, mesh, geometry: Type[ElementGeometry], etype: str='cell') -> None:
        self.mesh = mesh
        self.geometry = geometry
        self.etype = etype
        self.entity = mesh.entity(etype)
        self.GD = mesh.geo_dimension()
        self.citem = -1
        self.X = None
        self._J = None

    def update(self, item: int):
        if item == self.citem:
            return
        self.citem = item
        self.X = self.mesh.node[self.entity[item]]
        if self.geometry.affine and self.geometry.TD > 0:
            gphi = self.geometry.grad_shape_function(self.geometry.barycenter()[None, :])[0]
            J = self.X.T @ gphi
            self._J = J
            self._check(self._determinant(J[None, ...]))
        else:
            self._J = None

    def _determinant(self, J: TensorLike) -> TensorLike:
        GD, TD = J.shape[-2:]
        if GD == TD:
            return np.linalg.det(J)
        return np.sqrt(np.linalg.det(np.swapaxes(J, -1, -2) @ J))

    def _check(self, det: TensorLike):
        if np.any(det <= 0):
            raise DegenerateGeometryError(self.citem, float(np.min(det)))

    def ref2phys(self, xref: TensorLike) -> TensorLike:
        """Physical coordinates of reference points, shaped (NQ, GD)."""
        return self.geometry.shape_function(xref) @ self.X

    def jacobian(self, xref: TensorLike) -> TensorLike:
        """Jacobian of the reference map at each point, shaped (NQ, GD, TD)."""
        if self._J is not None:
            return np.broadcast_to(self._J, (xref.shape[0], ) + self._J.shape)
        gphi = self.geometry.grad_shape_function(xref)
        J = np.einsum('vg, qvt -> qgt', self.X, gphi)
        self._check(self._determinant(J))
        return J

    def piola_factor(self, xref: TensorLike) -> TensorLike:
        """Jacobian determinant at each point, shaped (NQ, ); the surface
        factor sqrt(det(J^T J)) for items of lower dimension."""
        return self._determinant(self.jacobian(xref))

    def jacobian_inverse_transpose(self, xref: TensorLike) -> TensorLike:
        """The matrices G with grad(u) = G @ grad_ref(u), shaped (NQ, GD, TD)."""
        J = self.jacobian(xref)
        GD, TD = J.shape[-2:]
        if GD == TD:
            return np.swapaxes(np.linalg.inv(J), -1, -2)
        JtJ = np.swapaxes(J, -1, -2) @ J
        return J @ np.linalg.inv(JtJ)
