
from typing import Callable, Optional, Type

import numpy as np

from .. import logger
from ..typing import TensorLike
from ..errors import ConfigurationError, DimensionMismatchError
from ..mesh.geometry import ElementGeometry, geometry_by_tag
from .dofmap import DofMap
from .fe_vector import FEVector, FEVectorBlock
from . import interpolation
from .reconstruction import reconstruction_coefficients


class FESpace():
    """Finite element space of one element family on a mesh.

    Parameters:
        mesh (Mesh): The mesh.
        element (FiniteElement): Element family; it must be defined on every
            cell geometry of the mesh.
        name (str, optional): Name used in messages.
    """
    def __init__(self, mesh, element, name: Optional[str]=None) -> None:
        self.mesh = mesh
        self.element = element
        self.name = name if name is not None else repr(element)
        self.TD = mesh.top_dimension()
        self.GD = mesh.geo_dimension()
        self.ftype = np.float64
        self.itype = np.int64

        self.geometries = [geometry_by_tag(t) for t in np.unique(mesh.cell_geotag)]
        for G in self.geometries:
            if not element.supports(G):
                raise ConfigurationError(f"{element} is not defined on {G} cells.")
        self.ncomponents = element.number_of_components(self.TD)
        self.dof = DofMap(mesh, element, self.ncomponents)
        self._reconstruction = {}
        self._reconstruction_spaces = {}
        logger.info(f"{self} created on a mesh with {mesh.number_of_cells()} cells.")

    def __repr__(self) -> str:
        return f"FESpace({self.name}, gdof={self.number_of_global_dofs()})"

    def geo_dimension(self) -> int:
        return self.GD

    def top_dimension(self) -> int:
        return self.TD

    def number_of_global_dofs(self) -> int:
        return self.dof.number_of_global_dofs()

    def number_of_local_dofs(self, geometry: Type[ElementGeometry]) -> int:
        return self.dof.number_of_local_dofs(geometry)

    def cell_to_dof(self):
        return self.dof.cell_to_dof()

    def face_to_dof(self):
        return self.dof.face_to_dof()

    def bdface_to_dof(self):
        return self.dof.bdface_to_dof()

    def dofs_for_item(self, assembly_type: str, item: int) -> TensorLike:
        return self.dof.dofs_for_item(assembly_type, item)

    def is_boundary_dof(self) -> TensorLike:
        """Flags of the dofs attached to boundary faces."""
        flag = np.zeros(self.number_of_global_dofs(), dtype=np.bool_)
        flag[self.bdface_to_dof().flat] = True
        return flag

    def polynomial_order(self, geometry: Type[ElementGeometry]) -> int:
        return self.element.polynomial_order(geometry)

    def check_coefficients(self, array: TensorLike, name: str='coefficient vector'):
        gdof = self.number_of_global_dofs()
        if array.shape[0] != gdof:
            raise DimensionMismatchError(
                f"The {name} of {self} should have length {gdof}, but got {array.shape[0]}.")

    def function(self, array: Optional[TensorLike]=None, name: Optional[str]=None) -> FEVectorBlock:
        """A single-block FE function, zero unless `array` is given."""
        if array is not None:
            array = np.asarray(array, dtype=self.ftype)
            self.check_coefficients(array)
        vector = FEVector([self], entries=array, names=None if name is None else [name])
        return vector[0]

    def interpolate(self, f: Callable[[TensorLike], TensorLike], out: Optional[TensorLike]=None) -> TensorLike:
        """Interpolate `f`, a function of physical points shaped (NP, GD)
        returning (NP,) or (NP, ncomponents) values, into this space.

        The kind of interpolation is a property of the element: nodal values,
        face means, normal-flux moments, or linear part plus flux-matching
        face bubbles."""
        if out is None:
            out = np.zeros(self.number_of_global_dofs(), dtype=self.ftype)
        else:
            self.check_coefficients(out, name='interpolation destination')
        return interpolation.interpolate(self, f, out)

    def reconstruction_space(self, element) -> "FESpace":
        if element not in self._reconstruction_spaces:
            self._reconstruction_spaces[element] = FESpace(self.mesh, element)
        return self._reconstruction_spaces[element]

    def reconstruction_coefficients(self, element):
        """Per-cell coefficient matrices of the reconstruction into `element`,
        computed once and cached."""
        if element not in self._reconstruction:
            self._reconstruction[element] = reconstruction_coefficients(self, element)
        return self._reconstruction[element]
