
from typing import Optional

import numpy as np

from .. import logger
from ..typing import TensorLike, Regions
from .assembly_pattern import AssemblyPattern, vector_destination
from .action import Action, DoNotChangeAction


class LinearForm(AssemblyPattern):
    """Assemble `b_i = int action(op(phi_i))` over the assembly items.

    Parameters:
        space (FESpace): Space of the test functions.
        operator (Type[FunctionOperator]): Operator applied to the test functions.
        action (Action, optional): Defaults to passing the operator values
            through unchanged.
    """
    def __init__(self, space, operator, action: Optional[Action]=None, *,
                 regions: Regions=None, assembly_type: str='cell',
                 name: Optional[str]=None) -> None:
        super().__init__([space], [operator], action, regions=regions,
                         assembly_type=assembly_type, name=name)
        if self.action is None:
            self.action = DoNotChangeAction(self.argument_length(0))

    @property
    def space(self):
        return self.spaces[0]

    def assemble(self, b=None, *, factor: float=1.0) -> TensorLike:
        """Add the form into `b` and return it.

        Parameters:
            b (TensorLike | FEVectorBlock, optional): Destination shaped (gdof, )
                or, when the action result has more than one entry,
                (gdof, resultdim). A new zero array when None.
            factor (float, optional): Scaling of the added values. Defaults to 1.

        Raises:
            DimensionMismatchError: If `b` has the wrong shape.
        """
        gdof = self.space.number_of_global_dofs()
        resultdim = self.action.resultdim
        if b is None:
            b = np.zeros(gdof if resultdim == 1 else (gdof, resultdim), dtype=np.float64)
        array = vector_destination(b, gdof, resultdim)
        self.prepare()
        onedim = array.ndim == 1

        for item, IG, ws, kwargs in self.iterate(self.name):
            for vals, dofs, coef in self.sides(0, item, IG):
                result = self.action(vals, **kwargs)
                local = coef*factor*np.einsum('q, iqr -> ir', ws, result)
                if onedim:
                    np.add.at(array, dofs, local[:, 0])
                else:
                    np.add.at(array, dofs, local)

        logger.info(f"{self.name} assembled, with shape {list(array.shape)}.")
        return b
