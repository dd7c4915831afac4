
from typing import Optional

import numpy as np

from .. import logger
from ..typing import TensorLike, Regions
from ..errors import ConfigurationError, DimensionMismatchError
from ..functionspace.fe_matrix import FEMatrix
from .assembly_pattern import (
    AssemblyPattern, coefficient_array, vector_destination,
    check_matrix_destination, scatter_matrix
)
from .action import Action, DoNotChangeAction


class TrilinearForm(AssemblyPattern):
    """Trilinear form `a(u, v, w) = int action([op_1(u), op_2(v)]) . op_3(w)`.

    The action receives the concatenated evaluations of the first two
    arguments; its result must have the length of the third operator.
    A typical use is the convection term `(u . grad) v . w` with
    `[Identity, Gradient, Identity]`.
    """
    def __init__(self, spaces, operators, action: Optional[Action]=None, *,
                 regions: Regions=None, assembly_type: str='cell',
                 name: Optional[str]=None) -> None:
        if len(spaces) != 3 or len(operators) != 3:
            raise ConfigurationError("A trilinear form needs three spaces and three operators.")
        super().__init__(spaces, operators, action, regions=regions,
                         assembly_type=assembly_type, name=name)
        if self.action is None:
            self.action = DoNotChangeAction(self.argument_length(0) + self.argument_length(1))
        if self.action.resultdim != self.argument_length(2):
            raise ConfigurationError(
                f"{self.name}: the action result has length {self.action.resultdim}, but "
                f"the third operator {self.operators[2]} has length {self.argument_length(2)}.")

    def _input(self, first: TensorLike, second: TensorLike) -> TensorLike:
        shape = np.broadcast_shapes(first.shape[:-1], second.shape[:-1])
        first = np.broadcast_to(first, shape + first.shape[-1:])
        second = np.broadcast_to(second, shape + second.shape[-1:])
        return np.concatenate([first, second], axis=-1)

    def assemble(self, A=None, fixed1=None, *, fixed_argument: int=1,
                 transposed_assembly: bool=False, factor: float=1.0):
        """Add the matrix of the form with argument `fixed_argument` (1 or 2)
        replaced by the function `fixed1`. Rows belong to the other of the
        first two arguments and columns to the third.

        Returns:
            The destination, or a `scipy.sparse.csr_matrix` when `A` is None.
        """
        if fixed_argument not in (1, 2):
            raise ConfigurationError(f"fixed_argument should be 1 or 2, got {fixed_argument}.")
        if fixed1 is None:
            raise ConfigurationError(f"{self.name}.assemble needs a fixed function.")
        k = fixed_argument - 1
        free = 1 - k
        u = coefficient_array(fixed1, self.spaces[k], name='fixed function')
        shape = (self.spaces[free].number_of_global_dofs(), self.spaces[2].number_of_global_dofs())
        if transposed_assembly:
            shape = shape[::-1]
        owned = A is None
        if owned:
            rs, cs = self.spaces[free], self.spaces[2]
            M = FEMatrix(cs if transposed_assembly else rs, rs if transposed_assembly else cs)
            A = M[0, 0]
        check_matrix_destination(A, shape)
        self.prepare()

        for item, IG, ws, kwargs in self.iterate(self.name):
            ufix = self.function_values(k, item, IG, u)[None, ...]
            sides_free = self.sides(free, item, IG)
            sides3 = self.sides(2, item, IG)
            for v, rows, cv in sides_free:
                input = self._input(ufix, v) if k == 0 else self._input(v, ufix)
                r = self.action(input, **kwargs)
                for w, cols, cw in sides3:
                    local = cv*cw*factor*np.einsum('q, iqr, jqr -> ij', ws, r, w)
                    if transposed_assembly:
                        scatter_matrix(A, cols, rows, local.T)
                    else:
                        scatter_matrix(A, rows, cols, local)

        logger.info(f"{self.name} assembled with fixed argument {fixed_argument}, "
                    f"with shape {list(shape)}.")
        if owned:
            return M.tocsr()
        return A

    def apply(self, b, fixed1, fixed2, *, factor: float=1.0) -> TensorLike:
        """Add the vector of the form with the first two arguments replaced by
        `fixed1` and `fixed2` to `b`, indexed by the dofs of the third."""
        u1 = coefficient_array(fixed1, self.spaces[0], name='first fixed function')
        u2 = coefficient_array(fixed2, self.spaces[1], name='second fixed function')
        n = self.spaces[2].number_of_global_dofs()
        if b is None:
            b = np.zeros(n, dtype=np.float64)
        array = vector_destination(b, n)
        self.prepare()

        for item, IG, ws, kwargs in self.iterate(self.name):
            input = self._input(self.function_values(0, item, IG, u1),
                                self.function_values(1, item, IG, u2))
            r = self.action(input, **kwargs)
            for w, cols, cw in self.sides(2, item, IG):
                np.add.at(array, cols, cw*factor*np.einsum('q, qr, jqr -> j', ws, r, w))

        logger.info(f"{self.name} applied to two fixed arguments.")
        return b

    def assemble_tensor(self, T: Optional[TensorLike]=None, *, factor: float=1.0) -> TensorLike:
        """Add the full trilinear form into the dense array `T` shaped
        (gdof_1, gdof_2, gdof_3)."""
        shape = tuple(s.number_of_global_dofs() for s in self.spaces)
        if T is None:
            T = np.zeros(shape, dtype=np.float64)
        elif T.shape != shape:
            raise DimensionMismatchError(f"The tensor should have shape {shape}, but got {T.shape}.")
        self.prepare()

        for item, IG, ws, kwargs in self.iterate(self.name):
            sides1, sides2, sides3 = self.sides_of_all(item, IG)
            for v1, d1, c1 in sides1:
                for v2, d2, c2 in sides2:
                    input = self._input(v1[:, None, ...], v2[None, ...])
                    r = self.action(input, **kwargs)
                    for w, d3, c3 in sides3:
                        local = c1*c2*c3*factor*np.einsum('q, ijqr, kqr -> ijk', ws, r, w)
                        np.add.at(T, (d1[:, None, None], d2[None, :, None], d3[None, None, :]), local)

        logger.info(f"{self.name} assembled as a dense tensor, with shape {list(shape)}.")
        return T
