
from typing import Optional

import numpy as np

from .. import logger
from ..typing import TensorLike, Regions
from ..errors import ConfigurationError
from ..functionspace.fe_matrix import FEMatrix
from .assembly_pattern import (
    AssemblyPattern, coefficient_array, vector_destination,
    check_matrix_destination, scatter_matrix
)
from .action import Action, DoNotChangeAction


class BilinearForm(AssemblyPattern):
    """Assemble `A_ij = int action(op_1(phi_i)) . op_2(psi_j)`.

    Parameters:
        spaces (Sequence[FESpace]): Spaces of the first (row) and second
            (column) argument.
        operators (Sequence[Type[FunctionOperator]]): Operators of the two
            arguments.
        action (Action, optional): Applied to the argument `apply_action_to`;
            its result must have the length of the other operator.
        symmetric (bool, optional): Compute the upper triangle only and
            mirror it. Needs identical arguments. Defaults to False.
        apply_action_to (int, optional): 1 or 2. Defaults to 1.
    """
    def __init__(self, spaces, operators, action: Optional[Action]=None, *,
                 symmetric: bool=False, apply_action_to: int=1,
                 regions: Regions=None, assembly_type: str='cell',
                 name: Optional[str]=None) -> None:
        if len(spaces) != 2 or len(operators) != 2:
            raise ConfigurationError("A bilinear form needs two spaces and two operators.")
        super().__init__(spaces, operators, action, regions=regions,
                         assembly_type=assembly_type, name=name)
        if apply_action_to not in (1, 2):
            raise ConfigurationError(f"apply_action_to should be 1 or 2, got {apply_action_to}.")
        self.apply_action_to = apply_action_to
        self.symmetric = symmetric
        acted = apply_action_to - 1
        other = 1 - acted
        if self.action is None:
            self.action = DoNotChangeAction(self.argument_length(acted))
        if self.action.resultdim != self.argument_length(other):
            raise ConfigurationError(
                f"{self.name}: the action result has length {self.action.resultdim}, but "
                f"the other argument {self.operators[other]} has length "
                f"{self.argument_length(other)}.")
        if symmetric and (self.spaces[0] is not self.spaces[1]
                          or self.operators[0] is not self.operators[1]):
            raise ConfigurationError(f"{self.name}: symmetric assembly needs the same "
                                     f"space and operator in both arguments.")

    def shape(self, transposed_assembly: bool=False):
        n1 = self.spaces[0].number_of_global_dofs()
        n2 = self.spaces[1].number_of_global_dofs()
        return (n2, n1) if transposed_assembly else (n1, n2)

    def local_matrices(self, item: int, IG, ws, kwargs):
        """Yield `(rows, cols, local)` of all pairs of dof items on `item`,
        with rows from the first and columns from the second argument."""
        sides1, sides2 = self.sides_of_all(item, IG)
        acted = self.apply_action_to
        for d1, (v1, dofs1, c1) in enumerate(sides1):
            for d2, (v2, dofs2, c2) in enumerate(sides2):
                if self.symmetric and d2 < d1:
                    continue
                if acted == 1:
                    r = self.action(v1, **kwargs)
                    local = np.einsum('q, iqr, jqr -> ij', ws, r, v2)
                else:
                    r = self.action(v2, **kwargs)
                    local = np.einsum('q, iqr, jqr -> ij', ws, v1, r)
                local *= c1*c2
                if self.symmetric:
                    if d1 == d2:
                        upper = np.triu(local)
                        local = upper + np.triu(local, 1).T
                    else:
                        yield dofs2, dofs1, local.T
                yield dofs1, dofs2, local

    def assemble(self, A=None, *, factor: float=1.0, transposed_assembly: bool=False,
                 transpose_copy=None):
        """Add the form into `A`.

        Parameters:
            A (TensorLike | FEMatrixBlock, optional): Dense array or matrix
                block. When None, a new CSR matrix is returned.
            factor (float, optional): Scaling of the added values. Defaults to 1.
            transposed_assembly (bool, optional): Rows from the second argument,
                columns from the first. Defaults to False.
            transpose_copy (TensorLike | FEMatrixBlock, optional): Receives the
                transposed values times `-factor`.

        Returns:
            The destination, or a `scipy.sparse.csr_matrix` when `A` is None.
        """
        shape = self.shape(transposed_assembly)
        owned = A is None
        if owned:
            M = FEMatrix(self.spaces[1] if transposed_assembly else self.spaces[0],
                         self.spaces[0] if transposed_assembly else self.spaces[1])
            A = M[0, 0]
        check_matrix_destination(A, shape)
        if transpose_copy is not None:
            check_matrix_destination(transpose_copy, shape[::-1])
        self.prepare()

        for item, IG, ws, kwargs in self.iterate(self.name):
            for rows, cols, local in self.local_matrices(item, IG, ws, kwargs):
                if transposed_assembly:
                    scatter_matrix(A, cols, rows, factor*local.T)
                    if transpose_copy is not None:
                        scatter_matrix(transpose_copy, rows, cols, -factor*local)
                else:
                    scatter_matrix(A, rows, cols, factor*local)
                    if transpose_copy is not None:
                        scatter_matrix(transpose_copy, cols, rows, -factor*local.T)

        logger.info(f"{self.name} assembled, with shape {list(shape)}.")
        if owned:
            return M.tocsr()
        return A

    def apply(self, b, fixed, *, fixed_argument: int=2, factor: float=1.0) -> TensorLike:
        """Add the form with one argument replaced by the function `fixed`
        to the vector `b` over the other argument.

        With `fixed_argument=2` this adds `A @ fixed` to `b`, with
        `fixed_argument=1` it adds `A.T @ fixed`.
        """
        if fixed_argument not in (1, 2):
            raise ConfigurationError(f"fixed_argument should be 1 or 2, got {fixed_argument}.")
        free = 2 - fixed_argument
        u = coefficient_array(fixed, self.spaces[fixed_argument - 1], name='fixed function')
        n = self.spaces[free].number_of_global_dofs()
        if b is None:
            b = np.zeros(n, dtype=np.float64)
        array = vector_destination(b, n)
        self.prepare()

        for item, IG, ws, kwargs in self.iterate(self.name):
            for rows, cols, local in self.local_matrices(item, IG, ws, kwargs):
                if fixed_argument == 2:
                    np.add.at(array, rows, factor*(local @ u[cols]))
                else:
                    np.add.at(array, cols, factor*(local.T @ u[rows]))

        logger.info(f"{self.name} applied to a fixed argument {fixed_argument}.")
        return b
