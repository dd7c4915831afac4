
from typing import List

import numpy as np
from scipy.sparse import csr_matrix, coo_matrix

from ..typing import TensorLike


class FEMatrixBlock():
    """Block of an `FEMatrix` coupling one row space with one column space.

    Values are added as (row, col, value) triplets in block-local indices and
    shifted by the block offsets.
    """
    def __init__(self, parent: "FEMatrix", row_space, col_space,
                 row_offset: int, col_offset: int) -> None:
        self.parent = parent
        self.row_space = row_space
        self.col_space = col_space
        self.row_offset = row_offset
        self.col_offset = col_offset
        self.shape = (row_space.number_of_global_dofs(), col_space.number_of_global_dofs())

    def __repr__(self) -> str:
        return (f"FEMatrixBlock({self.row_space} x {self.col_space}, "
                f"offset=({self.row_offset}, {self.col_offset}))")

    def add(self, rows: TensorLike, cols: TensorLike, values: TensorLike):
        """Accumulate `values[i, j]` at `(rows[i], cols[j])`."""
        rows = np.asarray(rows, dtype=np.int64)
        cols = np.asarray(cols, dtype=np.int64)
        values = np.asarray(values, dtype=np.float64)
        I = np.broadcast_to(rows[:, None], values.shape)
        J = np.broadcast_to(cols[None, :], values.shape)
        self.parent._append(I.ravel() + self.row_offset, J.ravel() + self.col_offset,
                            values.ravel())

    def tocsr(self) -> csr_matrix:
        """This block alone as a CSR matrix."""
        A = self.parent.tocsr()
        r0, c0 = self.row_offset, self.col_offset
        return A[r0:r0 + self.shape[0], c0:c0 + self.shape[1]].tocsr()


class FEMatrix():
    """Sparse matrix over tuples of row and column spaces.

    Assembly only appends triplets; duplicates are summed when the matrix is
    converted with `tocsr()`.
    """
    def __init__(self, row_spaces, col_spaces=None) -> None:
        if not isinstance(row_spaces, (list, tuple)):
            row_spaces = [row_spaces]
        if col_spaces is None:
            col_spaces = row_spaces
        elif not isinstance(col_spaces, (list, tuple)):
            col_spaces = [col_spaces]
        self.row_spaces = list(row_spaces)
        self.col_spaces = list(col_spaces)
        roffsets = np.cumsum([0] + [s.number_of_global_dofs() for s in self.row_spaces])
        coffsets = np.cumsum([0] + [s.number_of_global_dofs() for s in self.col_spaces])
        self.shape = (int(roffsets[-1]), int(coffsets[-1]))
        self.blocks: List[List[FEMatrixBlock]] = [
            [FEMatrixBlock(self, rs, cs, int(roffsets[i]), int(coffsets[j]))
             for j, cs in enumerate(self.col_spaces)]
            for i, rs in enumerate(self.row_spaces)]
        self._I: List[TensorLike] = []
        self._J: List[TensorLike] = []
        self._V: List[TensorLike] = []

    def __getitem__(self, index) -> FEMatrixBlock:
        i, j = index
        return self.blocks[i][j]

    def __repr__(self) -> str:
        return (f"FEMatrix({len(self.row_spaces)}x{len(self.col_spaces)} blocks, "
                f"shape={self.shape})")

    def _append(self, I, J, V):
        self._I.append(I)
        self._J.append(J)
        self._V.append(V)

    def number_of_triplets(self) -> int:
        return sum(v.shape[0] for v in self._V)

    def tocsr(self) -> csr_matrix:
        if len(self._V) == 0:
            return csr_matrix(self.shape, dtype=np.float64)
        I = np.concatenate(self._I)
        J = np.concatenate(self._J)
        V = np.concatenate(self._V)
        return coo_matrix((V, (I, J)), shape=self.shape).tocsr()

    def toarray(self) -> TensorLike:
        return self.tocsr().toarray()

    def clear(self):
        self._I, self._J, self._V = [], [], []

