
from typing import List, Optional, Sequence

import numpy as np

from ..typing import TensorLike
from ..errors import DimensionMismatchError


class FEVectorBlock():
    """View on the coefficients of one space inside an `FEVector`.

    The block shares memory with the parent vector, so writes through
    `array` or item assignment change the parent entries.
    """
    def __init__(self, parent: "FEVector", space, offset: int, name: Optional[str]=None) -> None:
        self.parent = parent
        self.space = space
        self.offset = offset
        self.name = name if name is not None else f"block {len(parent.blocks)}"
        self.last_index = offset + space.number_of_global_dofs()

    @property
    def array(self) -> TensorLike:
        return self.parent.entries[self.offset:self.last_index]

    def __len__(self) -> int:
        return self.last_index - self.offset

    def __getitem__(self, index):
        return self.array[index]

    def __setitem__(self, index, value):
        self.array[index] = value

    def __array__(self, dtype=None, copy=None):
        if dtype is None:
            return self.array
        return self.array.astype(dtype)

    def __repr__(self) -> str:
        return f"FEVectorBlock({self.name}, {self.space}, offset={self.offset})"

    def fill(self, value):
        self.array[:] = value

    def interpolate(self, f):
        """Overwrite the block with the interpolant of `f`."""
        self.space.interpolate(f, out=self.array)
        return self


class FEVector():
    """Coefficient vector over a tuple of FE spaces, one block per space.

    Parameters:
        spaces (FESpace | Sequence[FESpace]): Spaces of the blocks.
        entries (TensorLike, optional): Initial entries; copied into a new
            float array of the total length.
        names (Sequence[str], optional): Block names used in messages.
    """
    def __init__(self, spaces, entries: Optional[TensorLike]=None,
                 names: Optional[Sequence[str]]=None) -> None:
        if not isinstance(spaces, (list, tuple)):
            spaces = [spaces]
        self.spaces = list(spaces)
        total = sum(space.number_of_global_dofs() for space in self.spaces)
        if entries is None:
            self.entries = np.zeros(total, dtype=np.float64)
        else:
            entries = np.asarray(entries, dtype=np.float64)
            if entries.shape != (total, ):
                raise DimensionMismatchError(
                    f"FEVector needs {total} entries, but got shape {entries.shape}.")
            self.entries = entries.copy()
        self.blocks: List[FEVectorBlock] = []
        offset = 0
        for i, space in enumerate(self.spaces):
            name = names[i] if names is not None else None
            block = FEVectorBlock(self, space, offset, name)
            self.blocks.append(block)
            offset = block.last_index

    def __len__(self) -> int:
        return len(self.blocks)

    def __getitem__(self, i: int) -> FEVectorBlock:
        return self.blocks[i]

    def __iter__(self):
        return iter(self.blocks)

    def __repr__(self) -> str:
        return f"FEVector(blocks={len(self.blocks)}, length={self.entries.shape[0]})"

    def number_of_entries(self) -> int:
        return self.entries.shape[0]

    def fill(self, value):
        self.entries[:] = value
