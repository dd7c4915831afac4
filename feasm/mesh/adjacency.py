
from typing import Sequence, Union

import numpy as np

from ..typing import TensorLike


class VariableAdjacency():
    """Compressed adjacency from sources to a variable number of targets.

    Targets of source `i` are `flat[offsets[i]:offsets[i+1]]`.
    """
    def __init__(self, flat: TensorLike, offsets: TensorLike) -> None:
        self.flat = np.asarray(flat, dtype=np.int64)
        self.offsets = np.asarray(offsets, dtype=np.int64)
        if self.offsets.ndim != 1 or self.offsets[-1] != self.flat.shape[0]:
            raise ValueError("offsets do not match the flat target array.")

    @classmethod
    def from_array(cls, array: TensorLike):
        array = np.asarray(array, dtype=np.int64)
        NS, NT = array.shape
        offsets = np.arange(0, NS*NT + 1, NT, dtype=np.int64)
        return cls(array.reshape(-1), offsets)

    @classmethod
    def from_lists(cls, lists: Sequence[Sequence[int]]):
        lengths = np.array([len(l) for l in lists], dtype=np.int64)
        offsets = np.zeros(len(lists) + 1, dtype=np.int64)
        np.cumsum(lengths, out=offsets[1:])
        if offsets[-1] == 0:
            return cls(np.zeros(0, dtype=np.int64), offsets)
        flat = np.concatenate([np.asarray(l, dtype=np.int64) for l in lists])
        return cls(flat, offsets)

    @classmethod
    def from_data(cls, data: Union[TensorLike, Sequence[Sequence[int]], "VariableAdjacency"]):
        if isinstance(data, VariableAdjacency):
            return data
        if isinstance(data, np.ndarray) and data.ndim == 2:
            return cls.from_array(data)
        return cls.from_lists(data)

    def __len__(self) -> int:
        return self.offsets.shape[0] - 1

    def __getitem__(self, i: int) -> TensorLike:
        return self.flat[self.offsets[i]:self.offsets[i+1]]

    def __iter__(self):
        for i in range(len(self)):
            yield self[i]

    def __repr__(self) -> str:
        return f"VariableAdjacency(sources={len(self)}, targets={self.flat.shape[0]})"

    def number_of_sources(self) -> int:
        return len(self)

    def number_of_targets(self, i=None):
        if i is None:
            return np.diff(self.offsets)
        return int(self.offsets[i+1] - self.offsets[i])

    def max_number_of_targets(self) -> int:
        if len(self) == 0:
            return 0
        return int(np.max(np.diff(self.offsets)))

    def is_uniform(self) -> bool:
        lengths = np.diff(self.offsets)
        return lengths.shape[0] == 0 or bool(np.all(lengths == lengths[0]))

    def dense(self, index=None) -> TensorLike:
        """Return the targets of the selected sources as a rectangular array.
        All selected sources must have the same number of targets."""
        if index is None:
            index = np.arange(len(self))
        index = np.asarray(index, dtype=np.int64)
        if index.shape[0] == 0:
            return np.zeros((0, 0), dtype=np.int64)
        lengths = self.offsets[index + 1] - self.offsets[index]
        if np.any(lengths != lengths[0]):
            raise ValueError("The selected sources have different numbers of targets.")
        cols = np.arange(lengths[0])
        return self.flat[self.offsets[index][:, None] + cols[None, :]]

    def tolist(self):
        return [self[i].tolist() for i in range(len(self))]
