
import builtins
from typing import Tuple, Union, Literal, Callable, Sequence

from numpy import ndarray as TensorLike


### Types

Number = Union[builtins.int, builtins.float]
Scalar = Union[Number, TensorLike]
Index = Union[int, slice, Tuple[int, ...], TensorLike]
EntityName = Literal['cell', 'face', 'edge', 'node']
AssemblyType = Literal['cell', 'face', 'bface']
CoefLike = Union[Number, TensorLike, Callable[..., TensorLike]]
Regions = Union[int, Sequence[int], None]


### Constants

_S = slice(None)
Size = Tuple[int, ...]
