"""
Actions.

An action is the numerical kernel applied to the operator evaluations before
they are integrated: material coefficients, right-hand side data, nonlinear
terms or the comparison with exact solutions.

The kernel is called as `kernel(input, *extras)`, where `input` has shape
`(..., NQ, inputdim)` and the extras follow the order of the declared
dependencies:

    'X': physical quadrature points, shaped (NQ, GD);
    'x': reference quadrature points of the assembly item, shaped (NQ, TD);
    'I': the item number;
    'R': the region of the item.

Kernels decorated with `@cartesian` depend on 'X', kernels decorated with
`@reference` on 'x'.
"""
from typing import Callable, Dict, Optional

import numpy as np

from ..typing import TensorLike
from ..errors import ConfigurationError

_DEPENDENCIES = 'XxIR'


class Action():
    """Kernel plus the declared result dimension.

    Parameters:
        kernel (Callable): The numerical kernel.
        resultdim (int): Length of the last axis of the kernel result.
        bonus_quadorder (int, optional): Added to the quadrature order of every
            assembly using this action. Defaults to 0.
        dependencies (str, optional): Extra kernel arguments, see the module
            docstring. Defaults to ''.
        name (str, optional): Name used in messages.
    """
    def __init__(self, kernel: Callable, resultdim: int, *, bonus_quadorder: int=0,
                 dependencies: str='', name: Optional[str]=None) -> None:
        if resultdim < 1:
            raise ConfigurationError(f"resultdim should be positive, but got {resultdim}.")
        if any(d not in _DEPENDENCIES for d in dependencies):
            raise ConfigurationError(f"Unknown dependencies '{dependencies}', "
                                     f"valid letters are '{_DEPENDENCIES}'.")
        coordtype = getattr(kernel, 'coordtype', None)
        if coordtype == 'cartesian' and 'X' not in dependencies:
            dependencies = 'X' + dependencies
        elif coordtype == 'reference' and 'x' not in dependencies:
            dependencies = 'x' + dependencies
        self.kernel = kernel
        self.resultdim = int(resultdim)
        self.bonus_quadorder = int(bonus_quadorder)
        self.dependencies = ''.join(d for d in _DEPENDENCIES if d in dependencies)
        self.name = name if name is not None else getattr(kernel, '__name__', 'action')

    def __repr__(self) -> str:
        return (f"{self.__class__.__name__}({self.name}, resultdim={self.resultdim}, "
                f"bonus_quadorder={self.bonus_quadorder})")

    def needs(self, dependency: str) -> bool:
        return dependency in self.dependencies

    def __call__(self, input: TensorLike, *, points: Optional[TensorLike]=None,
                 refpoints: Optional[TensorLike]=None, item: Optional[int]=None,
                 region: Optional[int]=None) -> TensorLike:
        extras = {'X': points, 'x': refpoints, 'I': item, 'R': region}
        args = [extras[d] for d in self.dependencies]
        result = np.asarray(self.kernel(input, *args), dtype=np.float64)
        shape = input.shape[:-1]
        if (self.resultdim == 1 and result.ndim <= len(shape)
                and (result.ndim == 0 or result.shape[-1] == shape[-1])):
            result = result[..., None]
        try:
            return np.broadcast_to(result, shape + (self.resultdim, ))
        except ValueError:
            raise ConfigurationError(
                f"{self} returned shape {result.shape}, which does not fit "
                f"{shape + (self.resultdim, )}.") from None


def DoNotChangeAction(n: int) -> Action:
    """Pass the input through unchanged."""
    def kernel(input):
        return input
    return Action(kernel, n, name='do_not_change')


def MultiplyScalarAction(value: float, n: int=1) -> Action:
    def kernel(input):
        return value*input
    return Action(kernel, n, name=f'multiply_scalar({value})')


def MultiplyMatrixAction(matrix: TensorLike) -> Action:
    """Multiply the input vector by `matrix` shaped (resultdim, inputdim)."""
    matrix = np.asarray(matrix, dtype=np.float64)

    def kernel(input):
        return np.einsum('...j, ij -> ...i', input, matrix)
    return Action(kernel, matrix.shape[0], name='multiply_matrix')


def FunctionAction(f: Callable, resultdim: int=1, *, bonus_quadorder: int=0,
                   name: Optional[str]=None) -> Action:
    """A kernel of the input only."""
    return Action(f, resultdim, bonus_quadorder=bonus_quadorder,
                  name=name if name is not None else getattr(f, '__name__', 'function'))


def XFunctionAction(f: Callable, resultdim: int=1, *, bonus_quadorder: int=0,
                    name: Optional[str]=None) -> Action:
    """A kernel `f(input, x)` of the input and the physical points."""
    return Action(f, resultdim, bonus_quadorder=bonus_quadorder, dependencies='X',
                  name=name if name is not None else getattr(f, '__name__', 'xfunction'))


def RegionWiseXFunctionAction(fs: Dict[int, Callable], resultdim: int=1, *,
                              bonus_quadorder: int=0) -> Action:
    """One kernel `f(input, x)` per region tag."""
    fs = dict(fs)

    def kernel(input, x, region):
        if region not in fs:
            raise ConfigurationError(f"No function given for region {region}, "
                                     f"only for {sorted(fs)}.")
        return fs[region](input, x)
    return Action(kernel, resultdim, bonus_quadorder=bonus_quadorder,
                  dependencies='XR', name='regionwise')
