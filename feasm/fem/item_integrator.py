
from typing import Callable, Optional

import numpy as np

from .. import logger
from ..typing import TensorLike, Regions
from ..errors import ConfigurationError, DimensionMismatchError
from .assembly_pattern import AssemblyPattern, coefficient_array
from .action import Action, DoNotChangeAction
from .operators import Identity


class ItemIntegrator(AssemblyPattern):
    """Integrate `action(op_1(u_1), ..., op_n(u_n))` over the assembly items.

    The functions are passed to `evaluate` as `FEVectorBlock`s; their spaces
    define the arguments. Face operators such as `Jump` combine both sides
    before the action is applied.
    """
    def __init__(self, operators, action: Optional[Action]=None, *,
                 regions: Regions=None, assembly_type: str='cell',
                 name: Optional[str]=None) -> None:
        super().__init__(None, operators, action, regions=regions,
                         assembly_type=assembly_type, name=name)
        self.user_action = action

    def _setup(self, fe):
        if len(fe) != len(self.operators):
            raise ConfigurationError(f"{self.name} has {len(self.operators)} arguments, "
                                     f"but {len(fe)} functions were given.")
        spaces = []
        for f in fe:
            if not hasattr(f, 'space'):
                raise ConfigurationError(f"{self.name} expects FEVectorBlocks, got {type(f).__name__}.")
            spaces.append(f.space)
        arrays = [coefficient_array(f) for f in fe]
        inputdim = sum(self.argument_length(k, s) for k, s in enumerate(spaces))
        if self.user_action is None:
            self.action = DoNotChangeAction(inputdim)
        else:
            self.action = self.user_action
        self.prepare(spaces)
        return arrays

    def evaluate_items(self, *fe, out: Optional[TensorLike]=None) -> TensorLike:
        """Integral over each item, shaped (nitems, resultdim). Items outside
        the selected regions stay zero (or keep the values of `out`)."""
        arrays = self._setup(fe)
        shape = (self.nitems, self.action.resultdim)
        if out is None:
            out = np.zeros(shape, dtype=np.float64)
        elif out.shape != shape:
            raise DimensionMismatchError(f"out should have shape {shape}, but got {out.shape}.")

        for item, IG, ws, kwargs in self.iterate(self.name):
            input = np.concatenate([
                self.function_values(k, item, IG, arrays[k])
                for k in range(len(self.operators))], axis=-1)
            result = self.action(input, **kwargs)
            out[item] += np.einsum('q, qr -> r', ws, result)
        return out

    def evaluate(self, *fe) -> TensorLike:
        """Sum of the item integrals, shaped (resultdim, )."""
        total = self.evaluate_items(*fe).sum(axis=0)
        logger.info(f"{self.name} evaluated: {total}")
        return total


class L2ErrorIntegrator(ItemIntegrator):
    """Integrates `|exact - op(u_h)|^2`.

    Parameters:
        exact (Callable): Function of the physical points shaped (NP, GD),
            returning (NP, ) or (NP, n) values.
        operator (Type[FunctionOperator], optional): Defaults to `Identity`.
        bonus_quadorder (int, optional): Extra quadrature order for the exact
            function. Defaults to 2.
    """
    def __init__(self, exact: Callable[[TensorLike], TensorLike], operator=Identity, *,
                 bonus_quadorder: int=2, regions: Regions=None,
                 assembly_type: str='cell') -> None:
        def squared_error(input, x):
            value = np.asarray(exact(x), dtype=np.float64).reshape(x.shape[0], -1)
            if value.shape[-1] != input.shape[-1]:
                raise DimensionMismatchError(
                    f"The exact function returns {value.shape[-1]} components, "
                    f"but the operator gives {input.shape[-1]}.")
            return np.sum((value - input)**2, axis=-1)

        action = Action(squared_error, 1, bonus_quadorder=bonus_quadorder,
                        dependencies='X', name='squared_error')
        super().__init__([operator], action, regions=regions,
                         assembly_type=assembly_type, name='L2ErrorIntegrator')

    def error(self, uh) -> float:
        return float(np.sqrt(self.evaluate(uh)[0]))


def l2_error(uh, exact: Callable[[TensorLike], TensorLike], operator=Identity, **kwargs) -> float:
    """L2 norm of `exact - op(u_h)`."""
    return L2ErrorIntegrator(exact, operator, **kwargs).error(uh)
