"""
Function operators.

Operators are tags: classes carrying static metadata that evaluators and
assembly patterns dispatch on. They are never instantiated.

Every operator declares the derivative order it needs from the reference
basis, the length of its result as a function of the spatial dimension and
the component count, and the shift of the quadrature order caused by the
differentiation.
"""
from functools import lru_cache
from math import ceil
from typing import Tuple, Type

from ..errors import ConfigurationError


class _OperatorMeta(type):
    def __repr__(cls):
        return cls.__name__


class FunctionOperator(metaclass=_OperatorMeta):
    derivative_order: int = 0
    quadorder_shift: int = 0

    def __new__(cls, *args, **kwargs):
        raise TypeError(f"{cls.__name__} is an operator tag and cannot be instantiated.")

    @classmethod
    def length(cls, dim: int, nc: int) -> int:
        raise NotImplementedError

    @classmethod
    def polynomial_order(cls, element, geometry) -> int:
        """Polynomial order of the operator applied to the basis of `element`
        on `geometry`. May be negative; callers clamp the sum."""
        return element.polynomial_order(geometry) + cls.quadorder_shift


class Identity(FunctionOperator):
    @classmethod
    def length(cls, dim, nc):
        return nc


class NormalFlux(FunctionOperator):
    @classmethod
    def length(cls, dim, nc):
        return ceil(nc/dim)


class TangentFlux(FunctionOperator):
    """u . t with t = (-n_y, n_x) in 2D, n x u in 3D."""
    @classmethod
    def length(cls, dim, nc):
        return 1 if dim == 2 else 3


class Trace(FunctionOperator):
    @classmethod
    def length(cls, dim, nc):
        return 1


class Deviator(FunctionOperator):
    @classmethod
    def length(cls, dim, nc):
        return nc


class Gradient(FunctionOperator):
    """Component-major: entry c*dim + j is du_c/dx_j."""
    derivative_order = 1
    quadorder_shift = -1

    @classmethod
    def length(cls, dim, nc):
        return dim*nc


class SymmetricGradient(FunctionOperator):
    """Voigt packing (xx, yy, xy) in 2D and (xx, yy, zz, xy, xz, yz) in 3D;
    off-diagonal entries hold du_i/dx_j + du_j/dx_i."""
    derivative_order = 1
    quadorder_shift = -1

    @classmethod
    def length(cls, dim, nc):
        return (1, 3, 6)[dim - 1]*ceil(nc/dim)


class TangentialGradient(FunctionOperator):
    derivative_order = 1
    quadorder_shift = -1

    @classmethod
    def length(cls, dim, nc):
        return 1


class Divergence(FunctionOperator):
    derivative_order = 1
    quadorder_shift = -1

    @classmethod
    def length(cls, dim, nc):
        return ceil(nc/dim)


class Curl(FunctionOperator):
    """(du/dy, -du/dx) for scalars in 2D, the usual curl of vectors in 3D."""
    derivative_order = 1
    quadorder_shift = -1

    @classmethod
    def length(cls, dim, nc):
        return dim*nc if dim == 2 else 3


class Rotation(FunctionOperator):
    """du_y/dx - du_x/dy of 2D vectors."""
    derivative_order = 1
    quadorder_shift = -1

    @classmethod
    def length(cls, dim, nc):
        return 1


class Laplacian(FunctionOperator):
    derivative_order = 2
    quadorder_shift = -2

    @classmethod
    def length(cls, dim, nc):
        return nc


class Hessian(FunctionOperator):
    derivative_order = 2
    quadorder_shift = -2

    @classmethod
    def length(cls, dim, nc):
        return dim*dim*nc


OPERATORS = (
    Identity, NormalFlux, TangentFlux, Trace, Deviator, Gradient,
    SymmetricGradient, TangentialGradient, Divergence, Curl, Rotation,
    Laplacian, Hessian
)


### Wrapped operators

class FaceOperator(FunctionOperator):
    """Combination of the values of an operator on the two cells adjacent to
    a face. `Jump[Identity]` gives `u_left - u_right`."""
    inner: Type[FunctionOperator] = None
    coefficients: Tuple[float, float] = (1.0, 1.0)

    def __class_getitem__(cls, operator):
        if cls.inner is not None:
            raise TypeError(f"{cls.__name__} is already parameterized.")
        if not (isinstance(operator, type) and issubclass(operator, FunctionOperator)):
            raise ConfigurationError(f"{cls.__name__}[...] expects an operator, got {operator!r}.")
        if issubclass(operator, FaceOperator):
            raise ConfigurationError(f"Cannot nest face operators: {cls.__name__}[{operator}].")
        return _face_operator(cls, operator)

    @classmethod
    def length(cls, dim, nc):
        return cls.inner.length(dim, nc)

    @classmethod
    def polynomial_order(cls, element, geometry):
        return cls.inner.polynomial_order(element, geometry)


class Jump(FaceOperator):
    coefficients = (1.0, -1.0)


class Average(FaceOperator):
    coefficients = (0.5, 0.5)


@lru_cache(maxsize=None)
def _face_operator(wrapper, operator):
    return _OperatorMeta(f"{wrapper.__name__}[{operator.__name__}]", (wrapper, ), {
        'inner': operator,
        'derivative_order': operator.derivative_order,
        'quadorder_shift': operator.quadorder_shift})


class ReconstructionOperator(FunctionOperator):
    """Operator applied to the reconstruction of a function into another
    element family, e.g. `ReconstructionIdentity[HdivRT0]`."""
    target = None
    applied: Type[FunctionOperator] = Identity

    def __class_getitem__(cls, element):
        if cls.target is not None:
            raise TypeError(f"{cls.__name__} is already parameterized.")
        if isinstance(element, type):
            element = element()
        return _reconstruction_operator(cls, element)

    @classmethod
    def length(cls, dim, nc):
        return cls.applied.length(dim, cls.target.number_of_components(dim))

    @classmethod
    def polynomial_order(cls, element, geometry):
        return cls.target.polynomial_order(geometry) + cls.quadorder_shift


class ReconstructionIdentity(ReconstructionOperator):
    applied = Identity


class ReconstructionDivergence(ReconstructionOperator):
    applied = Divergence
    derivative_order = 1
    quadorder_shift = -1


@lru_cache(maxsize=None)
def _reconstruction_operator(wrapper, element):
    return _OperatorMeta(f"{wrapper.__name__}[{element!r}]", (wrapper, ), {
        'target': element,
        'derivative_order': wrapper.derivative_order,
        'quadorder_shift': wrapper.quadorder_shift})


def face_coefficients(operator) -> Tuple[Type[FunctionOperator], Tuple[float, ...]]:
    """Split a face operator into its inner operator and the side
    coefficients. Plain operators use one side with coefficient 1."""
    if issubclass(operator, FaceOperator):
        if operator.inner is None:
            raise ConfigurationError(f"{operator.__name__} needs an operator parameter.")
        return operator.inner, operator.coefficients
    return operator, (1.0, )
