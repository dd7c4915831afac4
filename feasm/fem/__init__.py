
from .operators import (
    FunctionOperator, Identity, NormalFlux, TangentFlux, Trace, Deviator,
    Gradient, SymmetricGradient, TangentialGradient, Divergence, Curl,
    Rotation, Laplacian, Hessian, Jump, Average, ReconstructionIdentity,
    ReconstructionDivergence
)
from .transformer import L2GTransformer
from .evaluator import BasisEvaluator, make_basis_evaluator, register_evaluator
from .dofitems import DofItem, DofItemResolver
from .action import (
    Action, DoNotChangeAction, MultiplyScalarAction, MultiplyMatrixAction,
    FunctionAction, XFunctionAction, RegionWiseXFunctionAction
)
from .item_integrator import ItemIntegrator, L2ErrorIntegrator, l2_error
from .linear_form import LinearForm
from .bilinear_form import BilinearForm
from .trilinear_form import TrilinearForm
