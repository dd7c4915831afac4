import pytest

from feasm.errors import ConfigurationError
from feasm.mesh.geometry import Triangle, Quadrilateral
from feasm.functionspace import H1P1, H1P2, H1CR, HdivRT0
from feasm.fem import (
    Identity, Gradient, Laplacian, Divergence, Jump, Average,
    ReconstructionIdentity, ReconstructionDivergence
)
from feasm.fem.operators import FaceOperator, face_coefficients, OPERATORS

from operators_data import *


class TestFunctionOperator:
    @pytest.mark.parametrize("op, dim, nc, expected", length_data)
    def test_length(self, op, dim, nc, expected):
        assert op.length(dim, nc) == expected

    def test_operators_are_tags(self):
        assert repr(Gradient) == "Gradient"
        with pytest.raises(TypeError):
            Identity()
        assert len(set(OPERATORS)) == len(OPERATORS)

    def test_polynomial_order(self):
        assert Identity.polynomial_order(H1P2(), Triangle) == 2
        assert Gradient.polynomial_order(H1P2(), Triangle) == 1
        assert Gradient.polynomial_order(H1P1(), Quadrilateral) == 1
        # negative orders are clamped by the callers
        assert Laplacian.polynomial_order(H1P1(), Triangle) == -1


class TestFaceOperator:
    def test_parameterization(self):
        J = Jump[Identity]
        assert J is Jump[Identity]
        assert J is not Average[Identity]
        assert repr(J) == "Jump[Identity]"
        assert issubclass(J, Jump) and issubclass(J, FaceOperator)
        assert J.inner is Identity
        assert Jump[Gradient].length(2, 1) == 2
        assert Jump[Gradient].polynomial_order(H1P2(), Triangle) == 1

    def test_coefficients(self):
        assert face_coefficients(Jump[Identity]) == (Identity, (1.0, -1.0))
        assert face_coefficients(Average[Gradient]) == (Gradient, (0.5, 0.5))
        assert face_coefficients(Identity) == (Identity, (1.0, ))
        with pytest.raises(ConfigurationError):
            face_coefficients(Jump)

    def test_invalid(self):
        with pytest.raises(ConfigurationError):
            Jump[Average[Identity]]
        with pytest.raises(ConfigurationError):
            Jump[3]
        with pytest.raises(TypeError):
            Jump[Identity][Gradient]


class TestReconstructionOperator:
    def test_parameterization(self):
        R = ReconstructionIdentity[HdivRT0]
        assert R is ReconstructionIdentity[HdivRT0()]
        assert repr(R) == "ReconstructionIdentity[HdivRT0]"
        assert R.target == HdivRT0()
        assert R.length(2, 2) == 2
        assert ReconstructionDivergence[HdivRT0].length(3, 3) == 1

    def test_polynomial_order_follows_target(self):
        assert ReconstructionIdentity[HdivRT0].polynomial_order(H1CR(2), Triangle) == 1
        assert ReconstructionDivergence[HdivRT0].polynomial_order(H1CR(2), Triangle) == 0
        assert Divergence.polynomial_order(H1CR(2), Quadrilateral) == 1

    def test_invalid(self):
        with pytest.raises(TypeError):
            ReconstructionIdentity[HdivRT0][HdivRT0]


if __name__ == "__main__":
    pytest.main(['./test_operators.py'])
