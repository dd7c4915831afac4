import numpy as np
import pytest

from feasm.errors import ConfigurationError, DegenerateGeometryError, DimensionMismatchError
from feasm.mesh import Mesh
from feasm.functionspace import FESpace, H1P1, H1P2, HdivRT0
from feasm.fem import (
    LinearForm, BilinearForm, ItemIntegrator, Identity, Gradient, NormalFlux,
    Rotation, Hessian, Jump, FunctionAction, MultiplyScalarAction
)


@pytest.fixture
def mesh():
    return Mesh.from_box(nx=2, ny=2)


class TestConfigurationErrors:
    def test_unknown_region(self, mesh):
        space = FESpace(mesh, H1P1())
        with pytest.raises(ConfigurationError):
            LinearForm(space, Identity, regions=5).assemble()
        with pytest.raises(ConfigurationError):
            LinearForm(space, Identity, regions=[0], assembly_type='bface').assemble()

    def test_unknown_assembly_type(self, mesh):
        space = FESpace(mesh, H1P1())
        with pytest.raises(ConfigurationError):
            LinearForm(space, Identity, assembly_type='edge')

    def test_face_operator_on_cells(self, mesh):
        space = FESpace(mesh, H1P1())
        with pytest.raises(ConfigurationError):
            LinearForm(space, Jump[Identity]).assemble()

    @pytest.mark.parametrize("etype, element, operator", [
        ("quadrangle", H1P2(), Hessian),
        ("triangle", HdivRT0(), Hessian),
        ("triangle", H1P1(), Rotation),
        ("triangle", H1P1(2), NormalFlux),
    ])
    def test_unsupported_operator(self, etype, element, operator):
        space = FESpace(Mesh.from_box(nx=2, ny=2, etype=etype), element)
        with pytest.raises(ConfigurationError):
            LinearForm(space, operator, FunctionAction(lambda u: u.sum(axis=-1), 1)).assemble()

    def test_normal_flux_of_scalar(self, mesh):
        space = FESpace(mesh, H1P1())
        with pytest.raises(ConfigurationError):
            LinearForm(space, NormalFlux, assembly_type='bface').assemble()

    def test_spaces_on_different_meshes(self, mesh):
        V = FESpace(mesh, H1P1())
        W = FESpace(Mesh.from_box(nx=2, ny=2), H1P1())
        with pytest.raises(ConfigurationError):
            BilinearForm([V, W], [Identity, Identity]).assemble()

    def test_form_arguments(self, mesh):
        V = FESpace(mesh, H1P1())
        with pytest.raises(ConfigurationError):
            BilinearForm([V], [Identity])
        with pytest.raises(ConfigurationError):
            BilinearForm([V, V], [Identity, Gradient], symmetric=True)
        with pytest.raises(ConfigurationError):
            BilinearForm([V, V], [Gradient, Gradient], MultiplyScalarAction(2.0))
        with pytest.raises(ConfigurationError):
            BilinearForm([V, V], [Identity, Identity], apply_action_to=3)
        with pytest.raises(ConfigurationError):
            BilinearForm([V, V], [Identity, Identity]).apply(None, np.zeros(9), fixed_argument=0)

    def test_kernel_result_shape(self, mesh):
        space = FESpace(mesh, H1P1())
        action = FunctionAction(lambda u: np.zeros((5, 7)), 1)
        with pytest.raises(ConfigurationError):
            LinearForm(space, Identity, action).assemble()


class TestGeometryErrors:
    def test_clockwise_cell(self):
        mesh = Mesh(np.array([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0]]), np.array([[0, 2, 1]]))
        space = FESpace(mesh, H1P1())
        with pytest.raises(DegenerateGeometryError) as excinfo:
            BilinearForm([space, space], [Gradient, Gradient]).assemble()
        assert excinfo.value.item == 0
        assert excinfo.value.det < 0


class TestDimensionErrors:
    def test_wrong_lengths(self, mesh):
        space = FESpace(mesh, H1P1())
        form = BilinearForm([space, space], [Identity, Identity])
        with pytest.raises(DimensionMismatchError):
            form.apply(None, np.zeros(4))
        with pytest.raises(DimensionMismatchError):
            form.apply(np.zeros(4), np.zeros(9))
        with pytest.raises(DimensionMismatchError):
            form.assemble(np.zeros((9, 8)))
        with pytest.raises(DimensionMismatchError):
            LinearForm(space, Identity).assemble(np.zeros(10))
        uh = space.function()
        with pytest.raises(DimensionMismatchError):
            ItemIntegrator([Identity]).evaluate_items(uh, out=np.zeros((8, 2)))

    def test_matrix_destination_without_shape(self, mesh):
        space = FESpace(mesh, H1P1())
        form = BilinearForm([space, space], [Identity, Identity])
        with pytest.raises(DimensionMismatchError):
            form.assemble([[0.0]*9]*9)
        with pytest.raises(DimensionMismatchError):
            form.assemble(np.zeros((9, 9)), transpose_copy=[[0.0]*9]*9)


if __name__ == "__main__":
    pytest.main(['./test_assembly_errors.py'])
