import numpy as np
import pytest

from feasm.mesh import Mesh
from feasm.functionspace import FESpace, FEMatrix, H1P0, H1P1, H1CR
from feasm.fem import (
    BilinearForm, Identity, Gradient, Divergence, Jump, MultiplyScalarAction,
    MultiplyMatrixAction
)

from bilinear_form_data import *


def make_mesh(kind, etype):
    if kind == "box":
        return Mesh.from_box(nx=2, ny=3, etype=etype)
    return Mesh.from_box_3d(nx=2, ny=1, nz=1, etype=etype)


def mass(space, **kwargs):
    return BilinearForm([space, space], [Identity, Identity], **kwargs).assemble()


def stiffness(space, **kwargs):
    return BilinearForm([space, space], [Gradient, Gradient], **kwargs).assemble()


class TestBilinearFormInterface:
    @pytest.mark.parametrize("data", mass_data)
    def test_mass_matrix(self, data):
        mesh = make_mesh(*data['mesh'])
        space = FESpace(mesh, data['element'])
        M = mass(space, symmetric=True).toarray()
        N = mass(space).toarray()
        np.testing.assert_allclose(M, N, atol=1e-14)
        np.testing.assert_allclose(M, M.T, atol=1e-15)
        assert np.linalg.eigvalsh(M).min() > 0
        np.testing.assert_allclose(M.sum(), 1.0)

    @pytest.mark.parametrize("data", mass_data)
    def test_stiffness_matrix(self, data):
        mesh = make_mesh(*data['mesh'])
        space = FESpace(mesh, data['element'])
        A = stiffness(space, symmetric=True)
        np.testing.assert_allclose(A @ np.ones(A.shape[0]), 0.0, atol=1e-12)
        u = space.interpolate(lambda p: p[:, 0])
        np.testing.assert_allclose(u @ (A @ u), 1.0)

    @pytest.mark.parametrize("data", mesh_data)
    def test_small_meshes(self, data):
        mesh = Mesh(data['node'], data['cell'])
        space = FESpace(mesh, H1P1())
        M = mass(space)
        np.testing.assert_allclose(M.sum(), data['area'])
        A = stiffness(space, symmetric=True)
        u = space.interpolate(lambda p: 2*p[:, 1] + 1)
        np.testing.assert_allclose(u @ (A @ u), 4*data['area'])

    def test_matmul(self):
        mesh = Mesh.from_box(nx=3, ny=3)
        V, Q = FESpace(mesh, H1P1(2)), FESpace(mesh, H1P0())
        form = BilinearForm([V, Q], [Divergence, Identity])
        B = form.assemble()
        assert B.shape == (32, 18)
        u = np.random.rand(32)
        p = np.random.rand(18)
        np.testing.assert_allclose(form.apply(None, p), B @ p, atol=1e-13)
        np.testing.assert_allclose(form.apply(None, u, fixed_argument=1), B.T @ u, atol=1e-13)
        b = np.ones(32)
        form.apply(b, p, factor=2.0)
        np.testing.assert_allclose(b, 1 + 2*(B @ p), atol=1e-13)

    def test_transposed_assembly(self):
        mesh = Mesh.from_box(nx=2, ny=2)
        V, Q = FESpace(mesh, H1P1(2)), FESpace(mesh, H1P0())
        form = BilinearForm([V, Q], [Divergence, Identity])
        B = form.assemble().toarray()
        BT = form.assemble(transposed_assembly=True).toarray()
        np.testing.assert_allclose(BT, B.T)

        A = np.zeros(B.shape)
        C = np.zeros(B.T.shape)
        form.assemble(A, transpose_copy=C, factor=2.0)
        np.testing.assert_allclose(A, 2*B, atol=1e-14)
        np.testing.assert_allclose(C, -2*B.T, atol=1e-14)

    def test_block_destination(self):
        mesh = Mesh.from_box(nx=2, ny=2)
        V, Q = FESpace(mesh, H1P1(2)), FESpace(mesh, H1P0())
        S = FEMatrix([V, Q])
        BilinearForm([V, V], [Gradient, Gradient], symmetric=True).assemble(S[0, 0])
        B = BilinearForm([V, Q], [Divergence, Identity])
        B.assemble(S[0, 1], transpose_copy=S[1, 0])
        K = S.toarray()
        assert K.shape == (26, 26)
        np.testing.assert_allclose(K[:18, 18:], -K[18:, :18].T, atol=1e-14)
        np.testing.assert_allclose(K[18:, 18:], 0.0)

    def test_action(self):
        mesh = Mesh.from_box(nx=2, ny=2)
        space = FESpace(mesh, H1P1())
        M = mass(space).toarray()
        M2 = BilinearForm([space, space], [Identity, Identity], MultiplyScalarAction(2.0),
                          apply_action_to=2).assemble().toarray()
        np.testing.assert_allclose(M2, 2*M, atol=1e-14)
        K = BilinearForm([space, space], [Gradient, Gradient],
                         MultiplyMatrixAction(np.diag([1.0, 3.0]))).assemble()
        u = space.interpolate(lambda p: p[:, 1])
        np.testing.assert_allclose(u @ (K @ u), 3.0)


class TestBilinearFormOnFaces:
    def test_jump_of_continuous_function(self):
        mesh = Mesh.from_box(nx=2, ny=2)
        space = FESpace(mesh, H1P1())
        form = BilinearForm([space, space], [Jump[Identity], Jump[Identity]], symmetric=True,
                            regions=0, assembly_type='face')
        A = form.assemble()
        u = space.interpolate(lambda p: 1 + p[:, 0] - 3*p[:, 1])
        np.testing.assert_allclose(A @ u, 0.0, atol=1e-13)
        np.testing.assert_allclose(A.toarray(), form.assemble().toarray().T, atol=1e-14)

    @pytest.mark.parametrize("etype", ['triangle', 'quadrangle'])
    def test_jump_of_cellwise_constants(self, etype):
        mesh = Mesh.from_box(nx=2, ny=2, etype=etype)
        space = FESpace(mesh, H1P0())
        A = BilinearForm([space, space], [Jump[Identity], Jump[Identity]],
                         regions=0, assembly_type='face').assemble()
        u = np.arange(mesh.number_of_cells(), dtype=np.float64)**2
        f2c = mesh.face_to_cell()
        interior = ~mesh.boundary_face_flag()
        expected = np.sum(mesh.entity_measure('face')[interior]
                          * (u[f2c[interior, 0]] - u[f2c[interior, 1]])**2)
        np.testing.assert_allclose(u @ (A @ u), expected)

    def test_jump_on_mixed_mesh(self):
        data = mesh_data[2]
        mesh = Mesh(data['node'], data['cell'])
        space = FESpace(mesh, H1P1())
        A = BilinearForm([space, space], [Jump[Gradient], Jump[Gradient]],
                         regions=0, assembly_type='face').assemble()
        u = space.interpolate(lambda p: 1 + p[:, 0] - p[:, 1])
        np.testing.assert_allclose(A @ u, 0.0, atol=1e-13)
        # x*y is bilinear on the square but only linear interpolated on the triangles
        u = space.interpolate(lambda p: p[:, 0]*p[:, 1])
        assert u @ (A @ u) > 1e-3

    def test_nonconforming_penalty(self):
        mesh = Mesh.from_box(nx=2, ny=2)
        space = FESpace(mesh, H1CR())
        A = BilinearForm([space, space], [Jump[Identity], Jump[Identity]],
                         regions=0, assembly_type='face').assemble()
        u = space.interpolate(lambda p: p[:, 0] + p[:, 1])
        np.testing.assert_allclose(A @ u, 0.0, atol=1e-13)

    def test_boundary_mass(self):
        mesh = Mesh.from_box(nx=2, ny=2)
        space = FESpace(mesh, H1P1())
        M = BilinearForm([space, space], [Identity, Identity], symmetric=True,
                         assembly_type='bface').assemble()
        np.testing.assert_allclose(M.sum(), 4.0)
        np.testing.assert_allclose(M.toarray()[~space.is_boundary_dof()], 0.0)


if __name__ == "__main__":
    pytest.main(['./test_bilinear_form.py', '-k', 'test_mass_matrix'])
