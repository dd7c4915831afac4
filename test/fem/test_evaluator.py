import numpy as np
import pytest

from feasm.errors import ConfigurationError
from feasm.mesh import Mesh, Edge, Triangle, Quadrilateral
from feasm.quadrature import quadrature_rule
from feasm.functionspace import FESpace, H1P1, H1P2, HdivRT0
from feasm.fem import (
    L2GTransformer, DofItemResolver, LinearForm, Identity, Gradient, Laplacian,
    Jump, make_basis_evaluator, register_evaluator
)
from feasm.fem.dofitems import face_points_in_cell, local_face_permutation
from feasm.fem.evaluator import H1ValueEvaluator


class Twice(Identity):
    pass


@register_evaluator('H1', Twice)
class TwiceEvaluator(H1ValueEvaluator):
    def compute(self, item):
        super().compute(item)
        self.cvals *= 2


class TestL2GTransformer:
    def test_affine_cell(self):
        mesh = Mesh.from_box(nx=1, ny=1)
        T = L2GTransformer(mesh, Triangle)
        T.update(0)
        np.testing.assert_allclose(T.ref2phys(Triangle.refnodes), mesh.node[mesh.cell[0]])
        xref = np.array([[0.2, 0.3], [0.5, 0.1]])
        np.testing.assert_allclose(T.piola_factor(xref), 2*mesh.entity_measure('cell', 0))
        J = T.jacobian(xref)
        G = T.jacobian_inverse_transpose(xref)
        np.testing.assert_allclose(np.swapaxes(G, -1, -2) @ J, np.broadcast_to(np.eye(2), (2, 2, 2)),
                                   atol=1e-14)

    def test_face(self):
        mesh = Mesh.from_box(nx=2, ny=2)
        T = L2GTransformer(mesh, Edge, 'face')
        xref = np.array([[0.25], [0.75]])
        for f in range(mesh.number_of_faces()):
            T.update(f)
            np.testing.assert_allclose(T.piola_factor(xref), mesh.entity_measure('face', f))

    def test_bilinear_cell(self):
        mesh = Mesh.from_box(nx=2, ny=2, etype='quadrangle')
        T = L2GTransformer(mesh, Quadrilateral)
        T.update(3)
        xref = np.array([[0.1, 0.9], [0.5, 0.5]])
        np.testing.assert_allclose(T.piola_factor(xref), 0.25)


class TestBasisEvaluator:
    def test_cursor(self):
        mesh = Mesh.from_box(nx=2, ny=2)
        space = FESpace(mesh, H1P1())
        xref = np.array([[1/3, 1/3], [0.2, 0.2]])
        ev = make_basis_evaluator(space, Triangle, Gradient, xref)
        assert ev.cvals.shape == (3, 2, 2)
        ev.update(4)
        assert ev.citem == 4
        np.testing.assert_allclose(ev.cvals.sum(axis=0), 0.0, atol=1e-13)
        x = mesh.node[:, 0]
        np.testing.assert_allclose(ev.evaluate(x[space.cell_to_dof()[4]]), [[1.0, 0.0]]*2, atol=1e-13)
        np.testing.assert_allclose(ev.value_at(1, 0), ev.cvals[1, 0])

        other = ev.clone()
        assert other.citem == -1
        before = ev.cvals.copy()
        other.update(5)
        np.testing.assert_allclose(ev.cvals, before)

    def test_custom_operator(self):
        space = FESpace(Mesh.from_box(nx=2, ny=2), H1P2())
        b1 = LinearForm(space, Identity).assemble()
        b2 = LinearForm(space, Twice).assemble()
        np.testing.assert_allclose(b2, 2*b1)

    def test_missing_combination(self):
        space = FESpace(Mesh.from_box(nx=1, ny=1), HdivRT0())
        with pytest.raises(ConfigurationError):
            make_basis_evaluator(space, Triangle, Laplacian, np.array([[1/3, 1/3]]))


class TestDofItems:
    def test_jump_sides(self):
        mesh = Mesh.from_box(nx=2, ny=2)
        space = FESpace(mesh, H1P1())
        resolver = DofItemResolver(space, Jump[Identity], 'face')
        assert resolver.route == 'cell'
        f2c = mesh.face_to_cell()
        for f in range(mesh.number_of_faces()):
            left, right = resolver.resolve(f)
            assert left.item == f2c[f, 0]
            assert left.coefficient == 1.0
            np.testing.assert_array_equal(resolver.dofs(left), space.cell_to_dof()[f2c[f, 0]])
            if f2c[f, 0] == f2c[f, 1]:
                assert right is None
            else:
                assert right.item == f2c[f, 1]
                assert right.localface == f2c[f, 3]
                assert right.coefficient == -1.0

    def test_trace_route(self):
        mesh = Mesh.from_box(nx=2, ny=2)
        space = FESpace(mesh, H1P2())
        resolver = DofItemResolver(space, Identity, 'bface')
        assert resolver.route == 'face'
        index = mesh.boundary_face_index()
        for i in range(index.shape[0]):
            item, other = resolver.resolve(i)
            assert other is None
            assert item.geometry is Edge
            np.testing.assert_array_equal(resolver.dofs(item), space.bdface_to_dof()[i])

    def test_face_points_in_cell(self):
        mesh = Mesh.from_box(nx=2, ny=2)
        bcs, _ = quadrature_rule(Edge, 4).get_quadrature_points_and_weights()
        TF = L2GTransformer(mesh, Edge, 'face')
        TC = L2GTransformer(mesh, Triangle)
        f2c = mesh.face_to_cell()
        for f in range(mesh.number_of_faces()):
            TF.update(f)
            for side in (0, 1):
                cell, lf = f2c[f, side], f2c[f, side + 2]
                perm = local_face_permutation(mesh, cell, lf, f)
                TC.update(cell)
                xc = face_points_in_cell(Triangle, lf, perm, bcs)
                np.testing.assert_allclose(TC.ref2phys(xc), TF.ref2phys(bcs), atol=1e-14)

    def test_boundary_dofs(self):
        space = FESpace(Mesh.from_box(nx=2, ny=2), H1P2())
        bd = space.bdface_to_dof()
        assert len(bd) == 8
        assert bd.dense().shape == (8, 3)
        assert space.is_boundary_dof().sum() == 16


if __name__ == "__main__":
    pytest.main(['./test_evaluator.py'])
