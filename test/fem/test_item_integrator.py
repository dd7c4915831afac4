import numpy as np
import pytest

from feasm.errors import ConfigurationError, DimensionMismatchError
from feasm.mesh import Mesh
from feasm.functionspace import FESpace, H1P1, H1P2, HdivRT0, HdivRT1, HdivBDM2
from feasm.fem import (
    ItemIntegrator, Identity, NormalFlux, TangentFlux, TangentialGradient,
    Divergence, Gradient, Jump, Average, FunctionAction, l2_error
)

from evaluator_data import *


def make_mesh(etype, n=2):
    if etype in ('triangle', 'quadrangle'):
        return Mesh.from_box(nx=n, ny=n, etype=etype)
    return Mesh.from_box_3d(nx=1, ny=1, nz=1, etype=etype)


def interpolant(mesh, element, f):
    space = FESpace(mesh, element)
    return space.function(space.interpolate(f), name='u')


class TestCellOperators:
    @pytest.mark.parametrize("data", cell_operator_data)
    def test_integral(self, data):
        mesh = make_mesh(data['mesh'])
        uh = interpolant(mesh, data['element'], data['f'])
        value = ItemIntegrator([data['operator']]).evaluate(uh)
        np.testing.assert_allclose(value, data['value'], atol=1e-12)

    @pytest.mark.parametrize("data", cell_operator_data[:3])
    def test_items_are_cellwise(self, data):
        mesh = make_mesh(data['mesh'])
        uh = interpolant(mesh, data['element'], data['f'])
        items = ItemIntegrator([data['operator']]).evaluate_items(uh)
        cm = mesh.entity_measure('cell')
        np.testing.assert_allclose(items, cm[:, None]*np.array(data['value'])[None, :], atol=1e-13)

    def test_two_arguments(self):
        mesh = make_mesh('triangle')
        uh = interpolant(mesh, H1P1(), linear)
        vh = interpolant(mesh, H1P1(), lambda p: p[:, 1])
        action = FunctionAction(lambda i: i[..., 0]*i[..., 1] + i[..., 2]*i[..., 3], 1)
        # grad(x + 2y) . grad(y)
        value = ItemIntegrator([Gradient, Gradient], action).evaluate(uh, vh)
        np.testing.assert_allclose(value, [2.0])

    def test_out_accumulates(self):
        mesh = make_mesh('triangle')
        uh = interpolant(mesh, H1P1(), linear)
        integrator = ItemIntegrator([Identity], regions=1)
        out = np.ones((mesh.number_of_cells(), 1))
        integrator.evaluate_items(uh, out=out)
        cm = mesh.entity_measure('cell')
        assert np.all(out > 1.0)
        np.testing.assert_allclose(out.sum(), cm.shape[0] + 1.5)

    def test_reuse_with_other_spaces(self):
        mesh = make_mesh('triangle')
        integrator = ItemIntegrator([Identity])
        scalar = interpolant(mesh, H1P1(), linear)
        vector = interpolant(mesh, H1P1(2), swap)
        np.testing.assert_allclose(integrator.evaluate(scalar), [1.5])
        np.testing.assert_allclose(integrator.evaluate(vector), [0.5, 0.5])
        assert integrator.action.resultdim == 2
        np.testing.assert_allclose(integrator.evaluate(scalar), [1.5])
        assert integrator.user_action is None

    def test_trapezoid(self):
        mesh = Mesh(np.array([[0.0, 0.0], [2.0, 0.0], [1.0, 1.0], [0.0, 1.0]]),
                    np.array([[0, 1, 2, 3]]))
        uh = interpolant(mesh, H1P1(), lambda p: p[:, 0])
        # the Jacobian determinant varies over the cell
        np.testing.assert_allclose(ItemIntegrator([Identity]).evaluate(uh), [7/6])
        one = interpolant(mesh, H1P1(), lambda p: np.ones_like(p[:, 0]))
        np.testing.assert_allclose(ItemIntegrator([Identity]).evaluate(one), [1.5])


class TestFaceOperators:
    def test_tangent_flux_of_constant(self):
        mesh = make_mesh('triangle')
        uh = interpolant(mesh, H1P1(2), lambda p: np.stack([np.ones_like(p[:, 0]), np.zeros_like(p[:, 0])], axis=-1))
        items = ItemIntegrator([TangentFlux], assembly_type='bface').evaluate_items(uh)
        index = mesh.boundary_face_index()
        n = mesh.face_unit_normal(index)
        fm = mesh.entity_measure('bface')
        np.testing.assert_allclose(items[:, 0], -n[:, 1]*fm, atol=1e-14)
        np.testing.assert_allclose(items.sum(), 0.0, atol=1e-14)

    def test_tangential_gradient(self):
        mesh = make_mesh('triangle')
        uh = interpolant(mesh, H1P1(), linear)
        items = ItemIntegrator([TangentialGradient], assembly_type='bface').evaluate_items(uh)
        n = mesh.face_unit_normal(mesh.boundary_face_index())
        fm = mesh.entity_measure('bface')
        np.testing.assert_allclose(items[:, 0], (-n[:, 1] + 2*n[:, 0])*fm, atol=1e-14)

    def test_normal_flux_of_vector_p1(self):
        mesh = make_mesh('quadrangle')
        uh = interpolant(mesh, H1P1(2), position)
        value = ItemIntegrator([NormalFlux], assembly_type='bface').evaluate(uh)
        np.testing.assert_allclose(value, [2.0])

    @pytest.mark.parametrize("data", divergence_theorem_data)
    def test_divergence_theorem(self, data):
        mesh = make_mesh(data['mesh'])
        uh = interpolant(mesh, HdivRT0(), position)
        div = ItemIntegrator([Divergence]).evaluate(uh)
        flux = ItemIntegrator([NormalFlux], assembly_type='bface').evaluate(uh)
        np.testing.assert_allclose(div, [data['value']])
        np.testing.assert_allclose(flux, [data['value']])

    def test_rt0_flux_through_interior_faces(self):
        mesh = make_mesh('triangle')
        uh = interpolant(mesh, HdivRT0(), position)
        face = ItemIntegrator([NormalFlux], assembly_type='face').evaluate_items(uh)
        cell = ItemIntegrator([Average[NormalFlux]], assembly_type='face', regions=0).evaluate_items(uh)
        interior = mesh.entity_region('face') == 0
        np.testing.assert_allclose(cell[interior], face[interior], atol=1e-14)

    @pytest.mark.parametrize("element", [HdivRT1(), HdivBDM2()])
    def test_flux_moments_through_faces(self, element):
        mesh = make_mesh('triangle', 3)
        space = FESpace(mesh, element)
        uh = space.function(np.random.rand(space.number_of_global_dofs()))
        interior = mesh.entity_region('face') == 0
        face = ItemIntegrator([NormalFlux], FunctionAction(lambda u: u**2, 1, bonus_quadorder=4),
                              assembly_type='face').evaluate_items(uh)
        cell = ItemIntegrator([Average[NormalFlux]], FunctionAction(lambda u: u**2, 1, bonus_quadorder=4),
                              assembly_type='face', regions=0).evaluate_items(uh)
        np.testing.assert_allclose(cell[interior], face[interior], atol=1e-12)
        jump = ItemIntegrator([Jump[NormalFlux]], FunctionAction(lambda u: u**2, 1, bonus_quadorder=4),
                              assembly_type='face', regions=0).evaluate(uh)
        np.testing.assert_allclose(jump, 0.0, atol=1e-20)
        div = ItemIntegrator([Divergence]).evaluate(uh)
        flux = ItemIntegrator([NormalFlux], assembly_type='bface').evaluate(uh)
        np.testing.assert_allclose(div, flux, atol=1e-12)

    def test_jump_of_continuous_function(self):
        mesh = make_mesh('triangle', 3)
        uh = interpolant(mesh, H1P2(), quadratic)
        items = ItemIntegrator([Jump[Identity]], assembly_type='face', regions=0).evaluate_items(uh)
        np.testing.assert_allclose(items, 0.0, atol=1e-14)

    def test_jump_of_gradient_at_kink(self):
        mesh = make_mesh('triangle')
        uh = interpolant(mesh, H1P1(), lambda p: np.abs(p[:, 0] - 0.5))
        action = FunctionAction(lambda j: j[..., 0]**2 + j[..., 1]**2, 1)
        integrator = ItemIntegrator([Jump[Gradient]], action, assembly_type='face', regions=0)
        np.testing.assert_allclose(integrator.evaluate(uh), [4.0], atol=1e-13)

    def test_average_equals_trace(self):
        mesh = make_mesh('quadrangle')
        uh = interpolant(mesh, H1P2(), quadratic)
        average = ItemIntegrator([Average[Identity]], assembly_type='face', regions=0).evaluate_items(uh)
        trace = ItemIntegrator([Identity], assembly_type='face', regions=0).evaluate_items(uh)
        np.testing.assert_allclose(average, trace, atol=1e-14)

    def test_boundary_trace_of_p1(self):
        mesh = make_mesh('triangle')
        uh = interpolant(mesh, H1P1(), linear)
        # int over the boundary of x + 2y
        value = ItemIntegrator([Identity], assembly_type='bface').evaluate(uh)
        np.testing.assert_allclose(value, [6.0])


class TestL2Error:
    def test_exact(self):
        mesh = make_mesh('triangle')
        uh = interpolant(mesh, H1P1(), linear)
        assert l2_error(uh, linear) < 1e-13
        assert l2_error(uh, lambda p: np.stack([np.ones_like(p[:, 0]), 2*np.ones_like(p[:, 0])], axis=-1),
                        Gradient) < 1e-13

    def test_constant_offset(self):
        mesh = make_mesh('quadrangle')
        uh = interpolant(mesh, H1P1(), linear)
        np.testing.assert_allclose(l2_error(uh, lambda p: linear(p) + 1.0), 1.0)

    def test_invalid(self):
        mesh = make_mesh('triangle')
        uh = interpolant(mesh, H1P1(), linear)
        with pytest.raises(DimensionMismatchError):
            l2_error(uh, swap)
        integrator = ItemIntegrator([Identity])
        with pytest.raises(ConfigurationError):
            integrator.evaluate(uh, uh)
        with pytest.raises(ConfigurationError):
            integrator.evaluate(uh.array)
        with pytest.raises(DimensionMismatchError):
            integrator.evaluate_items(uh, out=np.zeros((3, 1)))


if __name__ == "__main__":
    pytest.main(['./test_item_integrator.py'])
