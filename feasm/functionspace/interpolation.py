
from typing import Callable

import numpy as np

from ..typing import TensorLike
from ..errors import ConfigurationError, DimensionMismatchError
from ..mesh.geometry import geometry_by_tag
from ..quadrature import quadrature_rule
from .hdiv_moment_fe import moment_functionals


def _evaluate(f: Callable, points: TensorLike, nc: int) -> TensorLike:
    """Call `f` on points shaped (..., GD) and return values shaped (..., nc)."""
    shape = points.shape[:-1]
    val = np.asarray(f(points.reshape(-1, points.shape[-1])), dtype=np.float64)
    if val.ndim == 0:
        val = np.full(int(np.prod(shape)), float(val))
    val = val.reshape(shape + (-1, ))
    if val.shape[-1] != nc:
        raise DimensionMismatchError(f"Function returns {val.shape[-1]} components, "
                                     f"but {nc} are expected.")
    return val


def integrate(mesh, f: Callable, *, nc: int=1, order: int=2, etype: str='cell') -> TensorLike:
    """Integrals of `f` over every cell or face of the mesh, shaped (N, nc).

    `f` receives physical points shaped (NP, GD)."""
    entity = mesh.entity(etype)
    geotag = mesh.entity_geometry_tag(etype)
    measure = mesh.entity_measure(etype)
    out = np.zeros((len(entity), nc), dtype=np.float64)
    for tag in np.unique(geotag):
        G = geometry_by_tag(tag)
        idx = np.nonzero(geotag == tag)[0]
        qf = quadrature_rule(G, order)
        bcs, ws = qf.get_quadrature_points_and_weights()
        X = mesh.node[entity.dense(idx)]
        phi = G.shape_function(bcs)
        points = np.einsum('qv, cvg -> cqg', phi, X)
        val = _evaluate(f, points, nc)
        if G.affine:
            out[idx] = np.einsum('q, cqk, c -> ck', ws, val, measure[idx])
        else:
            J = np.einsum('cvg, qvt -> cqgt', X, G.grad_shape_function(bcs))
            if J.shape[-1] == J.shape[-2]:
                det = np.abs(np.linalg.det(J))
            else:
                det = np.sqrt(np.linalg.det(np.swapaxes(J, -1, -2) @ J))
            out[idx] = G.measure*np.einsum('q, cqk, cq -> ck', ws, val, det)
    return out


def interpolate_nodal(space, f: Callable, out: TensorLike) -> TensorLike:
    mesh = space.mesh
    element = space.element
    nc = space.ncomponents
    c2d = space.cell_to_dof()
    for tag in np.unique(mesh.cell_geotag):
        G = geometry_by_tag(tag)
        idx = np.nonzero(mesh.cell_geotag == tag)[0]
        ips = element.interpolation_points(G)
        phi = G.shape_function(ips)
        X = mesh.node[mesh.cell.dense(idx)]
        points = np.einsum('pv, cvg -> cpg', phi, X)
        val = _evaluate(f, points, nc)
        dofs = c2d.dense(idx)
        out[dofs] = val.transpose(0, 2, 1).reshape(idx.shape[0], -1)
    return out


def interpolate_face_mean(space, f: Callable, out: TensorLike) -> TensorLike:
    mesh = space.mesh
    nc = space.ncomponents
    order = max(space.element.orders.values()) + 1
    mean = integrate(mesh, f, nc=nc, order=order, etype='face')
    mean /= mesh.entity_measure('face')[:, None]
    out[space.face_to_dof().dense()] = mean
    return out


def interpolate_face_flux(space, f: Callable, out: TensorLike) -> TensorLike:
    mesh = space.mesh
    GD = mesh.geo_dimension()
    order = max(space.element.orders.values()) + 1
    flux = integrate(mesh, f, nc=GD, order=order, etype='face')
    n = mesh.face_unit_normal()
    out[space.face_to_dof().dense()[:, 0]] = np.sum(flux*n, axis=-1)
    return out


def interpolate_face_moment(space, f: Callable, out: TensorLike) -> TensorLike:
    """Canonical interpolation: every dof is its functional applied to `f`."""
    mesh = space.mesh
    element = space.element
    GD = mesh.geo_dimension()
    c2d = space.cell_to_dof()
    order = max(element.orders.values()) + 2
    for tag in np.unique(mesh.cell_geotag):
        G = geometry_by_tag(tag)
        idx = np.nonzero(mesh.cell_geotag == tag)[0]
        X = mesh.node[mesh.cell.dense(idx)]

        def values(xref):
            points = np.einsum('qv, cvg -> cqg', G.shape_function(xref), X)
            return _evaluate(f, points, GD)[:, :, None, :]

        dofs = moment_functionals(element, mesh, G, idx, values, order)
        out[c2d.dense(idx)] = dofs[:, 0, :]
    return out


def interpolate_bernardi_raugel(space, f: Callable, out: TensorLike) -> TensorLike:
    """Nodal values for the linear part; each face bubble restores the normal
    flux through its face."""
    mesh = space.mesh
    nc = space.ncomponents
    NN = mesh.number_of_nodes()
    nodal = _evaluate(f, mesh.node, nc)
    out[:nc*NN] = nodal.T.reshape(-1)
    flux = integrate(mesh, f, nc=nc, order=max(space.element.orders.values()) + 1, etype='face')
    face = mesh.face_to_node()
    n = mesh.face_unit_normal()
    measure = mesh.entity_measure('face')
    mean = np.add.reduceat(nodal[face.flat], face.offsets[:-1], axis=0)
    mean /= face.number_of_targets()[:, None]
    linear = measure[:, None]*mean
    bubble = 2/3*measure
    out[nc*NN:] = np.sum((flux - linear)*n, axis=-1)/bubble
    return out


_INTERPOLATORS = {
    'nodal': interpolate_nodal,
    'face_mean': interpolate_face_mean,
    'face_flux': interpolate_face_flux,
    'face_moment': interpolate_face_moment,
    'bernardi_raugel': interpolate_bernardi_raugel,
}


def interpolate(space, f: Callable, out: TensorLike) -> TensorLike:
    kind = space.element.interpolation
    if kind not in _INTERPOLATORS:
        raise ConfigurationError(f"No interpolation '{kind}' for {space.element}.")
    return _INTERPOLATORS[kind](space, f, out)
