"""
Flux-preserving reconstruction of vector H1 functions into H(div) spaces.

The reconstruction of a basis function is the canonical interpolant of the
target family on the cell: into RT0 it has the same normal flux through every
face, into RT1 and BDM2 the same flux moments and interior moments. The
divergence of the reconstruction is therefore the cell-wise projection of the
divergence of the original function onto the divergence space of the target.
"""
from typing import List

import numpy as np

from .. import logger
from ..typing import TensorLike
from ..errors import ConfigurationError
from ..mesh.geometry import geometry_by_tag
from ..quadrature import quadrature_rule
from .raviart_thomas_fe import HdivRT0
from .hdiv_moment_fe import HdivMomentElement, moment_functionals


def reference_face_means(element, geometry, nc: int) -> TensorLike:
    """Means of the reference basis over each local face, shaped
    (nfaces, ldof, nc)."""
    basis = element.reference_basis(geometry, nc)
    FG = geometry.face_geometry
    qf = quadrature_rule(FG, element.polynomial_order(geometry) + 1)
    bcs, ws = qf.get_quadrature_points_and_weights()
    means = []
    for lf in range(geometry.number_of_faces()):
        xref = geometry.face_to_cell(lf, bcs)
        means.append(np.einsum('q, qic -> ic', ws, basis.values(xref)))
    return np.stack(means, axis=0)


def _flux_coefficients(space) -> List[TensorLike]:
    element = space.element
    mesh = space.mesh
    nc = space.ncomponents
    means = {}
    c2f = mesh.cell_to_face()
    n = mesh.face_unit_normal()
    fm = mesh.entity_measure('face')
    out = []
    for cell in range(mesh.number_of_cells()):
        tag = int(mesh.cell_geotag[cell])
        if tag not in means:
            means[tag] = reference_face_means(element, geometry_by_tag(tag), nc)
        M = means[tag]
        faces = c2f[cell]
        coef = element.cell_coefficients(space, cell)
        if coef is not None:
            M = M*coef.T[None, :, :]
        C = np.einsum('fic, fc, f -> if', M, n[faces], fm[faces])
        out.append(C)
    return out


def _moment_coefficients(space, target) -> List[TensorLike]:
    element = space.element
    mesh = space.mesh
    nc = space.ncomponents
    out = [None]*mesh.number_of_cells()
    for tag in np.unique(mesh.cell_geotag):
        G = geometry_by_tag(tag)
        if not G.affine:
            raise ConfigurationError(f"Reconstruction into {target} needs affine cells, not {G}.")
        idx = np.nonzero(mesh.cell_geotag == tag)[0]
        basis = element.reference_basis(G, nc)
        coefs = [element.cell_coefficients(space, c) for c in idx]

        def values(xref):
            val = np.broadcast_to(basis.values(xref), (idx.shape[0], xref.shape[0], basis.ldof, nc))
            if coefs[0] is not None:
                val = val*np.stack([c.T for c in coefs], axis=0)[:, None, :, :]
            return val

        order = element.polynomial_order(G) + target.polynomial_order(G)
        C = moment_functionals(target, mesh, G, idx, values, order)
        for k, cell in enumerate(idx):
            out[cell] = C[k]
    return out


def reconstruction_coefficients(space, target) -> List[TensorLike]:
    """Per-cell matrices `C` shaped (ldof, ldof_target) with
    `R(phi_i) = sum_j C[i, j] psi_j`, where `psi_j` are the sign-corrected
    basis functions of `target`."""
    element = space.element
    mesh = space.mesh
    TD = mesh.top_dimension()
    if not isinstance(target, (HdivRT0, HdivMomentElement)):
        raise ConfigurationError(f"Reconstruction into {target} is not available.")
    if element.conformity != 'H1' or space.ncomponents != TD:
        raise ConfigurationError(
            f"Reconstruction into {target} needs a vector H1 element with {TD} "
            f"components, but got {element}.")
    for tag in np.unique(mesh.cell_geotag):
        G = geometry_by_tag(tag)
        if not target.supports(G):
            raise ConfigurationError(f"{target} is not defined on {G}.")

    if isinstance(target, HdivRT0):
        out = _flux_coefficients(space)
    else:
        out = _moment_coefficients(space, target)
    logger.debug(f"Reconstruction coefficients of {element} into {target} "
                 f"computed on {len(out)} cells.")
    return out
