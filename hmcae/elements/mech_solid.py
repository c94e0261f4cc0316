"""力学固体要素（TRI3, QUAD4, QUAD8, TET4, HEX8）.

K = Σ Buᵀ D Bu |J| w th
"""

from __future__ import annotations

import numpy as np

from hmcae.core.context import AnalysisContext
from hmcae.core.element import Capability
from hmcae.core.results import ElementMatrix, ElementVector
from hmcae.elements.base import DISP_KEYS, Element, Facet
from hmcae.elements.common import distributed_bc, set_Bu, shape_gradients, thickness_factor


class MechSolid(Element):
    """力学固体要素."""

    capabilities = Capability.STIFFNESS | Capability.UPDATE | Capability.DISTRIBUTED_BC

    def stiffness(self, ctx: AnalysisContext) -> ElementMatrix:
        ndim = ctx.ndim
        nnodes = len(self.nodes)
        C = self.coords(ndim)
        th = thickness_factor(ctx)
        K = np.zeros((nnodes * ndim, nnodes * ndim))
        B = np.zeros((6, nnodes * ndim))

        for ip in self.ips:
            dNdX, detJ = shape_gradients(self.shape.deriv(ip.R), C, self.id)
            set_Bu(ctx, dNdX, B)
            D = self.material.tangent(ip.state, ctx)
            K += (detJ * ip.w * th) * (B.T @ D @ B)

        rmap = self.dof_map(DISP_KEYS[:ndim])
        return ElementMatrix(K, rmap, rmap)

    def update(
        self, dU: np.ndarray, dF: np.ndarray, dt: float, ctx: AnalysisContext
    ) -> ElementVector:
        ndim = ctx.ndim
        nnodes = len(self.nodes)
        rmap = self.dof_map(DISP_KEYS[:ndim])
        dUe = dU[rmap]
        C = self.coords(ndim)
        th = thickness_factor(ctx)
        dFe = np.zeros(nnodes * ndim)
        B = np.zeros((6, nnodes * ndim))

        for ip in self.ips:
            dNdX, detJ = shape_gradients(self.shape.deriv(ip.R), C, self.id)
            set_Bu(ctx, dNdX, B)
            deps = B @ dUe
            dsig = self.material.stress_update(ip.state, deps, ctx)
            dFe += (detJ * ip.w * th) * (B.T @ dsig)

        dF[rmap] += dFe
        return ElementVector(dFe, rmap)

    def distributed_bc(self, facet: Facet | None, key: str, fun, ctx: AnalysisContext) -> ElementVector:
        return distributed_bc(self, facet, key, fun, ctx)
