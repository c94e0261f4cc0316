"""水理力学連成固体要素.

自由度: 変位 (ux, uy[, uz]) と間隙水圧 uw。

  剛性:   K   =  Σ Buᵀ D Bu |J| w th
  連成:   Cup = -Σ Buᵀ m Nᵀ |J| w th
  透水:   H   = -Σ Bpᵀ k Bp |J| w th / γw
  ソース: Q   =  Σ Bpᵀ k e_g |J| w th

更新時の流量: dFw = Δt Σ Bpᵀ V |J| w th - Σ (mᵀΔε) N |J| w th
"""

from __future__ import annotations

import numpy as np

from hmcae.core.context import AnalysisContext
from hmcae.core.element import Capability
from hmcae.core.results import ElementMatrix, ElementVector
from hmcae.elements.base import DISP_KEYS, FORCE_KEYS, Element, Facet
from hmcae.elements.common import (
    MANDEL_I,
    distributed_bc,
    gravity_direction,
    set_Bu,
    shape_gradients,
    thickness_factor,
)


class HMSolid(Element):
    """水理力学連成固体要素."""

    capabilities = (
        Capability.STIFFNESS
        | Capability.COUPLING
        | Capability.CONDUCTIVITY
        | Capability.RHS
        | Capability.UPDATE
        | Capability.DISTRIBUTED_BC
    )

    def dof_keys(self, ctx: AnalysisContext) -> list[tuple[str, str]]:
        keys = list(zip(DISP_KEYS[: ctx.ndim], FORCE_KEYS[: ctx.ndim]))
        keys.append(("uw", "fw"))
        return keys

    def pressure_values(self) -> np.ndarray:
        """確定済みの節点間隙水圧."""
        return np.array([node.dofs["uw"].value for node in self.nodes])

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

    def coupling_matrix(self, ctx: AnalysisContext) -> ElementMatrix:
        ndim = ctx.ndim
        nnodes = len(self.nodes)
        C = self.coords(ndim)
        th = thickness_factor(ctx)
        Cup = np.zeros((nnodes * ndim, nnodes))
        Bu = np.zeros((6, nnodes * ndim))

        for ip in self.ips:
            N = self.shape.func(ip.R)
            dNdX, detJ = shape_gradients(self.shape.deriv(ip.R), C, self.id)
            set_Bu(ctx, dNdX, Bu)
            Cup -= (detJ * ip.w * th) * (Bu.T @ np.outer(MANDEL_I, N))

        map_u = self.dof_map(DISP_KEYS[:ndim])
        map_p = self.dof_map(("uw",))
        return ElementMatrix(Cup, map_u, map_p)

    def conductivity_matrix(self, ctx: AnalysisContext) -> ElementMatrix:
        ndim = ctx.ndim
        nnodes = len(self.nodes)
        C = self.coords(ndim)
        th = thickness_factor(ctx)
        H = np.zeros((nnodes, nnodes))
        gw = self.material.gw

        for ip in self.ips:
            Bp, detJ = shape_gradients(self.shape.deriv(ip.R), C, self.id)
            K = self.material.conductivity(ip.state, ctx)
            H -= (detJ * ip.w * th / gw) * (Bp.T @ K @ Bp)

        map_p = self.dof_map(("uw",))
        return ElementMatrix(H, map_p, map_p)

    def rhs_vector(self, ctx: AnalysisContext) -> ElementVector:
        ndim = ctx.ndim
        nnodes = len(self.nodes)
        C = self.coords(ndim)
        th = thickness_factor(ctx)
        Q = np.zeros(nnodes)
        Z = gravity_direction(ndim)

        for ip in self.ips:
            Bp, detJ = shape_gradients(self.shape.deriv(ip.R), C, self.id)
            K = self.material.conductivity(ip.state, ctx)
            Q += (detJ * ip.w * th) * (Bp.T @ (K @ Z))

        return ElementVector(Q, self.dof_map(("uw",)))

    def update(
        self, dU: np.ndarray, dF: np.ndarray, dt: float, ctx: AnalysisContext
    ) -> ElementVector:
        ndim = ctx.ndim
        nnodes = len(self.nodes)
        map_u = self.dof_map(DISP_KEYS[:ndim])
        map_p = self.dof_map(("uw",))
        C = self.coords(ndim)
        th = thickness_factor(ctx)
        gw = self.material.gw
        Z = gravity_direction(ndim)

        dUe = dU[map_u]
        dUw = dU[map_p]
        Uw = self.pressure_values() + dUw

        dFu = np.zeros(nnodes * ndim)
        dFw = np.zeros(nnodes)
        Bu = np.zeros((6, nnodes * ndim))

        for ip in self.ips:
            N = self.shape.func(ip.R)
            dNdX, detJ = shape_gradients(self.shape.deriv(ip.R), C, self.id)
            set_Bu(ctx, dNdX, Bu)
            deps = Bu @ dUe

            Bp = dNdX
            G = Bp @ Uw / gw + Z
            duw = float(N @ dUw)

            dsig, V = self.material.stress_update(ip.state, deps, ctx, duw, G)
            dsig = dsig - duw * MANDEL_I

            coef = detJ * ip.w * th
            dFu += coef * (Bu.T @ dsig)
            dFw += (dt * coef) * (Bp.T @ V)
            dFw -= (float(MANDEL_I @ deps) * coef) * N

        dF[map_u] += dFu
        dF[map_p] += dFw
        return ElementVector(np.concatenate([dFu, dFw]), np.concatenate([map_u, map_p]))

    def distributed_bc(self, facet: Facet | None, key: str, fun, ctx: AnalysisContext) -> ElementVector:
        return distributed_bc(self, facet, key, fun, ctx)
