"""ロッド（軸力部材）要素.

B = dN/dR · J / |J|²  （軸方向ひずみ）
K = Σ E_t A Bᵀ B |J| w
"""

from __future__ import annotations

import numpy as np

from hmcae.core.context import AnalysisContext
from hmcae.core.element import Capability
from hmcae.core.errors import GeometryError
from hmcae.core.results import ElementMatrix, ElementVector
from hmcae.elements.base import DISP_KEYS, Element


class MechRod(Element):
    """ロッド要素（LIN2, LIN3）."""

    capabilities = Capability.STIFFNESS | Capability.UPDATE

    def _axial_B(self, R: np.ndarray, C: np.ndarray) -> tuple[np.ndarray, float]:
        dNdR = self.shape.deriv(R)
        J = (dNdR @ C)[0]
        detJ = float(np.linalg.norm(J))
        if not detJ > 0.0:
            raise GeometryError(f"ロッド要素 {self.id} の長さがゼロ", elem_id=self.id)
        B = np.outer(dNdR[0], J).ravel() / detJ**2
        return B[None, :], detJ

    def stiffness(self, ctx: AnalysisContext) -> ElementMatrix:
        ndim = ctx.ndim
        nnodes = len(self.nodes)
        C = self.coords(ndim)
        A = self.material.A
        K = np.zeros((nnodes * ndim, nnodes * ndim))

        for ip in self.ips:
            B, detJ = self._axial_B(ip.R, C)
            E = self.material.tangent(ip.state, ctx)
            K += (A * detJ * ip.w) * (B.T @ E @ B)

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
        A = self.material.A
        dFe = np.zeros(nnodes * ndim)

        for ip in self.ips:
            B, detJ = self._axial_B(ip.R, C)
            deps = B @ dUe
            dsig = self.material.stress_update(ip.state, deps, ctx)
            dFe += (A * detJ * ip.w) * (B.T @ dsig)

        dF[rmap] += dFe
        return ElementVector(dFe, rmap)

    def axial_force(self, ctx: AnalysisContext) -> float:
        """積分点平均の軸力."""
        sa = [self.material.state_values(ip.state, ctx)["sa"] for ip in self.ips]
        return float(self.material.A * np.mean(sa))
