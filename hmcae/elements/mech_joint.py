"""ジョイント（界面）要素.

節点は下面（基本形状）→ 上面の順。相対変位 w = T (u_top - u_bottom) を
局所座標系 [法線, 接線...] で評価する。

実効厚 h = (V1 + V2) / (2A) は連結する2要素の体積と界面面積から一度だけ求め、
各積分点の状態に保持する。
"""

from __future__ import annotations

import math

import numpy as np

from hmcae.core.context import AnalysisContext
from hmcae.core.element import Capability
from hmcae.core.errors import GeometryError
from hmcae.core.results import ElementMatrix, ElementVector
from hmcae.elements.base import DISP_KEYS, Element, nodes_coords
from hmcae.elements.common import thickness_factor


def matrixT(J: np.ndarray) -> np.ndarray:
    """界面の局所座標系への回転行列を返す.

    Args:
        J: (ndim-1, ndim) 界面のヤコビアン

    Returns:
        T: (ndim, ndim) 行ベクトルが [法線, 接線1(, 接線2)]
    """
    if J.shape[0] == 2:
        L2 = J[0] / np.linalg.norm(J[0])
        L3 = J[1] / np.linalg.norm(J[1])
        L1 = np.cross(J[0], J[1])
        L1 = L1 / np.linalg.norm(L1)
        return np.array([L1, L2, L3])
    L2 = J[0]
    # 反時計回りの節点順に対し L1 は下側要素から見た外向き法線
    L1 = np.array([L2[1], -L2[0]])
    return np.array([L1 / np.linalg.norm(L1), L2 / np.linalg.norm(L2)])


def _surface_measure(J: np.ndarray) -> float:
    if J.shape[0] == 1:
        return float(np.linalg.norm(J[0]))
    return float(np.linalg.norm(np.cross(J[0], J[1])))


def _element_volume(elem: Element, ndim: int) -> float:
    C = elem.coords(ndim)
    V = 0.0
    for ip in elem.ips:
        J = elem.shape.deriv(ip.R) @ C
        V += float(np.linalg.det(J)) * ip.w
    return V


class MechJoint(Element):
    """ジョイント要素（JLIN2, JTRI3, JQUAD4）."""

    capabilities = (
        Capability.STIFFNESS | Capability.UPDATE | Capability.INIT | Capability.NODAL_VALUES
    )

    def init(self, ctx: AnalysisContext) -> None:
        """連結要素の体積と界面面積から実効厚 h を求めて積分点に保持する.

        Raises:
            GeometryError: 連結要素がない、または h が正の有限値でない
        """
        ndim = ctx.ndim
        if len(self.linked_elems) != 2:
            raise GeometryError(
                f"ジョイント要素 {self.id} の連結要素数が2でない: {len(self.linked_elems)}",
                elem_id=self.id,
            )
        V1 = _element_volume(self.linked_elems[0], ndim)
        V2 = _element_volume(self.linked_elems[1], ndim)

        fshape = self.shape.basic_shape
        C = nodes_coords(self.nodes[: fshape.npoints], ndim)
        A = 0.0
        for ip in self.ips:
            A += _surface_measure(fshape.deriv(ip.R) @ C) * ip.w

        if not A > 0.0:
            raise GeometryError(f"ジョイント要素 {self.id} の面積がゼロ: A={A}", elem_id=self.id)
        h = (V1 + V2) / (2.0 * A)
        if not (math.isfinite(h) and h > 0.0):
            raise GeometryError(
                f"ジョイント要素 {self.id} の実効厚が不正: h={h} (V1={V1}, V2={V2}, A={A})",
                elem_id=self.id,
            )
        for ip in self.ips:
            ip.state.h = h
            ip.backup.h = h

    def _B_matrices(self, ctx: AnalysisContext):
        ndim = ctx.ndim
        nnodes = len(self.nodes)
        hnodes = nnodes // 2
        fshape = self.shape.basic_shape
        C = nodes_coords(self.nodes[:hnodes], ndim)
        NN = np.zeros((ndim, nnodes * ndim))

        for ip in self.ips:
            N = fshape.func(ip.R)
            J = fshape.deriv(ip.R) @ C
            detJ = _surface_measure(J)
            if not detJ > 0.0:
                raise GeometryError(f"ジョイント要素 {self.id} の面積がゼロ", elem_id=self.id)
            T = matrixT(J)
            NN[:] = 0.0
            for i in range(hnodes):
                for d in range(ndim):
                    NN[d, i * ndim + d] = -N[i]
                    NN[d, (hnodes + i) * ndim + d] = N[i]
            yield ip, T @ NN, detJ

    def stiffness(self, ctx: AnalysisContext) -> ElementMatrix:
        ndim = ctx.ndim
        ndof = len(self.nodes) * ndim
        th = thickness_factor(ctx)
        K = np.zeros((ndof, ndof))
        for ip, B, detJ in self._B_matrices(ctx):
            D = self.material.tangent(ip.state, ctx)
            K += (detJ * ip.w * th) * (B.T @ D @ B)
        rmap = self.dof_map(DISP_KEYS[:ndim])
        return ElementMatrix(K, rmap, rmap)

    def update(
        self, dU: np.ndarray, dF: np.ndarray, dt: float, ctx: AnalysisContext
    ) -> ElementVector:
        ndim = ctx.ndim
        rmap = self.dof_map(DISP_KEYS[:ndim])
        dUe = dU[rmap]
        th = thickness_factor(ctx)
        dFe = np.zeros(len(rmap))
        for ip, B, detJ in self._B_matrices(ctx):
            dw = B @ dUe
            dsig = self.material.stress_update(ip.state, dw, ctx)
            dFe += (detJ * ip.w * th) * (B.T @ dsig)
        dF[rmap] += dFe
        return ElementVector(dFe, rmap)

    def nodal_values(self, ctx: AnalysisContext) -> dict[str, np.ndarray]:
        """積分点の状態量を界面節点へ外挿する.

        下面と上面の対応節点には同じ値を与える。外挿は形状関数行列の
        擬似逆行列による最小二乗。
        """
        fshape = self.shape.basic_shape
        N = np.array([fshape.func(ip.R) for ip in self.ips])
        Nex = np.linalg.pinv(N)
        rows = [self.material.state_values(ip.state, ctx) for ip in self.ips]
        vals = {}
        for key in rows[0]:
            V = Nex @ np.array([row[key] for row in rows])
            vals[key] = np.concatenate([V, V])
        return vals
