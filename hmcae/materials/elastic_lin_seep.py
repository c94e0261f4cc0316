"""線形弾性 + Darcy 線形浸透の水理力学連成材料.

有効応力: Δσ' = D Δε
流速:     V = -k G,  G = ∇uw / γw + e_g（e_g は鉛直上向きの単位ベクトル）
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from hmcae.core.context import AnalysisContext
from hmcae.core.state import IpState
from hmcae.materials.elastic_solid import calcDe, check_elastic_params, stress_strain_values


@dataclass
class ElasticSolidLinSeepState(IpState):
    """水理力学積分点状態.

    Attributes:
        sig: (6,) 有効応力（Mandel 表記）
        eps: (6,) ひずみ（Mandel 表記）
        V: (ndim,) 流速
        uw: 間隙水圧
    """

    sig: np.ndarray = field(default_factory=lambda: np.zeros(6))
    eps: np.ndarray = field(default_factory=lambda: np.zeros(6))
    V: np.ndarray = field(default_factory=lambda: np.zeros(2))
    uw: float = 0.0


class ElasticSolidLinSeep:
    """線形弾性 + 線形浸透材料（HMSolid 要素用）.

    Args:
        E: ヤング率
        nu: ポアソン比
        k: 透水係数
        gw: 水の単位体積重量 γw
    """

    element_type = "HMSolid"

    def __init__(self, E: float, nu: float, k: float, gw: float = 9.81) -> None:
        check_elastic_params(E, nu)
        if not k >= 0:
            raise ValueError(f"透水係数 k は非負: {k}")
        if not gw > 0:
            raise ValueError(f"水の単位体積重量 gw は正値: {gw}")
        self.E = E
        self.nu = nu
        self.k = k
        self._gw = gw

    @property
    def gw(self) -> float:
        return self._gw

    def new_state(self, ctx: AnalysisContext) -> ElasticSolidLinSeepState:
        return ElasticSolidLinSeepState(V=np.zeros(ctx.ndim))

    def tangent(self, state: ElasticSolidLinSeepState, ctx: AnalysisContext) -> np.ndarray:
        return calcDe(self.E, self.nu, ctx.model_type)

    def conductivity(self, state: ElasticSolidLinSeepState, ctx: AnalysisContext) -> np.ndarray:
        return self.k * np.eye(ctx.ndim)

    def stress_update(
        self,
        state: ElasticSolidLinSeepState,
        deps: np.ndarray,
        ctx: AnalysisContext,
        duw: float,
        G: np.ndarray,
    ) -> tuple[np.ndarray, np.ndarray]:
        dsig = self.tangent(state, ctx) @ deps
        state.eps += deps
        state.sig += dsig
        state.V[:] = -self.conductivity(state, ctx) @ G
        state.uw += duw
        return dsig, state.V.copy()

    def state_values(
        self, state: ElasticSolidLinSeepState, ctx: AnalysisContext
    ) -> dict[str, float]:
        vals = stress_strain_values(state.sig, state.eps, ctx.ndim)
        for i, key in enumerate(("vx", "vy", "vz")[: ctx.ndim]):
            vals[key] = float(state.V[i])
        vals["uw"] = float(state.uw)
        return vals

    def __repr__(self) -> str:
        return f"ElasticSolidLinSeep(E={self.E}, nu={self.nu}, k={self.k}, gw={self.gw})"
