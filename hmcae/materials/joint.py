"""ジョイント（界面）の線形弾性構成則.

界面剛性は隣接要素から求めた実効厚 h を使う:
  kn = E ζ / h,  ks = G ζ / h,  G = E / (2(1+ν))
成分順は [法線, 接線1, 接線2]。
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from hmcae.core.context import AnalysisContext
from hmcae.core.state import IpState


@dataclass
class JointState(IpState):
    """ジョイント積分点の状態.

    Attributes:
        sig: (ndim,) 界面応力
        w: (ndim,) 相対変位（開口・すべり）
        h: 実効厚（初期化で設定）
    """

    sig: np.ndarray = field(default_factory=lambda: np.zeros(3))
    w: np.ndarray = field(default_factory=lambda: np.zeros(3))
    h: float = 0.0


class ElasticJoint:
    """線形弾性ジョイント材料（MechJoint 要素用）.

    Args:
        E: 隣接材料のヤング率
        nu: 隣接材料のポアソン比
        zeta: 剛性係数 ζ
    """

    element_type = "MechJoint"

    def __init__(self, E: float, nu: float, zeta: float = 5.0) -> None:
        if E <= 0:
            raise ValueError(f"ヤング率 E は正値: {E}")
        if not (0.0 <= nu < 0.5):
            raise ValueError(f"ポアソン比 nu は [0, 0.5): {nu}")
        if zeta <= 0:
            raise ValueError(f"剛性係数 zeta は正値: {zeta}")
        self.E = E
        self.nu = nu
        self.zeta = zeta

    def new_state(self, ctx: AnalysisContext) -> JointState:
        return JointState(sig=np.zeros(ctx.ndim), w=np.zeros(ctx.ndim))

    def tangent(self, state: JointState, ctx: AnalysisContext) -> np.ndarray:
        if not state.h > 0:
            raise ValueError(f"ジョイントの実効厚 h が未初期化: {state.h}")
        kn = self.E * self.zeta / state.h
        G = self.E / (2.0 * (1.0 + self.nu))
        ks = G * self.zeta / state.h
        return np.diag([kn] + [ks] * (ctx.ndim - 1))

    def stress_update(self, state: JointState, dw: np.ndarray, ctx: AnalysisContext) -> np.ndarray:
        dsig = self.tangent(state, ctx) @ dw
        state.w += dw
        state.sig += dsig
        return dsig

    def state_values(self, state: JointState, ctx: AnalysisContext) -> dict[str, float]:
        vals = {"sn": float(state.sig[0]), "wn": float(state.w[0])}
        vals["tau"] = float(np.linalg.norm(state.sig[1:]))
        vals["s"] = float(np.linalg.norm(state.w[1:]))
        return vals
