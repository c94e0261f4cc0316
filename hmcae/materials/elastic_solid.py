"""等方線形弾性固体.

Mandel 表記の弾性テンソル D (6×6):
  σ = [σxx, σyy, σzz, √2 σyz, √2 σxz, √2 σxy]
  ε = [εxx, εyy, εzz, √2 εyz, √2 εxz, √2 εxy]
せん断成分の剛性は 2μ となる。
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from hmcae.core.context import AnalysisContext
from hmcae.core.state import IpState

SR2 = np.sqrt(2.0)


def calcDe(E: float, nu: float, model_type: str) -> np.ndarray:
    """弾性テンソル D (6×6, Mandel 表記) を返す.

    Args:
        E: ヤング率
        nu: ポアソン比
        model_type: "plane_strain", "plane_stress", "3d"

    Returns:
        D: (6, 6) 弾性テンソル
    """
    D = np.zeros((6, 6))
    if model_type == "plane_stress":
        c = E / (1.0 - nu * nu)
        D[0, 0] = D[1, 1] = c
        D[0, 1] = D[1, 0] = c * nu
        D[5, 5] = E / (1.0 + nu)
        return D

    lam = E * nu / ((1.0 + nu) * (1.0 - 2.0 * nu))
    mu = E / (2.0 * (1.0 + nu))
    D[:3, :3] = lam
    D[0, 0] = D[1, 1] = D[2, 2] = lam + 2.0 * mu
    D[3, 3] = D[4, 4] = D[5, 5] = 2.0 * mu
    return D


def stress_strain_values(sig: np.ndarray, eps: np.ndarray, ndim: int) -> dict[str, float]:
    """Mandel 表記の応力・ひずみから出力用のテンソル成分を返す."""
    vals = {
        "sxx": sig[0],
        "syy": sig[1],
        "szz": sig[2],
        "sxy": sig[5] / SR2,
        "exx": eps[0],
        "eyy": eps[1],
        "ezz": eps[2],
        "exy": eps[5] / SR2,
    }
    if ndim == 3:
        vals.update(
            syz=sig[3] / SR2, sxz=sig[4] / SR2, eyz=eps[3] / SR2, exz=eps[4] / SR2
        )
    vals["ev"] = float(eps[0] + eps[1] + eps[2])
    return {k: float(v) for k, v in vals.items()}


def check_elastic_params(E: float, nu: float) -> None:
    if E <= 0:
        raise ValueError(f"ヤング率 E は正値: {E}")
    if not (0.0 <= nu < 0.5):
        raise ValueError(f"ポアソン比 nu は [0, 0.5): {nu}")


@dataclass
class ElasticSolidState(IpState):
    """弾性固体の積分点状態.

    Attributes:
        sig: (6,) 応力（Mandel 表記）
        eps: (6,) ひずみ（Mandel 表記）
    """

    sig: np.ndarray = field(default_factory=lambda: np.zeros(6))
    eps: np.ndarray = field(default_factory=lambda: np.zeros(6))


class ElasticSolid:
    """等方線形弾性固体（MechSolid 要素用）.

    Args:
        E: ヤング率
        nu: ポアソン比
    """

    element_type = "MechSolid"

    def __init__(self, E: float, nu: float = 0.0) -> None:
        check_elastic_params(E, nu)
        self.E = E
        self.nu = nu

    def new_state(self, ctx: AnalysisContext) -> ElasticSolidState:
        return ElasticSolidState()

    def tangent(self, state: ElasticSolidState, ctx: AnalysisContext) -> np.ndarray:
        return calcDe(self.E, self.nu, ctx.model_type)

    def stress_update(
        self, state: ElasticSolidState, deps: np.ndarray, ctx: AnalysisContext
    ) -> np.ndarray:
        dsig = calcDe(self.E, self.nu, ctx.model_type) @ deps
        state.eps += deps
        state.sig += dsig
        return dsig

    def state_values(self, state: ElasticSolidState, ctx: AnalysisContext) -> dict[str, float]:
        return stress_strain_values(state.sig, state.eps, ctx.ndim)

    def __repr__(self) -> str:
        return f"ElasticSolid(E={self.E}, nu={self.nu})"
