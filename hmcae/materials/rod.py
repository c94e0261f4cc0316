"""ロッド（軸力部材）の1次元構成則.

ElasticRod  — 線形弾性
PlasticRod  — 線形等方硬化の弾塑性。Return mapping と consistent tangent を提供する。

参考文献:
  - Simo & Hughes (1998) "Computational Inelasticity", Ch.1
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from hmcae.core.context import AnalysisContext
from hmcae.core.state import IpState


@dataclass
class RodState(IpState):
    """弾性ロッドの状態.

    Attributes:
        sig: 軸応力
        eps: 軸ひずみ
    """

    sig: float = 0.0
    eps: float = 0.0


@dataclass
class PlasticRodState(IpState):
    """弾塑性ロッドの状態.

    Attributes:
        sig: 軸応力
        eps: 軸ひずみ
        eps_p: 塑性ひずみ
        alpha: 累積塑性ひずみ（等方硬化内部変数）
        dg: 直近の return mapping の塑性乗数増分（接線の選択に使用）
    """

    sig: float = 0.0
    eps: float = 0.0
    eps_p: float = 0.0
    alpha: float = 0.0
    dg: float = 0.0


def _check_rod_params(E: float, A: float) -> None:
    if E <= 0:
        raise ValueError(f"ヤング率 E は正値: {E}")
    if A <= 0:
        raise ValueError(f"断面積 A は正値: {A}")


class ElasticRod:
    """線形弾性ロッド材料（MechRod 要素用）.

    Args:
        E: ヤング率
        A: 断面積
    """

    element_type = "MechRod"

    def __init__(self, E: float, A: float) -> None:
        _check_rod_params(E, A)
        self.E = E
        self.A = A

    def new_state(self, ctx: AnalysisContext) -> RodState:
        return RodState()

    def tangent(self, state: RodState, ctx: AnalysisContext) -> np.ndarray:
        return np.array([[self.E]])

    def stress_update(self, state: RodState, deps: np.ndarray, ctx: AnalysisContext) -> np.ndarray:
        dsig = self.E * float(deps[0])
        state.eps += float(deps[0])
        state.sig += dsig
        return np.array([dsig])

    def state_values(self, state: RodState, ctx: AnalysisContext) -> dict[str, float]:
        return {"sa": state.sig, "ea": state.eps, "fa": state.sig * self.A}


@dataclass
class IsotropicHardening:
    """線形等方硬化パラメータ.

    降伏応力: sigma_y(alpha) = sigma_y0 + H_iso * alpha

    Attributes:
        sigma_y0: 初期降伏応力（正値）
        H_iso: 等方硬化係数
    """

    sigma_y0: float
    H_iso: float = 0.0

    def sigma_y(self, alpha: float) -> float:
        return self.sigma_y0 + self.H_iso * alpha


class PlasticRod:
    """線形等方硬化の弾塑性ロッド材料（MechRod 要素用）.

    Args:
        E: ヤング率
        A: 断面積
        sigma_y0: 初期降伏応力
        H: 等方硬化係数
    """

    element_type = "MechRod"

    def __init__(self, E: float, A: float, sigma_y0: float, H: float = 0.0) -> None:
        _check_rod_params(E, A)
        if sigma_y0 <= 0:
            raise ValueError(f"降伏応力 sigma_y0 は正値: {sigma_y0}")
        if H < 0:
            raise ValueError(f"硬化係数 H は非負: {H}")
        self.E = E
        self.A = A
        self.iso = IsotropicHardening(sigma_y0, H)

    def new_state(self, ctx: AnalysisContext) -> PlasticRodState:
        return PlasticRodState()

    def tangent(self, state: PlasticRodState, ctx: AnalysisContext) -> np.ndarray:
        """Consistent tangent を返す（直近の更新が塑性なら E·H/(E+H)）."""
        E = self.E
        if state.dg > 0.0:
            H = self.iso.H_iso
            return np.array([[E * H / (E + H)]])
        return np.array([[E]])

    def stress_update(
        self, state: PlasticRodState, deps: np.ndarray, ctx: AnalysisContext
    ) -> np.ndarray:
        """Return mapping で応力を更新する.

        state は確定状態に戻された試行状態で、インプレースで更新される。
        """
        E = self.E
        sig_old = state.sig
        strain = state.eps + float(deps[0])

        # --- 弾性試行 ---
        sigma_trial = E * (strain - state.eps_p)
        sigma_y_n = self.iso.sigma_y(state.alpha)
        f_trial = abs(sigma_trial) - sigma_y_n

        if f_trial <= 1e-10 * sigma_y_n:
            state.eps = strain
            state.sig = sigma_trial
            state.dg = 0.0
            return np.array([sigma_trial - sig_old])

        # --- 塑性修正（閉形式） ---
        sign = 1.0 if sigma_trial >= 0.0 else -1.0
        dg = f_trial / (E + self.iso.H_iso)
        state.eps_p += dg * sign
        state.alpha += dg
        state.eps = strain
        state.sig = E * (strain - state.eps_p)
        state.dg = dg
        return np.array([state.sig - sig_old])

    def state_values(self, state: PlasticRodState, ctx: AnalysisContext) -> dict[str, float]:
        return {
            "sa": state.sig,
            "ea": state.eps,
            "fa": state.sig * self.A,
            "eps_p": state.eps_p,
            "alpha": state.alpha,
        }
