"""構成則（材料モデル）の抽象インタフェース定義.

Protocol 定義:
  MaterialProtocol             — 全材料共通（要素種別・状態生成・出力値）。
  MechMaterialProtocol         — 力学材料（tangent + stress_update）。
  HydroMechMaterialProtocol    — 水理力学連成材料（+ conductivity, 流速を返す stress_update）。

状態は積分点が保持する IpState で、構成則は試行状態のみを更新する。
確定状態への反映（commit）と破棄（rollback）は増分制御側が行う。
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import numpy as np

from hmcae.core.context import AnalysisContext
from hmcae.core.state import IpState


@runtime_checkable
class MaterialProtocol(Protocol):
    """材料の共通インタフェース.

    Attributes:
        element_type: この材料が生成する要素型の名前
            ("MechSolid", "HMSolid", "MechRod", "MechJoint")
    """

    element_type: str

    def new_state(self, ctx: AnalysisContext) -> IpState:
        """積分点の初期状態を生成する."""
        ...

    def state_values(self, state: IpState, ctx: AnalysisContext) -> dict[str, float]:
        """出力用のスカラー量を返す."""
        ...


@runtime_checkable
class MechMaterialProtocol(MaterialProtocol, Protocol):
    """力学材料のインタフェース.

    ひずみは Mandel 表記 6 成分（せん断成分に √2 を掛ける）。
    ロッド・ジョイントでは要素ごとの成分数（1 または ndim）となる。
    """

    def tangent(self, state: IpState, ctx: AnalysisContext) -> np.ndarray:
        """接線剛性テンソル D を返す."""
        ...

    def stress_update(
        self, state: IpState, deps: np.ndarray, ctx: AnalysisContext
    ) -> np.ndarray:
        """ひずみ増分から応力増分を求め、試行状態を更新する.

        Args:
            state: 試行状態（インプレースで更新される）
            deps: 確定状態からのひずみ増分
            ctx: 解析コンテキスト

        Returns:
            dsig: 応力増分
        """
        ...


@runtime_checkable
class HydroMechMaterialProtocol(MaterialProtocol, Protocol):
    """水理力学連成材料のインタフェース."""

    def tangent(self, state: IpState, ctx: AnalysisContext) -> np.ndarray:
        """有効応力の接線剛性テンソル D (6×6) を返す."""
        ...

    def conductivity(self, state: IpState, ctx: AnalysisContext) -> np.ndarray:
        """透水係数テンソル K (ndim×ndim) を返す."""
        ...

    @property
    def gw(self) -> float:
        """水の単位体積重量 γw."""
        ...

    def stress_update(
        self,
        state: IpState,
        deps: np.ndarray,
        ctx: AnalysisContext,
        duw: float,
        G: np.ndarray,
    ) -> tuple[np.ndarray, np.ndarray]:
        """有効応力と流速を更新する.

        Args:
            state: 試行状態（インプレースで更新される）
            deps: ひずみ増分 (6,)
            ctx: 解析コンテキスト
            duw: 間隙水圧の増分
            G: 全水頭勾配 (ndim,)。流速は V = -k G

        Returns:
            (dsig, V): 有効応力増分 (6,), 流速 (ndim,)
        """
        ...
