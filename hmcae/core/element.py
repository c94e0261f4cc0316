"""要素の抽象インタフェース定義.

要素型はクラス属性 capabilities に能力フラグ（Capability）を宣言する。
アセンブリと増分制御はこのフラグで呼び出す演算を決め、メソッドの有無は調べない。

Protocol 階層:
  ElementProtocol               — 全要素共通（id, nodes, ips, capabilities）
  StiffnessElementProtocol      — 剛性行列
  CouplingElementProtocol       — 力学-流れ連成行列
  ConductivityElementProtocol   — 透水行列
  RhsElementProtocol            — 反復に依存しない流れのソース項
  UpdateElementProtocol         — 内力・流量の更新
  NodalValuesElementProtocol    — 積分点状態量の節点への外挿
"""

from __future__ import annotations

import enum
from typing import Any, Protocol, runtime_checkable

import numpy as np

from hmcae.core.context import AnalysisContext
from hmcae.core.results import ElementMatrix, ElementVector


class Capability(enum.Flag):
    """要素の能力フラグ."""

    NONE = 0
    STIFFNESS = enum.auto()
    COUPLING = enum.auto()
    CONDUCTIVITY = enum.auto()
    RHS = enum.auto()
    UPDATE = enum.auto()
    DISTRIBUTED_BC = enum.auto()
    INIT = enum.auto()
    NODAL_VALUES = enum.auto()


@runtime_checkable
class ElementProtocol(Protocol):
    """有限要素の共通インタフェース.

    Attributes:
        id: 要素ID
        nodes: 節点リスト
        ips: 積分点リスト
        capabilities: 能力フラグ
    """

    id: int
    nodes: list[Any]
    ips: list[Any]
    capabilities: Capability

    def has(self, cap: Capability) -> bool:
        """能力 cap を持つか."""
        ...


@runtime_checkable
class StiffnessElementProtocol(ElementProtocol, Protocol):
    def stiffness(self, ctx: AnalysisContext) -> ElementMatrix:
        """剛性行列 K = Σ Bᵀ D B |J| w を返す."""
        ...


@runtime_checkable
class CouplingElementProtocol(ElementProtocol, Protocol):
    def coupling_matrix(self, ctx: AnalysisContext) -> ElementMatrix:
        """連成行列 Cup（行: 変位, 列: 間隙水圧）を返す."""
        ...


@runtime_checkable
class ConductivityElementProtocol(ElementProtocol, Protocol):
    def conductivity_matrix(self, ctx: AnalysisContext) -> ElementMatrix:
        """透水行列 H を返す."""
        ...

    def pressure_values(self) -> np.ndarray:
        """確定済みの節点間隙水圧を返す."""
        ...


@runtime_checkable
class RhsElementProtocol(ElementProtocol, Protocol):
    def rhs_vector(self, ctx: AnalysisContext) -> ElementVector:
        """重力による流れのソース項 Q を返す."""
        ...


@runtime_checkable
class UpdateElementProtocol(ElementProtocol, Protocol):
    def update(
        self, dU: np.ndarray, dF: np.ndarray, dt: float, ctx: AnalysisContext
    ) -> ElementVector:
        """増分 dU から試行状態を更新し、内力・流量増分を dF に加算する.

        Args:
            dU: (ndofs,) 全体の本質量増分（確定状態から）
            dF: (ndofs,) 内力・流量増分の累積先
            dt: 時間増分
            ctx: 解析コンテキスト

        Returns:
            ElementVector: 要素の内力・流量増分と方程式番号
        """
        ...


@runtime_checkable
class NodalValuesElementProtocol(ElementProtocol, Protocol):
    def nodal_values(self, ctx: AnalysisContext) -> dict[str, np.ndarray]:
        """積分点の状態量を節点へ外挿した値（量名 → (nnodes,) 配列）を返す."""
        ...
