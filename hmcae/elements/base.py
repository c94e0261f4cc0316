"""要素の基底クラスと境界ファセット."""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

import numpy as np

from hmcae.core.context import AnalysisContext
from hmcae.core.element import Capability
from hmcae.core.state import Ip
from hmcae.shapes import ShapeType

if TYPE_CHECKING:
    from hmcae.core.constitutive import MaterialProtocol
    from hmcae.domain import Node

DISP_KEYS = ("ux", "uy", "uz")
FORCE_KEYS = ("fx", "fy", "fz")


def nodes_coords(nodes: list[Node], ndim: int) -> np.ndarray:
    """節点座標行列 (nnodes, ndim) を返す."""
    return np.array([n.X[:ndim] for n in nodes])


class Element:
    """要素の基底クラス.

    サブクラスは capabilities に能力フラグを宣言し、対応する演算を実装する。

    Attributes:
        id: 要素ID
        shape: 形状
        nodes: 節点リスト
        material: 材料
        tag: タグ
        ips: 積分点リスト
        linked_elems: 連結要素（ジョイント用）
    """

    capabilities: ClassVar[Capability] = Capability.NONE

    def __init__(
        self,
        id: int,
        shape: ShapeType,
        nodes: list[Node],
        material: MaterialProtocol,
        tag: str = "",
    ) -> None:
        self.id = id
        self.shape = shape
        self.nodes = nodes
        self.material = material
        self.tag = tag
        self.ips: list[Ip] = []
        self.linked_elems: list[Element] = []

    def has(self, cap: Capability) -> bool:
        return cap in self.capabilities

    # ------------------------------------------------------------------
    # セットアップ
    # ------------------------------------------------------------------

    def dof_keys(self, ctx: AnalysisContext) -> list[tuple[str, str]]:
        """節点に追加する (本質量名, 自然量名) の列."""
        return list(zip(DISP_KEYS[: ctx.ndim], FORCE_KEYS[: ctx.ndim]))

    def setup(self, ctx: AnalysisContext) -> None:
        """自由度の追加と積分点の生成を行う."""
        for node in self.nodes:
            for name, natname in self.dof_keys(ctx):
                node.add_dof(name, natname)

        shape = self.shape.basic_shape
        C = nodes_coords(self.nodes[: shape.npoints], 3)
        table = shape.ip_table()
        self.ips = []
        for i, row in enumerate(table):
            ip = Ip(i + 1, row[:-1], row[-1], owner=self)
            ip.X = shape.func(ip.R) @ C
            ip.init_state(self.material.new_state(ctx))
            self.ips.append(ip)

    def init(self, ctx: AnalysisContext) -> None:
        """一度きりの初期化（既定では何もしない）."""

    # ------------------------------------------------------------------
    # ユーティリティ
    # ------------------------------------------------------------------

    def coords(self, ndim: int) -> np.ndarray:
        return nodes_coords(self.nodes, ndim)

    def dof_map(self, keys: tuple[str, ...] | list[str]) -> np.ndarray:
        """節点順・キー順の方程式番号を返す."""
        return np.array([node.dofs[k].eq_id for node in self.nodes for k in keys], dtype=int)

    def centroid(self) -> np.ndarray:
        return np.mean([n.X for n in self.nodes], axis=0)

    def facets(self) -> list[Facet]:
        return [
            Facet(self, [self.nodes[i] for i in idxs], self.shape.facet_shape)
            for idxs in self.shape.facet_idxs
        ]

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id}, shape={self.shape.name}, tag={self.tag!r})"


class Facet:
    """要素の境界ファセット.

    Attributes:
        elem: 所属要素
        nodes: ファセット節点（外向き法線が得られる順）
        shape: ファセット形状
    """

    def __init__(self, elem: Element, nodes: list[Node], shape: ShapeType) -> None:
        self.elem = elem
        self.nodes = nodes
        self.shape = shape

    def centroid(self) -> np.ndarray:
        return np.mean([n.X for n in self.nodes], axis=0)

    def __repr__(self) -> str:
        return f"Facet(elem={self.elem.id}, nodes={[n.id for n in self.nodes]})"
