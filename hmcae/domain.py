"""解析領域モデル.

Dof / Node / Domain を定義する。Domain はメッシュと材料割り当てから要素を生成し、
節点自由度・積分点・境界ファセット・インクリメント/ステージカウンタを保持する。
Domain は解析を通じて唯一の可変な所有者で、複数ステージにわたって持続する。
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from hmcae.core.context import AnalysisContext
from hmcae.core.element import Capability
from hmcae.core.state import Ip
from hmcae.elements import ELEMENT_TYPES
from hmcae.elements.base import Element, Facet
from hmcae.mesh import Mesh

if TYPE_CHECKING:
    from hmcae.core.constitutive import MaterialProtocol
    from hmcae.loggers import Logger


class Dof:
    """自由度.

    Attributes:
        name: 本質量の名前（"ux", "uy", "uz", "uw"）
        natname: 共役な自然量の名前（"fx", "fy", "fz", "fw"）
        eq_id: 方程式番号（configure_dofs で割り当て、未割り当ては -1）
        prescribed: 規定自由度か
        value: 現在の本質量
        nat_value: 現在の自然量
    """

    __slots__ = ("name", "natname", "eq_id", "prescribed", "value", "nat_value")

    def __init__(self, name: str, natname: str) -> None:
        self.name = name
        self.natname = natname
        self.eq_id = -1
        self.prescribed = False
        self.value = 0.0
        self.nat_value = 0.0

    def __repr__(self) -> str:
        return f"Dof({self.name}, eq_id={self.eq_id}, value={self.value:.6g})"


class Node:
    """節点.

    Attributes:
        id: 節点ID（0始まり）
        X: (3,) 座標
        dofs: 本質量名 → Dof
    """

    def __init__(self, id: int, X: np.ndarray) -> None:
        self.id = id
        self.X = np.asarray(X, dtype=float)
        self.dofs: dict[str, Dof] = {}

    def add_dof(self, name: str, natname: str) -> Dof:
        if name not in self.dofs:
            self.dofs[name] = Dof(name, natname)
        return self.dofs[name]

    def get_dof(self, key: str) -> Dof | None:
        """本質量名または自然量名で自由度を返す."""
        if key in self.dofs:
            return self.dofs[key]
        for dof in self.dofs.values():
            if dof.natname == key:
                return dof
        return None

    def has_dof(self, key: str) -> bool:
        return self.get_dof(key) is not None

    def value(self, key: str) -> float:
        """本質量名または自然量名で現在値を返す."""
        dof = self.get_dof(key)
        if dof is None:
            raise KeyError(f"節点 {self.id} に自由度 {key} がない")
        return dof.value if dof.name == key else dof.nat_value

    def __repr__(self) -> str:
        return f"Node(id={self.id}, X={self.X.tolist()}, dofs={list(self.dofs)})"


@dataclass
class MaterialBind:
    """セルタグと材料の対応.

    Attributes:
        tag: 対象セルのタグ（None で全セル）
        material: 材料
    """

    tag: str | None
    material: MaterialProtocol


class Domain:
    """解析領域.

    Args:
        mesh: メッシュ
        materials: 材料割り当てのリスト。先に一致したものが優先。
        model_type: 2D 解析モデル（"plane_strain", "plane_stress"）。3D では無視。
        thickness: 平面問題の厚み
        loggers: 追跡するロガー

    Raises:
        NotImplementedError: 軸対称解析が指定された場合
        ValueError: 材料が割り当てられないセルがある場合
    """

    def __init__(
        self,
        mesh: Mesh,
        materials: list[MaterialBind],
        model_type: str | None = None,
        thickness: float = 1.0,
        loggers: list[Logger] | None = None,
    ) -> None:
        if model_type is None:
            model_type = "3d" if mesh.ndim == 3 else "plane_strain"
        if model_type == "axisymmetric":
            # 軸対称のひずみ演算子は検証用の数値参照解がないため受け付けない
            raise NotImplementedError("軸対称解析は未対応")

        self.ctx = AnalysisContext(ndim=mesh.ndim, model_type=model_type, thickness=thickness)
        self.nodes = [Node(i, X) for i, X in enumerate(mesh.points)]
        self.elems: list[Element] = []
        self.stage = 0
        self.nincs = 0
        self.nouts = 0
        self.ndofs = 0
        self.initialized = False

        cell_to_elem: dict[int, Element] = {}
        for cell in mesh.cells:
            mat = self._find_material(materials, cell.tag)
            if mat is None:
                raise ValueError(f"セル {cell.id} (tag={cell.tag!r}) に材料が割り当てられていない")
            cls = ELEMENT_TYPES.get(mat.element_type)
            if cls is None:
                raise ValueError(f"未知の要素型: {mat.element_type}")
            elem = cls(
                id=len(self.elems),
                shape=cell.shape,
                nodes=[self.nodes[i] for i in cell.nodes],
                material=mat,
                tag=cell.tag,
            )
            elem.setup(self.ctx)
            self.elems.append(elem)
            cell_to_elem[cell.id] = elem

        for cell in mesh.cells:
            if cell.linked:
                cell_to_elem[cell.id].linked_elems = [cell_to_elem[c] for c in cell.linked]

        self.faces = self._boundary_facets()
        self.loggers: list[Logger] = []
        for logger in loggers or []:
            self.add_logger(logger)

    @staticmethod
    def _find_material(materials: list[MaterialBind], tag: str) -> MaterialProtocol | None:
        for bind in materials:
            if bind.tag is None or bind.tag == tag:
                return bind.material
        return None

    def _boundary_facets(self) -> list[Facet]:
        count: dict[frozenset[int], list[Facet]] = {}
        for elem in self.elems:
            if not elem.has(Capability.DISTRIBUTED_BC):
                continue
            for facet in elem.facets():
                count.setdefault(frozenset(n.id for n in facet.nodes), []).append(facet)
        return [fs[0] for fs in count.values() if len(fs) == 1]

    def initialize(self) -> None:
        """要素の一度きりの初期化（ジョイント厚の算出など）を行う.

        Raises:
            GeometryError: 縮退した要素がある場合
        """
        if self.initialized:
            return
        for elem in self.elems:
            if elem.has(Capability.INIT):
                elem.init(self.ctx)
        self.initialized = True

    def add_logger(self, logger: Logger) -> None:
        logger.bind(self)
        self.loggers.append(logger)

    def update_loggers(self) -> None:
        for logger in self.loggers:
            logger.update(self)

    @property
    def ndim(self) -> int:
        return self.ctx.ndim

    @property
    def t(self) -> float:
        return self.ctx.t

    @property
    def ips(self) -> list[Ip]:
        return [ip for elem in self.elems for ip in elem.ips]

    def iter_dofs(self) -> Iterator[Dof]:
        for node in self.nodes:
            yield from node.dofs.values()

    def select_nodes(self, selector) -> list[Node]:
        """節点を選択する.

        Args:
            selector: "all"、節点IDの列、または (x, y, z) -> bool
        """
        if isinstance(selector, str):
            if selector == "all":
                return list(self.nodes)
            raise ValueError(f"未知の節点セレクタ: {selector!r}")
        if callable(selector):
            return [n for n in self.nodes if n.dofs and selector(*n.X)]
        ids = list(selector)
        n = len(self.nodes)
        bad = [i for i in ids if not 0 <= i < n]
        if bad:
            raise IndexError(f"節点IDが範囲外: {bad} (節点数 {n})")
        return [self.nodes[i] for i in ids]

    def select_faces(self, selector) -> list[Facet]:
        """境界ファセットを重心座標で選択する."""
        if isinstance(selector, str):
            if selector == "all":
                return list(self.faces)
            raise ValueError(f"未知のファセットセレクタ: {selector!r}")
        return [f for f in self.faces if selector(*f.centroid())]

    def select_elems(self, selector) -> list[Element]:
        """要素をタグ、ID列、または重心座標で選択する."""
        if isinstance(selector, str):
            if selector == "all":
                return list(self.elems)
            return [e for e in self.elems if e.tag == selector]
        if callable(selector):
            return [e for e in self.elems if selector(*e.centroid())]
        return [self.elems[i] for i in selector]

    def __repr__(self) -> str:
        return (
            f"Domain(ndim={self.ndim}, nodes={len(self.nodes)}, elems={len(self.elems)}, "
            f"stage={self.stage})"
        )
