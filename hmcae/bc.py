"""境界条件.

NodeBC — 節点に本質量（ux, uy, uz, uw）または自然量（fx, fy, fz, fw）を与える。
FaceBC — 境界ファセットに本質量、または分布荷重（tx, ty, tz, tn）を与える。

値は定数、または関数 f(t, x, y, z)。境界条件は読み取り専用で、
configure_dofs が方程式番号を割り当て（未知自由度が先）、
get_bc_vals が時刻 t での規定値を評価する。
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Union

import numpy as np

from hmcae.core.element import Capability
from hmcae.core.errors import BoundaryConditionError

if TYPE_CHECKING:
    from hmcae.domain import Dof, Domain, Node

BCValue = Union[float, Callable[[float, float, float, float], float]]

ESSENTIAL_KEYS = ("ux", "uy", "uz", "uw")
NATURAL_KEYS = ("fx", "fy", "fz", "fw")
TRACTION_KEYS = ("tx", "ty", "tz", "tn")
_OUT_OF_PLANE = ("uz", "fz", "tz")


def _as_function(value: BCValue) -> Callable[[float, float, float, float], float]:
    if callable(value):
        return value
    v = float(value)
    return lambda t, x, y, z: v


def _check_plane(key: str, ndim: int) -> None:
    if ndim == 2 and key in _OUT_OF_PLANE:
        raise BoundaryConditionError(f"境界条件 {key} は2次元解析では適用できない")
    if ndim == 1 and key[1] in "yz" and key not in ("uw", "fw"):
        raise BoundaryConditionError(f"境界条件 {key} は1次元解析では適用できない")


class NodeBC:
    """節点境界条件.

    Args:
        selector: "all"、節点IDの列、または (x, y, z) -> bool
        **conds: 自由度名 → 値（定数または f(t, x, y, z)）

    Example:
        NodeBC(lambda x, y, z: y == 0.0, ux=0.0, uy=0.0)
    """

    def __init__(self, selector, **conds: BCValue) -> None:
        if not conds:
            raise BoundaryConditionError("NodeBC に条件がない")
        for key in conds:
            if key not in ESSENTIAL_KEYS + NATURAL_KEYS:
                raise BoundaryConditionError(f"NodeBC に適用できない条件: {key}")
        self.selector = selector
        self.conds = {k: _as_function(v) for k, v in conds.items()}
        self.nodes: list[Node] = []

    def bind(self, domain: Domain) -> None:
        try:
            self.nodes = domain.select_nodes(self.selector)
        except (ValueError, IndexError, TypeError) as err:
            raise BoundaryConditionError(
                f"NodeBC {list(self.conds)} の節点選択に失敗: {err}"
            ) from err
        for key in self.conds:
            _check_plane(key, domain.ndim)
            for node in self.nodes:
                if not node.has_dof(key):
                    raise BoundaryConditionError(f"節点 {node.id} に自由度 {key} がない")

    def essential_dofs(self) -> list[Dof]:
        return [
            node.dofs[key] for node in self.nodes for key in self.conds if key in ESSENTIAL_KEYS
        ]

    def apply(self, domain: Domain, t: float, U: np.ndarray, F: np.ndarray) -> None:
        for node in self.nodes:
            x, y, z = node.X
            for key, fun in self.conds.items():
                dof = node.get_dof(key)
                val = fun(t, x, y, z)
                if key in ESSENTIAL_KEYS:
                    U[dof.eq_id] = val
                else:
                    F[dof.eq_id] += val

    def __repr__(self) -> str:
        return f"NodeBC({list(self.conds)}, nodes={len(self.nodes)})"


class FaceBC:
    """境界ファセットの境界条件.

    Args:
        selector: "all" または ファセット重心 (x, y, z) -> bool
        **conds: "ux", "uy", "uz", "uw"（ファセット節点に規定）または
            "tx", "ty", "tz", "tn"（分布荷重）→ 値

    Example:
        FaceBC(lambda x, y, z: y == 1.0, ty=-10.0)
    """

    def __init__(self, selector, **conds: BCValue) -> None:
        if not conds:
            raise BoundaryConditionError("FaceBC に条件がない")
        for key in conds:
            if key not in ESSENTIAL_KEYS + TRACTION_KEYS:
                raise BoundaryConditionError(f"FaceBC に適用できない条件: {key}")
        self.selector = selector
        self.conds = {k: _as_function(v) for k, v in conds.items()}
        self.faces = []

    def bind(self, domain: Domain) -> None:
        try:
            self.faces = domain.select_faces(self.selector)
        except (ValueError, TypeError) as err:
            raise BoundaryConditionError(
                f"FaceBC {list(self.conds)} のファセット選択に失敗: {err}"
            ) from err
        for key in self.conds:
            _check_plane(key, domain.ndim)
            for face in self.faces:
                if key in TRACTION_KEYS:
                    if not face.elem.has(Capability.DISTRIBUTED_BC):
                        raise BoundaryConditionError(
                            f"要素 {face.elem.id} は分布荷重 {key} に対応しない"
                        )
                    continue
                for node in face.nodes:
                    if not node.has_dof(key):
                        raise BoundaryConditionError(f"節点 {node.id} に自由度 {key} がない")

    def essential_dofs(self) -> list[Dof]:
        return [
            node.dofs[key]
            for face in self.faces
            for node in face.nodes
            for key in self.conds
            if key in ESSENTIAL_KEYS
        ]

    def apply(self, domain: Domain, t: float, U: np.ndarray, F: np.ndarray) -> None:
        ctx = domain.ctx.at(t)
        for key, fun in self.conds.items():
            if key in ESSENTIAL_KEYS:
                for face in self.faces:
                    for node in face.nodes:
                        U[node.dofs[key].eq_id] = fun(t, *node.X)
            else:
                for face in self.faces:
                    vec, rmap = face.elem.distributed_bc(face, key, fun, ctx)
                    np.add.at(F, rmap, vec)

    def __repr__(self) -> str:
        return f"FaceBC({list(self.conds)}, faces={len(self.faces)})"


def configure_dofs(domain: Domain, bcs: list) -> tuple[list[Dof], int]:
    """自由度に方程式番号を割り当てる（未知自由度が先、規定自由度が後）.

    Args:
        domain: 解析領域
        bcs: 境界条件のリスト

    Returns:
        (dofs, nu): 方程式番号順の自由度リストと未知自由度数

    Raises:
        BoundaryConditionError: 不正な境界条件
    """
    dofs = list(domain.iter_dofs())
    for dof in dofs:
        dof.prescribed = False
    for bc in bcs:
        bc.bind(domain)
        for dof in bc.essential_dofs():
            dof.prescribed = True

    unknown = [d for d in dofs if not d.prescribed]
    prescribed = [d for d in dofs if d.prescribed]
    ordered = unknown + prescribed
    for i, dof in enumerate(ordered):
        dof.eq_id = i
    return ordered, len(unknown)


def get_bc_vals(domain: Domain, bcs: list, t: float) -> tuple[np.ndarray, np.ndarray]:
    """時刻 t の本質量・自然量の規定値ベクトルを返す.

    Returns:
        (U, F): (ndofs,) の規定本質量と外力・外部流量
    """
    U = np.zeros(domain.ndofs)
    F = np.zeros(domain.ndofs)
    for bc in bcs:
        bc.apply(domain, t, U, F)
    return U, F
