"""固体要素の共通運動学.

ひずみ・応力は Mandel 表記 6 成分:
  ε = [εxx, εyy, εzz, √2 εyz, √2 εxz, √2 εxy]
平面問題では成分 1, 2, 6 のみが変位勾配から埋まる（εzz は構成則側で扱う）。
"""

from __future__ import annotations

from collections.abc import Callable

import numpy as np

from hmcae.core.context import AnalysisContext
from hmcae.core.errors import BoundaryConditionError, GeometryError
from hmcae.core.results import ElementVector
from hmcae.elements.base import DISP_KEYS, Element, Facet, nodes_coords

SR2 = np.sqrt(2.0)

# 体積ひずみ抽出ベクトル m（Mandel 表記の恒等テンソル）
MANDEL_I = np.array([1.0, 1.0, 1.0, 0.0, 0.0, 0.0])

DISTRIBUTED_KEYS = ("tx", "ty", "tz", "tn")


def gravity_direction(ndim: int) -> np.ndarray:
    """最終軸方向の単位ベクトル（鉛直上向き）を返す."""
    e = np.zeros(ndim)
    e[-1] = 1.0
    return e


def shape_gradients(
    dNdR: np.ndarray, C: np.ndarray, elem_id: int
) -> tuple[np.ndarray, float]:
    """物理座標での形状関数勾配 dN/dX とヤコビアン行列式を返す.

    Args:
        dNdR: (ndim, nnodes) 局所座標微分
        C: (nnodes, ndim) 節点座標
        elem_id: 要素ID（エラー報告用）

    Returns:
        (dNdX, detJ)

    Raises:
        GeometryError: detJ ≤ 0（反転・縮退要素）
    """
    J = dNdR @ C
    detJ = float(np.linalg.det(J))
    if not detJ > 0.0:
        raise GeometryError(f"要素 {elem_id} のヤコビアン行列式が非正: {detJ:.6g}", elem_id=elem_id)
    return np.linalg.solve(J, dNdR), detJ


def set_Bu(ctx: AnalysisContext, dNdX: np.ndarray, B: np.ndarray) -> None:
    """ひずみ-変位行列 Bu (6, nnodes*ndim) を埋める."""
    ndim, nnodes = dNdX.shape
    B[:] = 0.0
    if ndim == 2:
        for i in range(nnodes):
            j = i * ndim
            B[0, j] = dNdX[0, i]
            B[1, j + 1] = dNdX[1, i]
            B[5, j] = dNdX[1, i] / SR2
            B[5, j + 1] = dNdX[0, i] / SR2
    else:
        for i in range(nnodes):
            dx, dy, dz = dNdX[:, i]
            j = i * ndim
            B[0, j] = dx
            B[1, j + 1] = dy
            B[2, j + 2] = dz
            B[3, j + 1] = dz / SR2
            B[3, j + 2] = dy / SR2
            B[4, j] = dz / SR2
            B[4, j + 2] = dx / SR2
            B[5, j] = dy / SR2
            B[5, j + 1] = dx / SR2


def thickness_factor(ctx: AnalysisContext) -> float:
    return ctx.thickness if ctx.ndim == 2 else 1.0


def distributed_bc(
    elem: Element,
    facet: Facet | None,
    key: str,
    fun: Callable[[float, float, float, float], float],
    ctx: AnalysisContext,
) -> ElementVector:
    """分布荷重を積分して節点力ベクトルを返す.

    Args:
        elem: 対象要素
        facet: 対象ファセット（None で要素全体に物体力として作用）
        key: "tx", "ty", "tz"（座標軸方向）または "tn"（外向き法線方向）
        fun: f(t, x, y, z) → 荷重強度
        ctx: 解析コンテキスト

    Returns:
        ElementVector: 節点力と方程式番号

    Raises:
        BoundaryConditionError: 2D 解析での "tz"、または未知のキー
    """
    ndim = ctx.ndim
    if key == "tz" and ndim == 2:
        raise BoundaryConditionError(f"分布荷重 {key} は2次元解析では適用できない")
    if key not in DISTRIBUTED_KEYS:
        raise BoundaryConditionError(f"分布荷重 {key} は {type(elem).__name__} に適用できない")

    if facet is not None:
        nodes, shape = facet.nodes, facet.shape
    else:
        nodes, shape = elem.nodes, elem.shape
    nnodes = len(nodes)
    C = nodes_coords(nodes, ndim)
    th = thickness_factor(ctx)

    F = np.zeros((nnodes, ndim))
    for row in shape.ip_table():
        R, w = row[:-1], row[-1]
        N = shape.func(R)
        J = shape.deriv(R) @ C
        X = np.zeros(3)
        X[:ndim] = N @ C
        val = fun(ctx.t, *X)

        if facet is None:
            nJ = abs(np.linalg.det(J))
        elif ndim == 2:
            nJ = np.linalg.norm(J)
        else:
            nJ = np.linalg.norm(np.cross(J[0], J[1]))

        Q = np.zeros(ndim)
        if key == "tn":
            if facet is None:
                raise BoundaryConditionError("法線方向荷重 tn はファセットにのみ適用できる")
            if ndim == 2:
                n = np.array([J[0, 1], -J[0, 0]])
            else:
                n = np.cross(J[0], J[1])
            Q = val * n / np.linalg.norm(n)
        else:
            Q["xyz".index(key[1])] = val
        F += np.outer(N, Q) * (nJ * w * th)

    keys = DISP_KEYS[:ndim]
    rmap = np.array([n.dofs[k].eq_id for n in nodes for k in keys], dtype=int)
    return ElementVector(F.ravel(), rmap)
