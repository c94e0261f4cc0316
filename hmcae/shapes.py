"""形状関数・Gauss 積分点テーブル・ファセット定義.

対応形状:
  LIN2, LIN3          — 1次元（ロッド、2D ファセット）
  TRI3, QUAD4, QUAD8  — 2次元（固体、3D ファセット）
  TET4, HEX8          — 3次元固体
  JLIN2, JTRI3, JQUAD4 — ジョイント（下面節点 → 上面節点の順、基本形状を積分に使用）

ファセットの節点順は外向き法線が得られる向き:
  2D: 反時計回り。接線 T に対して n = (T_y, -T_x) が外向き。
  3D: ファセット接線 T1 × T2 が外向き。
"""

from __future__ import annotations

from collections.abc import Callable

import numpy as np

# ====================================================================
# Gauss 積分点
# ====================================================================

_GAUSS_1D = {
    1: (np.array([0.0]), np.array([2.0])),
    2: (np.array([-1.0, 1.0]) / np.sqrt(3.0), np.array([1.0, 1.0])),
    3: (
        np.array([-np.sqrt(0.6), 0.0, np.sqrt(0.6)]),
        np.array([5.0, 8.0, 5.0]) / 9.0,
    ),
}


def _gauss_line(n: int) -> np.ndarray:
    r, w = _GAUSS_1D[n]
    return np.column_stack([r, w])


def _gauss_quad(n: int) -> np.ndarray:
    r, w = _GAUSS_1D[n]
    rows = [(r[i], r[j], w[i] * w[j]) for j in range(n) for i in range(n)]
    return np.array(rows, dtype=float)


def _gauss_hex(n: int) -> np.ndarray:
    r, w = _GAUSS_1D[n]
    rows = [
        (r[i], r[j], r[k], w[i] * w[j] * w[k])
        for k in range(n)
        for j in range(n)
        for i in range(n)
    ]
    return np.array(rows, dtype=float)


def _gauss_tri(n: int) -> np.ndarray:
    if n == 1:
        return np.array([[1.0 / 3.0, 1.0 / 3.0, 0.5]])
    if n == 3:
        a, b = 1.0 / 6.0, 2.0 / 3.0
        return np.array([[a, a, 1.0 / 6.0], [b, a, 1.0 / 6.0], [a, b, 1.0 / 6.0]])
    raise ValueError(f"三角形の積分点数は 1 または 3: {n}")


def _gauss_tet(n: int) -> np.ndarray:
    if n == 1:
        return np.array([[0.25, 0.25, 0.25, 1.0 / 6.0]])
    if n == 4:
        a = 0.5854101966249685
        b = 0.1381966011250105
        w = 1.0 / 24.0
        return np.array([[b, b, b, w], [a, b, b, w], [b, a, b, w], [b, b, a, w]])
    raise ValueError(f"四面体の積分点数は 1 または 4: {n}")


# ====================================================================
# 形状クラス
# ====================================================================


class ShapeType:
    """要素形状の定義.

    Attributes:
        name: 形状名
        ndim: 局所座標の次元
        npoints: 節点数
        facet_idxs: ファセットごとの節点インデックス
        facet_shape: ファセットの形状（1次元形状では None）
        basic_shape: ジョイント形状の基本形状（固体形状では自身）
        default_nips: 既定の積分点数
    """

    def __init__(
        self,
        name: str,
        ndim: int,
        npoints: int,
        func: Callable[[np.ndarray], np.ndarray],
        deriv: Callable[[np.ndarray], np.ndarray],
        ip_tables: dict[int, Callable[[int], np.ndarray]],
        default_nips: int,
        facet_idxs: list[list[int]] | None = None,
        facet_shape: ShapeType | None = None,
    ) -> None:
        self.name = name
        self.ndim = ndim
        self.npoints = npoints
        self._func = func
        self._deriv = deriv
        self._ip_tables = ip_tables
        self.default_nips = default_nips
        self.facet_idxs = facet_idxs or []
        self.facet_shape = facet_shape
        self.basic_shape: ShapeType = self
        self.is_joint = False

    def func(self, R: np.ndarray) -> np.ndarray:
        """形状関数 N (npoints,) を返す."""
        return self._func(np.asarray(R, dtype=float))

    def deriv(self, R: np.ndarray) -> np.ndarray:
        """形状関数の局所座標微分 dN/dR (ndim, npoints) を返す."""
        return self._deriv(np.asarray(R, dtype=float))

    def ip_table(self, nips: int | None = None) -> np.ndarray:
        """積分点テーブル (nips, ndim+1) を返す。各行は局所座標と重み."""
        n = self.default_nips if nips is None else nips
        if n not in self._ip_tables:
            raise ValueError(f"{self.name}: 積分点数 {n} は未対応 ({sorted(self._ip_tables)})")
        return self._ip_tables[n](n)

    def __repr__(self) -> str:
        return f"ShapeType({self.name})"


class JointShapeType(ShapeType):
    """ジョイント形状.

    節点は基本形状の下面節点、続いて同じ順の上面節点。積分は基本形状で行う。
    """

    def __init__(self, name: str, basic_shape: ShapeType) -> None:
        super().__init__(
            name=name,
            ndim=basic_shape.ndim,
            npoints=2 * basic_shape.npoints,
            func=basic_shape.func,
            deriv=basic_shape.deriv,
            ip_tables=basic_shape._ip_tables,
            default_nips=basic_shape.default_nips,
        )
        self.basic_shape = basic_shape
        self.facet_shape = basic_shape
        self.is_joint = True


# ====================================================================
# 1次元
# ====================================================================


def _lin2_func(R):
    r = R[0]
    return np.array([0.5 * (1.0 - r), 0.5 * (1.0 + r)])


def _lin2_deriv(R):
    return np.array([[-0.5, 0.5]])


def _lin3_func(R):
    # 節点順: 端点 -1, 端点 +1, 中点
    r = R[0]
    return np.array([0.5 * r * (r - 1.0), 0.5 * r * (r + 1.0), 1.0 - r * r])


def _lin3_deriv(R):
    r = R[0]
    return np.array([[r - 0.5, r + 0.5, -2.0 * r]])


LIN2 = ShapeType("LIN2", 1, 2, _lin2_func, _lin2_deriv, {n: _gauss_line for n in (1, 2, 3)}, 2)
LIN3 = ShapeType("LIN3", 1, 3, _lin3_func, _lin3_deriv, {n: _gauss_line for n in (2, 3)}, 3)

# ====================================================================
# 2次元
# ====================================================================


def _tri3_func(R):
    r, s = R[0], R[1]
    return np.array([1.0 - r - s, r, s])


def _tri3_deriv(R):
    return np.array([[-1.0, 1.0, 0.0], [-1.0, 0.0, 1.0]])


_Q4_NODES = np.array([[-1.0, -1.0], [1.0, -1.0], [1.0, 1.0], [-1.0, 1.0]])


def _quad4_func(R):
    r, s = R[0], R[1]
    return 0.25 * (1.0 + _Q4_NODES[:, 0] * r) * (1.0 + _Q4_NODES[:, 1] * s)


def _quad4_deriv(R):
    r, s = R[0], R[1]
    ri, si = _Q4_NODES[:, 0], _Q4_NODES[:, 1]
    return 0.25 * np.array([ri * (1.0 + si * s), si * (1.0 + ri * r)])


def _quad8_func(R):
    # 節点順: 角 4 点（反時計回り）、辺中点 4 点（辺 0-1, 1-2, 2-3, 3-0）
    r, s = R[0], R[1]
    N = np.empty(8)
    for i in range(4):
        ri, si = _Q4_NODES[i]
        N[i] = 0.25 * (1.0 + ri * r) * (1.0 + si * s) * (ri * r + si * s - 1.0)
    N[4] = 0.5 * (1.0 - r * r) * (1.0 - s)
    N[5] = 0.5 * (1.0 + r) * (1.0 - s * s)
    N[6] = 0.5 * (1.0 - r * r) * (1.0 + s)
    N[7] = 0.5 * (1.0 - r) * (1.0 - s * s)
    return N


def _quad8_deriv(R):
    r, s = R[0], R[1]
    D = np.empty((2, 8))
    for i in range(4):
        ri, si = _Q4_NODES[i]
        D[0, i] = 0.25 * ri * (1.0 + si * s) * (2.0 * ri * r + si * s)
        D[1, i] = 0.25 * si * (1.0 + ri * r) * (ri * r + 2.0 * si * s)
    D[:, 4] = [-r * (1.0 - s), -0.5 * (1.0 - r * r)]
    D[:, 5] = [0.5 * (1.0 - s * s), -(1.0 + r) * s]
    D[:, 6] = [-r * (1.0 + s), 0.5 * (1.0 - r * r)]
    D[:, 7] = [-0.5 * (1.0 - s * s), -(1.0 - r) * s]
    return D


TRI3 = ShapeType(
    "TRI3", 2, 3, _tri3_func, _tri3_deriv, {1: _gauss_tri, 3: _gauss_tri}, 3,
    facet_idxs=[[0, 1], [1, 2], [2, 0]],
    facet_shape=LIN2,
)
QUAD4 = ShapeType(
    "QUAD4", 2, 4, _quad4_func, _quad4_deriv, {n: _gauss_quad for n in (1, 2, 3)}, 2,
    facet_idxs=[[0, 1], [1, 2], [2, 3], [3, 0]],
    facet_shape=LIN2,
)
QUAD8 = ShapeType(
    "QUAD8", 2, 8, _quad8_func, _quad8_deriv, {n: _gauss_quad for n in (2, 3)}, 3,
    facet_idxs=[[0, 1, 4], [1, 2, 5], [2, 3, 6], [3, 0, 7]],
    facet_shape=LIN3,
)

# ====================================================================
# 3次元
# ====================================================================


def _tet4_func(R):
    r, s, t = R[0], R[1], R[2]
    return np.array([1.0 - r - s - t, r, s, t])


def _tet4_deriv(R):
    return np.array(
        [[-1.0, 1.0, 0.0, 0.0], [-1.0, 0.0, 1.0, 0.0], [-1.0, 0.0, 0.0, 1.0]]
    )


_HEX8_NODES = np.array(
    [
        [-1.0, -1.0, -1.0],
        [1.0, -1.0, -1.0],
        [1.0, 1.0, -1.0],
        [-1.0, 1.0, -1.0],
        [-1.0, -1.0, 1.0],
        [1.0, -1.0, 1.0],
        [1.0, 1.0, 1.0],
        [-1.0, 1.0, 1.0],
    ]
)


def _hex8_func(R):
    r, s, t = R[0], R[1], R[2]
    X = _HEX8_NODES
    return 0.125 * (1.0 + X[:, 0] * r) * (1.0 + X[:, 1] * s) * (1.0 + X[:, 2] * t)


def _hex8_deriv(R):
    r, s, t = R[0], R[1], R[2]
    ri, si, ti = _HEX8_NODES[:, 0], _HEX8_NODES[:, 1], _HEX8_NODES[:, 2]
    return 0.125 * np.array(
        [
            ri * (1.0 + si * s) * (1.0 + ti * t),
            si * (1.0 + ri * r) * (1.0 + ti * t),
            ti * (1.0 + ri * r) * (1.0 + si * s),
        ]
    )


TET4 = ShapeType(
    "TET4", 3, 4, _tet4_func, _tet4_deriv, {1: _gauss_tet, 4: _gauss_tet}, 4,
    facet_idxs=[[0, 2, 1], [0, 1, 3], [0, 3, 2], [1, 2, 3]],
    facet_shape=TRI3,
)
HEX8 = ShapeType(
    "HEX8", 3, 8, _hex8_func, _hex8_deriv, {n: _gauss_hex for n in (1, 2, 3)}, 2,
    facet_idxs=[
        [0, 3, 2, 1],
        [4, 5, 6, 7],
        [0, 1, 5, 4],
        [1, 2, 6, 5],
        [2, 3, 7, 6],
        [3, 0, 4, 7],
    ],
    facet_shape=QUAD4,
)

# ====================================================================
# ジョイント
# ====================================================================

JLIN2 = JointShapeType("JLIN2", LIN2)
JTRI3 = JointShapeType("JTRI3", TRI3)
JQUAD4 = JointShapeType("JQUAD4", QUAD4)

ALL_SHAPES: dict[str, ShapeType] = {
    s.name: s for s in (LIN2, LIN3, TRI3, QUAD4, QUAD8, TET4, HEX8, JLIN2, JTRI3, JQUAD4)
}


def get_shape(name: str) -> ShapeType:
    """名前から形状を取得する."""
    try:
        return ALL_SHAPES[name]
    except KeyError:
        raise ValueError(f"未知の形状: {name}") from None
