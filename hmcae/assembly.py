"""水理力学系の全体行列アセンブリ.

各要素の能力フラグに応じて寄与を COO トリプレットに蓄積し、CSR 行列を生成する。

  G = [ K     Cup      ]     RHS_w = -Δt H Uw + Δt Q
      [ Cupᵀ  α Δt H   ]

重複する (行, 列) の寄与は加算される。
"""

from __future__ import annotations

import numpy as np
import scipy.sparse as sp

from hmcae.core.context import AnalysisContext
from hmcae.core.element import Capability
from hmcae.core.errors import AssemblyError
from hmcae.core.results import SystemResult


class _Triplets:
    """COO トリプレットの蓄積."""

    def __init__(self) -> None:
        self.rows: list[np.ndarray] = []
        self.cols: list[np.ndarray] = []
        self.vals: list[np.ndarray] = []

    def add(self, K: np.ndarray, rmap: np.ndarray, cmap: np.ndarray) -> None:
        nr, nc = K.shape
        self.rows.append(np.repeat(rmap, nc))
        self.cols.append(np.tile(cmap, nr))
        self.vals.append(K.ravel())

    def concatenate(self) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        if not self.vals:
            empty = np.zeros(0, dtype=np.int64)
            return empty, empty, np.zeros(0)
        return (
            np.concatenate(self.rows).astype(np.int64),
            np.concatenate(self.cols).astype(np.int64),
            np.concatenate(self.vals),
        )


def _scatter(RHS: np.ndarray, rmap: np.ndarray, vals: np.ndarray) -> None:
    n = RHS.shape[0]
    if len(rmap) and (rmap.min() < 0 or rmap.max() >= n):
        raise AssemblyError(
            f"右辺ベクトルの方程式番号が範囲外: ndofs={n}, 範囲=[{rmap.min()}, {rmap.max()}]"
        )
    np.add.at(RHS, rmap, vals)


def assemble_system(
    elems: list,
    ndofs: int,
    dt: float,
    ctx: AnalysisContext,
    alpha: float = 1.0,
) -> SystemResult:
    """全体行列 G と右辺ベクトル RHS を組み立てる.

    Args:
        elems: 要素リスト
        ndofs: 全自由度数
        dt: 時間増分（透水行列・ソース項の係数）
        ctx: 解析コンテキスト
        alpha: 時間積分係数（1.0 = 後退 Euler）

    Returns:
        SystemResult: (G, RHS)

    Raises:
        AssemblyError: トリプレットから行列を構築できない場合（範囲外の方程式番号など）
        GeometryError: 要素のヤコビアンが非正の場合
    """
    trip = _Triplets()
    RHS = np.zeros(ndofs)

    for elem in elems:
        if elem.has(Capability.STIFFNESS):
            K, rmap, cmap = elem.stiffness(ctx)
            trip.add(K, rmap, cmap)

        if elem.has(Capability.COUPLING):
            Cup, rmap, cmap = elem.coupling_matrix(ctx)
            trip.add(Cup, rmap, cmap)
            trip.add(Cup.T, cmap, rmap)

        if elem.has(Capability.CONDUCTIVITY):
            H, rmap, cmap = elem.conductivity_matrix(ctx)
            trip.add(alpha * dt * H, rmap, cmap)
            Uw = elem.pressure_values()
            _scatter(RHS, rmap, -dt * (H @ Uw))

        if elem.has(Capability.RHS):
            Q, rmap = elem.rhs_vector(ctx)
            _scatter(RHS, rmap, dt * Q)

    rows, cols, vals = trip.concatenate()
    try:
        G = sp.csr_matrix((vals, (rows, cols)), shape=(ndofs, ndofs))
    except (ValueError, IndexError) as err:
        lo = int(min(rows.min(), cols.min())) if len(rows) else 0
        hi = int(max(rows.max(), cols.max())) if len(rows) else 0
        raise AssemblyError(
            f"全体行列の構築に失敗: ndofs={ndofs}, 方程式番号の範囲=[{lo}, {hi}]: {err}"
        ) from err
    G.sum_duplicates()
    return SystemResult(G, RHS)
