"""メソッド戻り値の型定義.

各モジュールの公開メソッドが返すデータ構造を NamedTuple で統一的に定義する。
NamedTuple はタプルアンパッキング（K, rmap, cmap = elem.stiffness(ctx)）と
名前付きアクセスの両方に対応する。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, NamedTuple

import numpy as np
import scipy.sparse as sp

if TYPE_CHECKING:
    from hmcae.core.errors import Failure
    from hmcae.output.snapshot import Snapshot


class ElementMatrix(NamedTuple):
    """要素行列と方程式番号マップ.

    Attributes:
        K: (len(rmap), len(cmap)) 局所行列
        rmap: 行方向の全体方程式番号
        cmap: 列方向の全体方程式番号
    """

    K: np.ndarray
    rmap: np.ndarray
    cmap: np.ndarray


class ElementVector(NamedTuple):
    """要素ベクトルと方程式番号マップ.

    Attributes:
        F: (len(map),) 局所ベクトル
        map: 全体方程式番号
    """

    F: np.ndarray
    map: np.ndarray


class SystemResult(NamedTuple):
    """全体系アセンブリの結果.

    Attributes:
        G: (ndofs, ndofs) 全体行列 (CSR)
        RHS: (ndofs,) 右辺ベクトル
    """

    G: sp.csr_matrix
    RHS: np.ndarray


class PartitionedSolveResult(NamedTuple):
    """分割線形ソルバーの結果.

    Attributes:
        DU: (ndofs,) 本質量の増分（未知部分を書き込み済み）
        DF: (ndofs,) 自然量の増分（規定部分に反力を書き込み済み）
        info: ソルバー情報辞書 (success, nu, ndofs, message)
    """

    DU: np.ndarray
    DF: np.ndarray
    info: dict[str, Any]


class IncrementRecord(NamedTuple):
    """1回のインクリメント試行の記録（失敗試行も含む）.

    Attributes:
        inc: インクリメント番号（1始まり）
        t: 試行開始時刻
        dt: 時間増分
        converged: 収束したか
        iterations: 反復回数
        residue: 最終残差
    """

    inc: int
    t: float
    dt: float
    converged: bool
    iterations: int
    residue: float


@dataclass
class StageResult:
    """solve() の結果.

    真偽値として評価すると success を返す。

    Attributes:
        success: ステージが t_end まで到達したか
        increments: 全インクリメント試行の履歴
        snapshots: 出力スナップショット
        failure: 失敗情報（成功時は None）
        t: 最終時刻
    """

    success: bool
    increments: list[IncrementRecord] = field(default_factory=list)
    snapshots: list[Snapshot] = field(default_factory=list)
    failure: Failure | None = None
    t: float = 0.0

    def __bool__(self) -> bool:
        return self.success

    @property
    def n_converged(self) -> int:
        """収束したインクリメント数."""
        return sum(1 for r in self.increments if r.converged)

    @property
    def dt_history(self) -> list[float]:
        """試行した時間増分の列."""
        return [r.dt for r in self.increments]
