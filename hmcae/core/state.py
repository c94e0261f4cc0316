"""積分点の状態変数（履歴変数）の管理.

各積分点は2つの状態スロットを持つ:
  state  — 試行状態（現在の反復で構成則が更新する）
  backup — 最後に収束したインクリメントの確定状態

rollback() は試行状態を確定状態で上書きし、commit() は試行状態を確定状態にする。
いずれもスロットの参照入れ替えとインプレース代入で行い、反復ごとの再確保はしない。
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import TYPE_CHECKING, Any

import numpy as np

if TYPE_CHECKING:
    from hmcae.elements.base import Element


def _copy_value(v: Any) -> Any:
    if isinstance(v, np.ndarray):
        return v.copy()
    if isinstance(v, IpState):
        return v.copy()
    return v


@dataclass
class IpState:
    """積分点状態の基底クラス.

    サブクラスは dataclass として状態量をフィールドに持つ。
    numpy 配列フィールドはインプレースで代入される。
    """

    def copy(self) -> IpState:
        """深いコピーを返す."""
        return type(self)(**{f.name: _copy_value(getattr(self, f.name)) for f in fields(self)})

    def assign(self, other: IpState) -> None:
        """other の値を自身へインプレースで書き込む."""
        for f in fields(self):
            src = getattr(other, f.name)
            dst = getattr(self, f.name)
            if isinstance(dst, np.ndarray) and isinstance(src, np.ndarray) and dst.shape == src.shape:
                dst[...] = src
            elif isinstance(dst, IpState) and isinstance(src, IpState):
                dst.assign(src)
            else:
                setattr(self, f.name, _copy_value(src))


class Ip:
    """積分点（Gauss 点）.

    Attributes:
        id: 要素内の積分点番号（1始まり）
        R: 局所座標
        w: 積分重み
        X: 物理座標 (3,)
        owner: 所属要素
        state: 試行状態
        backup: 確定状態
    """

    def __init__(self, id: int, R: np.ndarray, w: float, owner: Element | None = None) -> None:
        self.id = id
        self.R = np.asarray(R, dtype=float)
        self.w = float(w)
        self.X = np.zeros(3)
        self.owner = owner
        self.state: IpState | None = None
        self.backup: IpState | None = None

    def init_state(self, state: IpState) -> None:
        """状態を設定し、確定スロットを複製で用意する."""
        self.state = state
        self.backup = state.copy()

    def commit(self) -> None:
        """試行状態を確定する."""
        self.state, self.backup = self.backup, self.state
        self.state.assign(self.backup)

    def rollback(self) -> None:
        """試行状態を破棄し、確定状態に戻す."""
        self.state.assign(self.backup)

    def __repr__(self) -> str:
        return f"Ip(id={self.id}, X={self.X.tolist()})"
