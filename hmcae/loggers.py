"""インクリメントごとの量の追跡.

NodeLogger — 1節点の自由度値（本質量・自然量）を記録する。
IpLogger   — 1積分点の状態量を記録する。

対象は節点ID、または座標（最も近い節点・積分点）で指定する。
記録は収束したインクリメントの commit 後（と第1ステージの初期状態）に行われる。
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from hmcae.core.state import Ip
    from hmcae.domain import Domain, Node


class Logger(ABC):
    """ロガーの基底クラス.

    Attributes:
        table: 量名 → 値のリスト。"t" は時刻。
    """

    def __init__(self) -> None:
        self.table: dict[str, list[float]] = {}

    @abstractmethod
    def bind(self, domain: Domain) -> None:
        """追跡対象（節点・積分点）を領域から決める."""

    @abstractmethod
    def update(self, domain: Domain) -> None:
        """現在の確定状態を1行記録する."""

    def _append(self, row: dict[str, float]) -> None:
        n = len(next(iter(self.table.values()))) if self.table else 0
        for key, val in row.items():
            self.table.setdefault(key, [np.nan] * n).append(float(val))
        for key, col in self.table.items():
            if key not in row:
                col.append(np.nan)

    def __getitem__(self, key: str) -> np.ndarray:
        return np.asarray(self.table[key])

    def __len__(self) -> int:
        return len(self.table.get("t", []))


class NodeLogger(Logger):
    """節点ロガー.

    Args:
        target: 節点ID、または座標 (x, y[, z])
    """

    def __init__(self, target: int | tuple[float, ...]) -> None:
        super().__init__()
        self.target = target
        self.node: Node | None = None

    def bind(self, domain: Domain) -> None:
        if isinstance(self.target, (int, np.integer)):
            self.node = domain.nodes[int(self.target)]
            return
        X = np.zeros(3)
        X[: len(self.target)] = self.target
        dist = [np.linalg.norm(n.X - X) if n.dofs else np.inf for n in domain.nodes]
        self.node = domain.nodes[int(np.argmin(dist))]

    def update(self, domain: Domain) -> None:
        row = {"t": domain.t}
        for dof in self.node.dofs.values():
            row[dof.name] = dof.value
            row[dof.natname] = dof.nat_value
        self._append(row)


class IpLogger(Logger):
    """積分点ロガー.

    Args:
        X: 座標 (x, y[, z])。最も近い積分点を追跡する。
    """

    def __init__(self, X: tuple[float, ...]) -> None:
        super().__init__()
        self.X = np.zeros(3)
        self.X[: len(X)] = X
        self.ip: Ip | None = None

    def bind(self, domain: Domain) -> None:
        ips = domain.ips
        if not ips:
            raise ValueError("積分点がない")
        dist = [np.linalg.norm(ip.X - self.X) for ip in ips]
        self.ip = ips[int(np.argmin(dist))]

    def update(self, domain: Domain) -> None:
        row = {"t": domain.t}
        elem = self.ip.owner
        row.update(elem.material.state_values(self.ip.state, domain.ctx))
        self._append(row)
