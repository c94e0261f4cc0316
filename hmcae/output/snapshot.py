"""出力スナップショット.

収束後（commit 後）の節点自由度値と積分点スカラー量を記録する。
反復中には作成しない。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import numpy as np

from hmcae.core.element import Capability

if TYPE_CHECKING:
    from hmcae.domain import Domain


@dataclass
class Snapshot:
    """1出力時刻のスナップショット.

    Attributes:
        index: 出力番号（0 = 初期状態）
        time: 時刻
        increment: 累積インクリメント番号
        stage: ステージ番号
        node_values: 量名 → (n_nodes,) 配列。自由度がない節点は NaN。
            ジョイント要素の状態量（sn, wn など）は外挿値を含む。
        ip_values: 量名 → (n_ips,) 配列。"elem", "x", "y", "z" を含む。
    """

    index: int
    time: float
    increment: int
    stage: int
    node_values: dict[str, np.ndarray] = field(default_factory=dict)
    ip_values: dict[str, np.ndarray] = field(default_factory=dict)


def take_snapshot(domain: Domain, index: int, increment: int) -> Snapshot:
    """現在の確定状態からスナップショットを作成する."""
    n = len(domain.nodes)
    node_values: dict[str, np.ndarray] = {}
    for node in domain.nodes:
        for dof in node.dofs.values():
            for key, val in ((dof.name, dof.value), (dof.natname, dof.nat_value)):
                if key not in node_values:
                    node_values[key] = np.full(n, np.nan)
                node_values[key][node.id] = val

    # 要素から外挿した節点値は共有節点で平均する
    sums: dict[str, np.ndarray] = {}
    counts: dict[str, np.ndarray] = {}
    for elem in domain.elems:
        if not elem.has(Capability.NODAL_VALUES):
            continue
        for key, vals in elem.nodal_values(domain.ctx).items():
            acc = sums.setdefault(key, np.zeros(n))
            cnt = counts.setdefault(key, np.zeros(n))
            for node, val in zip(elem.nodes, vals):
                acc[node.id] += val
                cnt[node.id] += 1
    for key, acc in sums.items():
        cnt = counts[key]
        node_values[key] = np.divide(acc, cnt, out=np.full(n, np.nan), where=cnt > 0)

    rows: list[dict[str, float]] = []
    for elem in domain.elems:
        for ip in elem.ips:
            row = {"elem": float(elem.id), "x": ip.X[0], "y": ip.X[1], "z": ip.X[2]}
            row.update(elem.material.state_values(ip.state, domain.ctx))
            rows.append(row)
    keys: list[str] = []
    for row in rows:
        keys.extend(k for k in row if k not in keys)
    ip_values = {k: np.array([row.get(k, np.nan) for row in rows], dtype=float) for k in keys}

    return Snapshot(
        index=index,
        time=domain.t,
        increment=increment,
        stage=domain.stage + 1,
        node_values=node_values,
        ip_values=ip_values,
    )
