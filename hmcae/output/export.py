"""スナップショットの JSON / CSV エクスポート."""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Any

import numpy as np

from hmcae.output.snapshot import Snapshot


class _NumpyEncoder(json.JSONEncoder):
    """NumPy 配列を JSON シリアライズ可能にするエンコーダー."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        if isinstance(obj, np.integer):
            return int(obj)
        if isinstance(obj, np.floating):
            return float(obj)
        return super().default(obj)


def _clean(arr: np.ndarray) -> list:
    # JSON に NaN は書けないため None にする
    return [None if np.isnan(v) else float(v) for v in arr]


def export_json(
    snapshots: list[Snapshot],
    output_dir: str | Path,
    *,
    filename: str = "snapshots.json",
    indent: int = 2,
) -> str:
    """スナップショット列を1つの JSON ファイルにエクスポートする.

    Returns:
        生成されたファイルパス
    """
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)
    filepath = out / filename

    data = {
        "n_snapshots": len(snapshots),
        "snapshots": [
            {
                "index": s.index,
                "time": s.time,
                "increment": s.increment,
                "stage": s.stage,
                "node_values": {k: _clean(v) for k, v in s.node_values.items()},
                "ip_values": {k: _clean(v) for k, v in s.ip_values.items()},
            }
            for s in snapshots
        ],
    }
    with open(filepath, "w", encoding="utf-8") as fh:
        json.dump(data, fh, cls=_NumpyEncoder, indent=indent, ensure_ascii=False)
    return str(filepath)


def export_csv(
    snapshots: list[Snapshot],
    output_dir: str | Path,
    *,
    prefix: str = "snapshot",
) -> list[str]:
    """スナップショットごとに節点・積分点の CSV を出力する.

    ファイル名:
        {prefix}-{index}-nodes.csv
        {prefix}-{index}-ips.csv

    Returns:
        生成されたファイルパスのリスト
    """
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)
    files: list[str] = []

    for s in snapshots:
        for kind, table in (("nodes", s.node_values), ("ips", s.ip_values)):
            filepath = out / f"{prefix}-{s.index}-{kind}.csv"
            header = list(table)
            n_rows = len(next(iter(table.values()))) if table else 0
            with open(filepath, "w", newline="", encoding="utf-8") as fh:
                writer = csv.writer(fh)
                writer.writerow(header)
                for i in range(n_rows):
                    writer.writerow([f"{table[k][i]:.10g}" for k in header])
            files.append(str(filepath))

    return files
