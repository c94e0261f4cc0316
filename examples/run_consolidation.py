#!/usr/bin/env python3
"""hmcae サンプル解析の実行スクリプト.

  consolidation — 一次元圧密（Terzaghi 解との比較）
  plastic_rod   — 線形硬化弾塑性ロッドの引張
  joint         — ジョイントを挟んだ一軸圧縮

Usage:
    python examples/run_consolidation.py                 # 全サンプル実行
    python examples/run_consolidation.py consolidation   # 圧密のみ
    python examples/run_consolidation.py plastic_rod     # 弾塑性ロッドのみ
    python examples/run_consolidation.py joint           # ジョイントのみ
"""

from __future__ import annotations

import math
import sys
from pathlib import Path

import numpy as np

# プロジェクトルートを PYTHONPATH に追加
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from hmcae import Domain, FaceBC, MaterialBind, NodeBC, NodeLogger, solve
from hmcae.materials import ElasticJoint, ElasticSolid, ElasticSolidLinSeep, PlasticRod
from hmcae.mesh import Mesh, make_bar_mesh, make_rect_mesh
from hmcae.shapes import QUAD4


def terzaghi_degree(Tv: float, nterms: int = 200) -> float:
    """Terzaghi の平均圧密度 U(Tv)."""
    U = 1.0
    for m in range(nterms):
        M = math.pi * (2 * m + 1) / 2.0
        U -= 2.0 / M**2 * math.exp(-(M**2) * Tv)
    return U


def run_consolidation():
    """一次元圧密: 静水圧平衡の後に上面へ荷重 q を載荷."""
    print("=" * 60)
    print("一次元圧密（平面ひずみ Q4, 上面排水・下面非排水）")
    print("=" * 60)

    E, nu, k, gw = 1000.0, 0.25, 1e-3, 10.0
    H, q = 1.0, 10.0
    M = E * (1 - nu) / ((1 + nu) * (1 - 2 * nu))
    cv = k * M / gw

    mesh = make_rect_mesh(0.1, H, 1, 40)
    logger = NodeLogger((0.0, H))
    dom = Domain(
        mesh,
        [MaterialBind(None, ElasticSolidLinSeep(E=E, nu=nu, k=k, gw=gw))],
        loggers=[logger],
    )
    supports = [
        NodeBC("all", ux=0.0),
        NodeBC(lambda x, y, z: y == 0.0, uy=0.0),
        NodeBC(lambda x, y, z: y == H, uw=0.0),
    ]

    # ステージ1: 静水圧平衡
    res = solve(dom, supports, time_span=1e8, show_progress=False)
    if not res:
        print(f"  ステージ1失敗: {res.failure}")
        return None
    uy0 = logger["uy"][-1]
    n0 = len(logger)

    # ステージ2: 載荷後の圧密
    t_end = 0.5 * H**2 / cv
    loads = supports + [FaceBC(lambda x, y, z: np.isclose(y, H), ty=-q)]
    res = solve(dom, loads, time_span=t_end, nincs=50, show_progress=False)
    if not res:
        print(f"  ステージ2失敗: {res.failure}")
        return None

    s_final = q * H / M
    print(f"  材料: E = {E:.0f}, nu = {nu}, k = {k}, γw = {gw}")
    print(f"  圧密係数 cv = {cv:.4g}, 最終沈下 = {s_final:.6e}")
    print(f"  {'Tv':>8s} {'U (FEM)':>10s} {'U (解析)':>10s}")
    t0 = logger["t"][n0 - 1]
    errors = []
    for i in range(n0 + 4, len(logger), 5):
        Tv = cv * (logger["t"][i] - t0) / H**2
        U_fem = -(logger["uy"][i] - uy0) / s_final
        U_ref = terzaghi_degree(Tv)
        errors.append(abs(U_fem - U_ref))
        print(f"  {Tv:8.4f} {U_fem:10.5f} {U_ref:10.5f}")
    err = max(errors)
    print(f"  最大誤差: {err:.4e}")
    print()
    return err


def run_plastic_rod():
    """線形硬化弾塑性ロッドの引張: 降伏後のひずみを閉形式解と比較."""
    print("=" * 60)
    print("弾塑性ロッド（線形等方硬化）")
    print("=" * 60)

    E, A, sy, Hh = 200e3, 1.0, 250.0, 2000.0
    L = 100.0
    P = 300.0
    dom = Domain(make_bar_mesh(L, 4), [MaterialBind(None, PlasticRod(E=E, A=A, sigma_y0=sy, H=Hh))])
    bcs = [
        NodeBC(lambda x, y, z: x == 0.0, ux=0.0),
        NodeBC(lambda x, y, z: x == L, fx=lambda t, x, y, z: P * t),
    ]
    res = solve(dom, bcs, nincs=10, maxits=10, tol=1e-8, show_progress=False)
    if not res:
        print(f"  失敗: {res.failure}")
        return None

    sig = P / A
    eps_ref = sig / E + (sig - sy) / Hh
    u_ref = eps_ref * L
    u_fem = dom.nodes[-1].value("ux")
    err = abs(u_fem - u_ref) / abs(u_ref) * 100
    print(f"  荷重: P = {P:.0f}, 降伏応力 = {sy:.0f}")
    print(f"  先端変位 (FEM):    {u_fem:.6e}")
    print(f"  先端変位 (解析解): {u_ref:.6e}")
    print(f"  相対誤差: {err:.4e}%")
    print(f"  反復回数: {[r.iterations for r in res.increments]}")
    print()
    return err


def run_joint():
    """ジョイントを挟んだ2ブロックの一軸圧縮."""
    print("=" * 60)
    print("ジョイント要素（2ブロック一軸圧縮）")
    print("=" * 60)

    E, zeta, q = 1000.0, 5.0, 10.0
    pts = np.array(
        [
            [0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0],
            [0.0, 1.0], [1.0, 1.0], [1.0, 2.0], [0.0, 2.0],
        ]
    )
    mesh = Mesh(pts, [], ndim=2)
    mesh.add_cell(QUAD4, [0, 1, 2, 3], "solid")
    mesh.add_cell(QUAD4, [4, 5, 6, 7], "solid")
    mesh.join(0, 1)
    dom = Domain(
        mesh,
        [
            MaterialBind("joint", ElasticJoint(E=E, nu=0.0, zeta=zeta)),
            MaterialBind(None, ElasticSolid(E=E, nu=0.0)),
        ],
    )
    bcs = [
        NodeBC("all", ux=0.0),
        NodeBC(lambda x, y, z: y == 0.0, uy=0.0),
        NodeBC(lambda x, y, z: y == 2.0, fy=-q / 2),
    ]
    res = solve(dom, bcs, show_progress=False)
    if not res:
        print(f"  失敗: {res.failure}")
        return None

    h = 1.0
    u_ref = -q * 2.0 / E - q * h / (E * zeta)
    u_fem = dom.nodes[6].value("uy")
    err = abs(u_fem - u_ref) / abs(u_ref) * 100
    print(f"  実効厚 h = {dom.elems[2].ips[0].state.h:.4f}")
    print(f"  上面変位 (FEM):    {u_fem:.6e}")
    print(f"  上面変位 (解析解): {u_ref:.6e}")
    print(f"  相対誤差: {err:.4e}%")
    print()
    return err


RUNNERS = {
    "consolidation": run_consolidation,
    "plastic_rod": run_plastic_rod,
    "joint": run_joint,
}


def main():
    names = sys.argv[1:] or list(RUNNERS)
    for name in names:
        if name not in RUNNERS:
            print(f"未知のサンプル: {name}（{', '.join(RUNNERS)}）")
            sys.exit(1)
        RUNNERS[name]()


if __name__ == "__main__":
    main()
