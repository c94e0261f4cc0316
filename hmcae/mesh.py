"""構造メッシュの生成とセル管理.

Mesh は節点座標とセル（形状・節点インデックス・タグ）を保持する。
ジョイントセルは、一致する座標の節点を持つ2つの固体セルの間に join() で挿入する。
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from hmcae.shapes import (
    HEX8,
    JLIN2,
    JQUAD4,
    JTRI3,
    LIN2,
    QUAD4,
    QUAD8,
    TRI3,
    ShapeType,
)


@dataclass
class Cell:
    """メッシュセル.

    Attributes:
        id: セルID（0始まり）
        shape: 形状
        nodes: 節点インデックス
        tag: タグ（材料割り当てに使用）
        linked: ジョイントセルが連結する2つの固体セルID
    """

    id: int
    shape: ShapeType
    nodes: list[int]
    tag: str = ""
    linked: list[int] = field(default_factory=list)


_JOINT_SHAPES = {LIN2.name: JLIN2, TRI3.name: JTRI3, QUAD4.name: JQUAD4}


class Mesh:
    """節点とセルの集合.

    Attributes:
        points: (npoints, 3) 節点座標
        cells: セルリスト
        ndim: 空間次元
    """

    def __init__(self, points: np.ndarray, cells: list[Cell], ndim: int) -> None:
        pts = np.asarray(points, dtype=float)
        if pts.ndim != 2 or pts.shape[1] > 3:
            raise ValueError(f"points は (n, ≤3) 配列: {pts.shape}")
        self.points = np.zeros((pts.shape[0], 3))
        self.points[:, : pts.shape[1]] = pts
        self.cells = list(cells)
        self.ndim = ndim

    @property
    def n_points(self) -> int:
        return self.points.shape[0]

    def add_cell(self, shape: ShapeType, nodes: list[int], tag: str = "") -> Cell:
        cell = Cell(id=len(self.cells), shape=shape, nodes=list(nodes), tag=tag)
        self.cells.append(cell)
        return cell

    def set_tag(self, selector, tag: str) -> None:
        """重心座標で選択したセルにタグを付ける.

        Args:
            selector: (x, y, z) -> bool
            tag: タグ
        """
        for cell in self.cells:
            x, y, z = self.points[cell.nodes].mean(axis=0)
            if selector(x, y, z):
                cell.tag = tag

    def join(self, id1: int, id2: int, tag: str = "joint") -> Cell:
        """2つの固体セルの共有ファセットにジョイントセルを挿入する.

        2つのセルは同じ座標の節点を別々に持つ必要がある。
        ジョイント節点は cell1 のファセット節点、続いて座標が一致する cell2 の節点。

        Args:
            id1: 下側セルID
            id2: 上側セルID
            tag: ジョイントのタグ

        Returns:
            追加したジョイントセル
        """
        c1, c2 = self.cells[id1], self.cells[id2]
        for fidx in c1.shape.facet_idxs:
            bottom = [c1.nodes[i] for i in fidx]
            top = []
            for p in bottom:
                match = [
                    q
                    for q in c2.nodes
                    if np.allclose(self.points[q], self.points[p], atol=1e-10)
                ]
                if not match:
                    break
                top.append(match[0])
            if len(top) == len(bottom):
                fshape = c1.shape.facet_shape
                if fshape is None or fshape.name not in _JOINT_SHAPES:
                    raise ValueError(f"ファセット形状 {fshape} のジョイントは未対応")
                cell = self.add_cell(_JOINT_SHAPES[fshape.name], bottom + top, tag)
                cell.linked = [id1, id2]
                return cell
        raise ValueError(f"セル {id1} と {id2} に一致するファセットがない")


# ====================================================================
# 構造メッシュ生成
# ====================================================================


def make_bar_mesh(length: float, n: int, tag: str = "") -> Mesh:
    """x 軸上の LIN2 ロッドメッシュを生成する."""
    if n < 1:
        raise ValueError(f"分割数 n は1以上: {n}")
    x = np.linspace(0.0, length, n + 1)
    mesh = Mesh(x[:, None], [], ndim=1)
    for i in range(n):
        mesh.add_cell(LIN2, [i, i + 1], tag)
    return mesh


def make_rect_mesh(
    lx: float,
    ly: float,
    nx: int,
    ny: int,
    shape: str = "QUAD4",
    origin: tuple[float, float] = (0.0, 0.0),
    tag: str = "",
) -> Mesh:
    """矩形領域の2次元メッシュを生成する.

    Args:
        lx, ly: 寸法
        nx, ny: 分割数
        shape: "QUAD4", "QUAD8", "TRI3"
        origin: 左下隅の座標
        tag: セルのタグ

    Returns:
        Mesh
    """
    if nx < 1 or ny < 1:
        raise ValueError(f"分割数は1以上: nx={nx}, ny={ny}")
    x0, y0 = origin
    if shape == "QUAD8":
        # 2倍細かい格子から角・辺中点を取る
        xs = np.linspace(x0, x0 + lx, 2 * nx + 1)
        ys = np.linspace(y0, y0 + ly, 2 * ny + 1)
        index = {}
        pts = []
        for j in range(2 * ny + 1):
            for i in range(2 * nx + 1):
                if i % 2 == 1 and j % 2 == 1:
                    continue
                index[(i, j)] = len(pts)
                pts.append((xs[i], ys[j]))
        mesh = Mesh(np.array(pts), [], ndim=2)
        for j in range(ny):
            for i in range(nx):
                a, b = 2 * i, 2 * j
                nodes = [
                    index[(a, b)],
                    index[(a + 2, b)],
                    index[(a + 2, b + 2)],
                    index[(a, b + 2)],
                    index[(a + 1, b)],
                    index[(a + 2, b + 1)],
                    index[(a + 1, b + 2)],
                    index[(a, b + 1)],
                ]
                mesh.add_cell(QUAD8, nodes, tag)
        return mesh

    xs = np.linspace(x0, x0 + lx, nx + 1)
    ys = np.linspace(y0, y0 + ly, ny + 1)
    X, Y = np.meshgrid(xs, ys)
    mesh = Mesh(np.column_stack([X.ravel(), Y.ravel()]), [], ndim=2)

    def nid(i: int, j: int) -> int:
        return j * (nx + 1) + i

    for j in range(ny):
        for i in range(nx):
            n0, n1, n2, n3 = nid(i, j), nid(i + 1, j), nid(i + 1, j + 1), nid(i, j + 1)
            if shape == "QUAD4":
                mesh.add_cell(QUAD4, [n0, n1, n2, n3], tag)
            elif shape == "TRI3":
                mesh.add_cell(TRI3, [n0, n1, n2], tag)
                mesh.add_cell(TRI3, [n0, n2, n3], tag)
            else:
                raise ValueError(f"未対応の形状: {shape}")
    return mesh


def make_box_mesh(
    lx: float, ly: float, lz: float, nx: int, ny: int, nz: int, tag: str = ""
) -> Mesh:
    """直方体領域の HEX8 メッシュを生成する."""
    if min(nx, ny, nz) < 1:
        raise ValueError(f"分割数は1以上: nx={nx}, ny={ny}, nz={nz}")
    xs = np.linspace(0.0, lx, nx + 1)
    ys = np.linspace(0.0, ly, ny + 1)
    zs = np.linspace(0.0, lz, nz + 1)
    Z, Y, X = np.meshgrid(zs, ys, xs, indexing="ij")
    mesh = Mesh(np.column_stack([X.ravel(), Y.ravel(), Z.ravel()]), [], ndim=3)

    def nid(i: int, j: int, k: int) -> int:
        return (k * (ny + 1) + j) * (nx + 1) + i

    for k in range(nz):
        for j in range(ny):
            for i in range(nx):
                nodes = [
                    nid(i, j, k),
                    nid(i + 1, j, k),
                    nid(i + 1, j + 1, k),
                    nid(i, j + 1, k),
                    nid(i, j, k + 1),
                    nid(i + 1, j, k + 1),
                    nid(i + 1, j + 1, k + 1),
                    nid(i, j + 1, k + 1),
                ]
                mesh.add_cell(HEX8, nodes, tag)
    return mesh
