"""要素積分のテスト.

テスト方針:
  1. 剛性行列の対称性と剛体モードのゼロエネルギー
  2. 反転要素で GeometryError（要素ID付き）
  3. 変位ゼロ増分での更新の再現性（rollback 後に同一出力）
  4. 分布荷重（座標軸方向・法線方向、2D/3D）
  5. ロッド要素の剛性
"""

from __future__ import annotations

import numpy as np
import pytest

from hmcae import Domain, MaterialBind, configure_dofs
from hmcae.core.element import Capability
from hmcae.core.errors import BoundaryConditionError, GeometryError
from hmcae.materials import ElasticRod, ElasticSolid, ElasticSolidLinSeep
from hmcae.mesh import Mesh, make_bar_mesh, make_box_mesh, make_rect_mesh
from hmcae.shapes import QUAD4, TET4

E = 1000.0
NU = 0.3


def _single(mesh: Mesh, mat=None) -> Domain:
    mat = mat if mat is not None else ElasticSolid(E=E, nu=NU)
    dom = Domain(mesh, [MaterialBind(None, mat)])
    dofs, _ = configure_dofs(dom, [])
    dom.ndofs = len(dofs)
    return dom


def _tet_mesh() -> Mesh:
    pts = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]])
    mesh = Mesh(pts, [], ndim=3)
    mesh.add_cell(TET4, [0, 1, 2, 3])
    return mesh


MESHES = {
    "QUAD4": lambda: make_rect_mesh(2.0, 1.0, 1, 1, shape="QUAD4"),
    "TRI3": lambda: make_rect_mesh(2.0, 1.0, 1, 1, shape="TRI3"),
    "QUAD8": lambda: make_rect_mesh(2.0, 1.0, 1, 1, shape="QUAD8"),
    "HEX8": lambda: make_box_mesh(1.0, 2.0, 1.5, 1, 1, 1),
    "TET4": _tet_mesh,
}


class TestSolidStiffness:
    """固体要素の剛性行列."""

    @pytest.mark.parametrize("name", list(MESHES))
    def test_symmetric(self, name):
        dom = _single(MESHES[name]())
        for elem in dom.elems:
            K = elem.stiffness(dom.ctx).K
            np.testing.assert_allclose(K, K.T, atol=1e-10 * np.abs(K).max())

    @pytest.mark.parametrize("name", list(MESHES))
    def test_rigid_translation(self, name):
        """剛体並進でひずみエネルギーゼロ."""
        dom = _single(MESHES[name]())
        ndim = dom.ndim
        for elem in dom.elems:
            K = elem.stiffness(dom.ctx).K
            for d in range(ndim):
                u = np.zeros(K.shape[0])
                u[d::ndim] = 1.0
                np.testing.assert_allclose(K @ u, 0.0, atol=1e-9 * np.abs(K).max())

    def test_hm_stiffness_symmetric(self):
        mat = ElasticSolidLinSeep(E=E, nu=NU, k=1.0, gw=10.0)
        dom = _single(make_rect_mesh(1.0, 1.0, 1, 1), mat)
        elem = dom.elems[0]
        K = elem.stiffness(dom.ctx).K
        np.testing.assert_allclose(K, K.T, atol=1e-10 * np.abs(K).max())
        H = elem.conductivity_matrix(dom.ctx).K
        np.testing.assert_allclose(H, H.T, atol=1e-14)
        # 一様な水圧は流れを生まない
        np.testing.assert_allclose(H @ np.ones(4), 0.0, atol=1e-14)

    def test_capabilities(self):
        mat = ElasticSolidLinSeep(E=E, nu=NU, k=1.0, gw=10.0)
        dom = _single(make_rect_mesh(1.0, 1.0, 1, 1), mat)
        elem = dom.elems[0]
        assert elem.has(Capability.COUPLING)
        assert elem.has(Capability.CONDUCTIVITY)
        dom2 = _single(make_rect_mesh(1.0, 1.0, 1, 1))
        assert not dom2.elems[0].has(Capability.COUPLING)


class TestGeometryError:
    """反転要素の検出."""

    def _inverted(self) -> Domain:
        pts = np.array([[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0]])
        mesh = Mesh(pts, [], ndim=2)
        mesh.add_cell(QUAD4, [0, 1, 2, 3])
        mesh.add_cell(QUAD4, [0, 3, 2, 1])  # 時計回り
        return _single(mesh)

    def test_stiffness_raises_with_elem_id(self):
        dom = self._inverted()
        dom.elems[0].stiffness(dom.ctx)
        with pytest.raises(GeometryError) as exc:
            dom.elems[1].stiffness(dom.ctx)
        assert exc.value.elem_id == 1

    def test_update_raises(self):
        dom = self._inverted()
        with pytest.raises(GeometryError):
            dom.elems[1].update(np.zeros(dom.ndofs), np.zeros(dom.ndofs), 0.0, dom.ctx)

    def test_zero_length_rod(self):
        mesh = Mesh(np.array([[0.0], [0.0]]), [], ndim=1)
        from hmcae.shapes import LIN2

        mesh.add_cell(LIN2, [0, 1])
        dom = _single(mesh, ElasticRod(E=1.0, A=1.0))
        with pytest.raises(GeometryError, match="長さがゼロ"):
            dom.elems[0].stiffness(dom.ctx)


class TestUpdate:
    """内力更新と積分点状態."""

    def test_zero_increment_reproducible(self):
        """確定状態から変位ゼロ増分で2回更新しても内力は同一."""
        mat = ElasticSolidLinSeep(E=E, nu=NU, k=1.0, gw=10.0)
        dom = _single(make_rect_mesh(1.0, 1.0, 1, 1), mat)
        elem = dom.elems[0]
        rng = np.random.default_rng(0)
        dU = rng.normal(scale=1e-3, size=dom.ndofs)
        elem.update(dU, np.zeros(dom.ndofs), 0.1, dom.ctx)
        for ip in elem.ips:
            ip.commit()

        outs = []
        for _ in range(2):
            for ip in elem.ips:
                ip.rollback()
            dF = np.zeros(dom.ndofs)
            elem.update(np.zeros(dom.ndofs), dF, 0.1, dom.ctx)
            outs.append(dF)
        assert np.array_equal(outs[0], outs[1])

    def test_update_matches_stiffness(self):
        """線形材料では更新の内力 = K ΔU."""
        dom = _single(make_rect_mesh(2.0, 1.0, 1, 1))
        elem = dom.elems[0]
        K, rmap, _ = elem.stiffness(dom.ctx)
        rng = np.random.default_rng(1)
        dU = rng.normal(size=dom.ndofs)
        dF = np.zeros(dom.ndofs)
        out = elem.update(dU, dF, 0.0, dom.ctx)
        np.testing.assert_allclose(out.F, K @ dU[rmap], rtol=1e-10)
        np.testing.assert_allclose(dF[rmap], out.F)

    def test_update_touches_trial_only(self):
        """update は試行状態のみを変更し、確定状態は不変."""
        dom = _single(make_rect_mesh(1.0, 1.0, 1, 1))
        elem = dom.elems[0]
        elem.update(np.ones(dom.ndofs) * 1e-3, np.zeros(dom.ndofs), 0.0, dom.ctx)
        for ip in elem.ips:
            np.testing.assert_array_equal(ip.backup.sig, 0.0)


class TestDistributedBC:
    """分布荷重の積分."""

    def test_2d_normal_traction(self):
        """上辺の法線荷重 p の合力 = p·L·th（外向き +y）."""
        mesh = make_rect_mesh(2.0, 1.0, 1, 1)
        dom = Domain(mesh, [MaterialBind(None, ElasticSolid(E=E, nu=NU))], thickness=0.5)
        configure_dofs(dom, [])
        top = dom.select_faces(lambda x, y, z: np.isclose(y, 1.0))
        assert len(top) == 1
        F, _ = top[0].elem.distributed_bc(top[0], "tn", lambda t, x, y, z: 3.0, dom.ctx)
        F = F.reshape(-1, 2)
        assert F[:, 0].sum() == pytest.approx(0.0, abs=1e-12)
        assert F[:, 1].sum() == pytest.approx(3.0 * 2.0 * 0.5)

    def test_2d_left_normal_points_outward(self):
        mesh = make_rect_mesh(1.0, 1.0, 1, 1)
        dom = _single(mesh)
        left = dom.select_faces(lambda x, y, z: np.isclose(x, 0.0))[0]
        F, _ = left.elem.distributed_bc(left, "tn", lambda t, x, y, z: 1.0, dom.ctx)
        assert F.reshape(-1, 2)[:, 0].sum() == pytest.approx(-1.0)

    def test_3d_normal_traction(self):
        dom = _single(make_box_mesh(1.0, 2.0, 1.0, 1, 1, 1))
        top = dom.select_faces(lambda x, y, z: np.isclose(z, 1.0))
        assert len(top) == 1
        F, _ = top[0].elem.distributed_bc(top[0], "tn", lambda t, x, y, z: -4.0, dom.ctx)
        F = F.reshape(-1, 3)
        np.testing.assert_allclose(F[:, :2].sum(axis=0), 0.0, atol=1e-12)
        assert F[:, 2].sum() == pytest.approx(-8.0)

    def test_linear_traction_uses_physical_coords(self):
        """tx = x を下辺に: 合力 ∫_0^2 x dx = 2."""
        dom = _single(make_rect_mesh(2.0, 1.0, 1, 1))
        bottom = dom.select_faces(lambda x, y, z: np.isclose(y, 0.0))[0]
        F, _ = bottom.elem.distributed_bc(bottom, "tx", lambda t, x, y, z: x, dom.ctx)
        assert F.reshape(-1, 2)[:, 0].sum() == pytest.approx(2.0)

    def test_tz_in_2d(self):
        dom = _single(make_rect_mesh(1.0, 1.0, 1, 1))
        face = dom.faces[0]
        with pytest.raises(BoundaryConditionError, match="2次元"):
            face.elem.distributed_bc(face, "tz", lambda t, x, y, z: 1.0, dom.ctx)

    def test_unknown_key(self):
        dom = _single(make_rect_mesh(1.0, 1.0, 1, 1))
        face = dom.faces[0]
        with pytest.raises(BoundaryConditionError):
            face.elem.distributed_bc(face, "tq", lambda t, x, y, z: 1.0, dom.ctx)


class TestRod:
    def test_axial_stiffness(self):
        """2節点ロッドの剛性 EA/L."""
        dom = _single(make_bar_mesh(2.0, 1), ElasticRod(E=100.0, A=0.5))
        K = dom.elems[0].stiffness(dom.ctx).K
        np.testing.assert_allclose(K, 25.0 * np.array([[1.0, -1.0], [-1.0, 1.0]]))

    def test_inclined_rod_2d(self):
        """斜めロッドの剛性は方向余弦で回転."""
        mesh = Mesh(np.array([[0.0, 0.0], [3.0, 4.0]]), [], ndim=2)
        from hmcae.shapes import LIN2

        mesh.add_cell(LIN2, [0, 1])
        dom = _single(mesh, ElasticRod(E=50.0, A=1.0))
        K = dom.elems[0].stiffness(dom.ctx).K
        c, s = 0.6, 0.8
        k = 50.0 / 5.0
        T = np.array([c, s, -c, -s])
        np.testing.assert_allclose(K, k * np.outer(T, T), atol=1e-12)
