"""境界条件と自由度番号付けのテスト."""

from __future__ import annotations

import numpy as np
import pytest

from hmcae import Domain, FaceBC, MaterialBind, NodeBC, configure_dofs, get_bc_vals, solve
from hmcae.core.errors import BoundaryConditionError, FailureKind
from hmcae.materials import ElasticSolid, ElasticSolidLinSeep
from hmcae.mesh import make_rect_mesh


def _domain(nx: int = 2, ny: int = 2, thickness: float = 1.0) -> Domain:
    mesh = make_rect_mesh(2.0, 1.0, nx, ny)
    return Domain(mesh, [MaterialBind(None, ElasticSolid(E=100.0, nu=0.2))], thickness=thickness)


class TestConfigureDofs:
    """方程式番号: 未知自由度が先、規定自由度が後."""

    def test_unknowns_first(self):
        dom = _domain()
        bcs = [NodeBC(lambda x, y, z: x == 0.0, ux=0.0, uy=0.0)]
        dofs, nu = configure_dofs(dom, bcs)
        assert len(dofs) == 2 * len(dom.nodes)
        assert nu == len(dofs) - 6
        assert all(not d.prescribed for d in dofs[:nu])
        assert all(d.prescribed for d in dofs[nu:])
        assert [d.eq_id for d in dofs] == list(range(len(dofs)))

    def test_reconfigure_clears_prescribed(self):
        dom = _domain()
        configure_dofs(dom, [NodeBC("all", ux=0.0)])
        dofs, nu = configure_dofs(dom, [])
        assert nu == len(dofs)

    def test_hm_dofs(self):
        mesh = make_rect_mesh(1.0, 1.0, 1, 1)
        mat = ElasticSolidLinSeep(E=100.0, nu=0.2, k=1.0)
        dom = Domain(mesh, [MaterialBind(None, mat)])
        dofs, _ = configure_dofs(dom, [])
        assert len(dofs) == 3 * 4
        node = dom.nodes[0]
        assert list(node.dofs) == ["ux", "uy", "uw"]
        assert node.get_dof("fw") is node.dofs["uw"]


class TestValidation:
    """不正な境界条件の検出."""

    def test_invalid_key_node(self):
        with pytest.raises(BoundaryConditionError, match="適用できない条件"):
            NodeBC("all", tx=1.0)

    def test_invalid_key_face(self):
        with pytest.raises(BoundaryConditionError, match="適用できない条件"):
            FaceBC("all", fx=1.0)

    def test_empty_conditions(self):
        with pytest.raises(BoundaryConditionError):
            NodeBC("all")

    def test_uz_in_2d(self):
        dom = _domain()
        with pytest.raises(BoundaryConditionError, match="2次元"):
            configure_dofs(dom, [NodeBC("all", uz=0.0)])

    def test_tz_in_2d(self):
        dom = _domain()
        with pytest.raises(BoundaryConditionError, match="2次元"):
            configure_dofs(dom, [FaceBC("all", tz=1.0)])

    def test_missing_dof(self):
        """力学要素の節点に uw を与えるとエラー."""
        dom = _domain()
        with pytest.raises(BoundaryConditionError, match="自由度 uw がない"):
            configure_dofs(dom, [NodeBC([0], uw=0.0)])

    def test_solve_reports_boundary_condition(self):
        dom = _domain()
        res = solve(dom, [NodeBC("all", uz=0.0)], show_progress=False)
        assert not res
        assert res.failure.kind is FailureKind.BOUNDARY_CONDITION
        assert res.failure.increment is None

    def test_unknown_selector_string(self):
        dom = _domain()
        with pytest.raises(BoundaryConditionError, match="節点選択に失敗"):
            configure_dofs(dom, [NodeBC("left", ux=0.0)])
        with pytest.raises(BoundaryConditionError, match="ファセット選択に失敗"):
            configure_dofs(dom, [FaceBC("top", ty=-1.0)])

    def test_node_id_out_of_range(self):
        dom = _domain()
        with pytest.raises(BoundaryConditionError, match="範囲外"):
            configure_dofs(dom, [NodeBC([0, 99], ux=0.0)])

    @pytest.mark.parametrize(
        "bc",
        [NodeBC("left", ux=0.0), NodeBC([-1], ux=0.0), FaceBC("top", uy=0.0)],
        ids=["node-string", "node-id", "face-string"],
    )
    def test_solve_reports_bad_selector(self, bc):
        dom = _domain()
        bcs = [NodeBC(lambda x, y, z: x == 0.0, ux=0.0, uy=0.0), bc]
        res = solve(dom, bcs, show_progress=False)
        assert not res
        assert res.failure.kind is FailureKind.BOUNDARY_CONDITION
        assert "選択に失敗" in res.failure.message
        assert res.failure.increment is None


class TestBcValues:
    """時刻 t での規定値."""

    def test_essential_and_natural(self):
        dom = _domain(1, 1)
        bcs = [
            NodeBC([0], ux=lambda t, x, y, z: 2.0 * t),
            NodeBC([3], fy=-1.0),
        ]
        dofs, _ = configure_dofs(dom, bcs)
        dom.ndofs = len(dofs)
        U, F = get_bc_vals(dom, bcs, 0.5)
        assert U[dom.nodes[0].dofs["ux"].eq_id] == pytest.approx(1.0)
        assert F[dom.nodes[3].dofs["uy"].eq_id] == pytest.approx(-1.0)
        assert np.count_nonzero(U) == 1
        assert np.count_nonzero(F) == 1

    def test_nodal_forces_accumulate(self):
        dom = _domain(1, 1)
        bcs = [NodeBC([2], fx=1.0), NodeBC([2], fx=2.0)]
        dofs, _ = configure_dofs(dom, bcs)
        dom.ndofs = len(dofs)
        _, F = get_bc_vals(dom, bcs, 1.0)
        assert F[dom.nodes[2].dofs["ux"].eq_id] == pytest.approx(3.0)

    def test_uniform_traction_resultant(self):
        """上辺の一様荷重 q の合力 = q·lx·th."""
        q, th = -3.0, 0.2
        dom = _domain(4, 2, thickness=th)
        bcs = [FaceBC(lambda x, y, z: np.isclose(y, 1.0), ty=q)]
        dofs, _ = configure_dofs(dom, bcs)
        dom.ndofs = len(dofs)
        _, F = get_bc_vals(dom, bcs, 1.0)
        fy = sum(F[n.dofs["uy"].eq_id] for n in dom.nodes)
        assert fy == pytest.approx(q * 2.0 * th)
        # 端節点は中間節点の半分
        top = sorted((n for n in dom.nodes if np.isclose(n.X[1], 1.0)), key=lambda n: n.X[0])
        assert F[top[0].dofs["uy"].eq_id] == pytest.approx(0.5 * F[top[1].dofs["uy"].eq_id])

    def test_face_essential(self):
        dom = _domain(2, 1)
        bcs = [FaceBC(lambda x, y, z: np.isclose(x, 0.0), ux=0.25)]
        dofs, nu = configure_dofs(dom, bcs)
        dom.ndofs = len(dofs)
        assert len(dofs) - nu == 2
        U, _ = get_bc_vals(dom, bcs, 0.0)
        np.testing.assert_allclose(U[nu:], 0.25)
