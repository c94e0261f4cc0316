"""全体行列アセンブリ assemble_system のテスト."""

from __future__ import annotations

import numpy as np
import pytest

from hmcae import Domain, MaterialBind, NodeBC, configure_dofs
from hmcae.assembly import assemble_system
from hmcae.core.errors import AssemblyError
from hmcae.materials import ElasticSolid, ElasticSolidLinSeep
from hmcae.mesh import make_rect_mesh


def _hm_domain(nx: int = 2, ny: int = 2) -> Domain:
    mesh = make_rect_mesh(1.0, 1.0, nx, ny)
    mat = ElasticSolidLinSeep(E=1000.0, nu=0.25, k=1e-2, gw=10.0)
    dom = Domain(mesh, [MaterialBind(None, mat)])
    bcs = [
        NodeBC(lambda x, y, z: np.isclose(y, 0.0), ux=0.0, uy=0.0),
        NodeBC(lambda x, y, z: np.isclose(y, 1.0), uw=0.0),
    ]
    dofs, _ = configure_dofs(dom, bcs)
    dom.ndofs = len(dofs)
    return dom


class TestAssembleSystem:
    """G と RHS の組み立て."""

    def test_symmetric(self):
        """連成ブロックは転置と対で散布され、G は対称."""
        dom = _hm_domain()
        G, _ = assemble_system(dom.elems, dom.ndofs, 0.5, dom.ctx)
        Gd = G.toarray()
        np.testing.assert_allclose(Gd, Gd.T, atol=1e-10)

    def test_coupling_block(self):
        """Cup は (u, p) に、Cupᵀ は (p, u) に入る."""
        dom = _hm_domain(1, 1)
        elem = dom.elems[0]
        Cup, map_u, map_p = elem.coupling_matrix(dom.ctx)
        G, _ = assemble_system(dom.elems, dom.ndofs, 0.0, dom.ctx)
        Gd = G.toarray()
        np.testing.assert_allclose(Gd[np.ix_(map_u, map_p)], Cup)
        np.testing.assert_allclose(Gd[np.ix_(map_p, map_u)], Cup.T)

    def test_conductivity_scaled_by_dt(self):
        """透水ブロックは α·Δt·H."""
        dom = _hm_domain(1, 1)
        elem = dom.elems[0]
        H, map_p, _ = elem.conductivity_matrix(dom.ctx)
        G1 = assemble_system(dom.elems, dom.ndofs, 1.0, dom.ctx).G.toarray()
        G3 = assemble_system(dom.elems, dom.ndofs, 3.0, dom.ctx).G.toarray()
        np.testing.assert_allclose((G3 - G1)[np.ix_(map_p, map_p)], 2.0 * H)
        Ga = assemble_system(dom.elems, dom.ndofs, 1.0, dom.ctx, alpha=0.5).G.toarray()
        np.testing.assert_allclose((G1 - Ga)[np.ix_(map_p, map_p)], 0.5 * H)

    def test_rhs_uses_previous_pressure(self):
        """RHS = -Δt H Uw + Δt Q（Uw は確定済みの節点水圧）."""
        dom = _hm_domain(1, 1)
        elem = dom.elems[0]
        for node in elem.nodes:
            node.dofs["uw"].value = 2.0 * node.X[1]
        dt = 0.25
        H, map_p, _ = elem.conductivity_matrix(dom.ctx)
        Q, _ = elem.rhs_vector(dom.ctx)
        Uw = elem.pressure_values()
        _, RHS = assemble_system(dom.elems, dom.ndofs, dt, dom.ctx)
        np.testing.assert_allclose(RHS[map_p], -dt * (H @ Uw) + dt * Q)

    def test_zero_dt_drops_flow_terms(self):
        dom = _hm_domain(1, 1)
        _, RHS = assemble_system(dom.elems, dom.ndofs, 0.0, dom.ctx)
        np.testing.assert_allclose(RHS, 0.0)

    def test_duplicates_summed(self):
        """共有節点の寄与は加算される."""
        mesh = make_rect_mesh(2.0, 1.0, 2, 1)
        dom = Domain(mesh, [MaterialBind(None, ElasticSolid(E=1.0, nu=0.0))])
        dofs, _ = configure_dofs(dom, [])
        G, _ = assemble_system(dom.elems, len(dofs), 0.0, dom.ctx)
        K0 = dom.elems[0].stiffness(dom.ctx)
        K1 = dom.elems[1].stiffness(dom.ctx)
        # 中央下節点 (id=1) の ux: 両要素の対角成分の和
        eq = dom.nodes[1].dofs["ux"].eq_id
        i0 = list(K0.rmap).index(eq)
        i1 = list(K1.rmap).index(eq)
        assert G[eq, eq] == pytest.approx(K0.K[i0, i0] + K1.K[i1, i1])

    def test_out_of_range_index(self):
        """方程式番号が ndofs を超えると AssemblyError."""
        mesh = make_rect_mesh(1.0, 1.0, 1, 1)
        dom = Domain(mesh, [MaterialBind(None, ElasticSolid(E=1.0, nu=0.0))])
        dofs, _ = configure_dofs(dom, [])
        with pytest.raises(AssemblyError, match="ndofs=3"):
            assemble_system(dom.elems, 3, 0.0, dom.ctx)
        assert len(dofs) == 8
