"""Protocol 適合性と能力フラグの整合テスト."""

from __future__ import annotations

import numpy as np
import pytest

from hmcae import Domain, IpLogger, MaterialBind, NodeBC, solve
from hmcae.core import (
    Capability,
    ConductivityElementProtocol,
    CouplingElementProtocol,
    ElementProtocol,
    HydroMechMaterialProtocol,
    MaterialProtocol,
    MechMaterialProtocol,
    NodalValuesElementProtocol,
    RhsElementProtocol,
    StiffnessElementProtocol,
    UpdateElementProtocol,
)
from hmcae.elements import ELEMENT_TYPES
from hmcae.loggers import Logger
from hmcae.materials import (
    ElasticJoint,
    ElasticRod,
    ElasticSolid,
    ElasticSolidLinSeep,
    PlasticRod,
)
from hmcae.mesh import Mesh, make_bar_mesh, make_rect_mesh
from hmcae.shapes import QUAD4

MECH_MATERIALS = [
    ElasticSolid(E=1.0, nu=0.2),
    ElasticRod(E=1.0, A=1.0),
    PlasticRod(E=1.0, A=1.0, sigma_y0=1.0, H=0.1),
    ElasticJoint(E=1.0, nu=0.2),
]

CAPABILITY_PROTOCOLS = {
    Capability.STIFFNESS: StiffnessElementProtocol,
    Capability.COUPLING: CouplingElementProtocol,
    Capability.CONDUCTIVITY: ConductivityElementProtocol,
    Capability.RHS: RhsElementProtocol,
    Capability.UPDATE: UpdateElementProtocol,
    Capability.NODAL_VALUES: NodalValuesElementProtocol,
}


class TestMaterialProtocols:
    @pytest.mark.parametrize("mat", MECH_MATERIALS, ids=lambda m: type(m).__name__)
    def test_mech_materials(self, mat):
        assert isinstance(mat, MaterialProtocol)
        assert isinstance(mat, MechMaterialProtocol)
        assert mat.element_type in ELEMENT_TYPES

    def test_hydromech_material(self):
        mat = ElasticSolidLinSeep(E=1.0, nu=0.2, k=1.0)
        assert isinstance(mat, HydroMechMaterialProtocol)
        assert not isinstance(ElasticSolid(E=1.0), HydroMechMaterialProtocol)


class TestElementCapabilities:
    """宣言した能力フラグと実装メソッドの一致."""

    @pytest.mark.parametrize(
        "mat",
        [ElasticSolid(E=1.0, nu=0.2), ElasticSolidLinSeep(E=1.0, nu=0.2, k=1.0)],
        ids=lambda m: type(m).__name__,
    )
    def test_solid_elements(self, mat):
        dom = Domain(make_rect_mesh(1.0, 1.0, 1, 1), [MaterialBind(None, mat)])
        elem = dom.elems[0]
        assert isinstance(elem, ElementProtocol)
        for cap, proto in CAPABILITY_PROTOCOLS.items():
            if elem.has(cap):
                assert isinstance(elem, proto)

    def test_rod_element(self):
        dom = Domain(make_bar_mesh(1.0, 1), [MaterialBind(None, ElasticRod(E=1.0, A=1.0))])
        elem = dom.elems[0]
        assert elem.has(Capability.STIFFNESS | Capability.UPDATE)
        assert not elem.has(Capability.DISTRIBUTED_BC)
        # 分布荷重に対応しない要素は境界ファセットを持たない
        assert dom.faces == []

    def test_joint_element(self):
        pts = np.array([[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0],
                        [0.0, 1.0], [1.0, 1.0], [1.0, 2.0], [0.0, 2.0]])
        mesh = Mesh(pts, [], ndim=2)
        mesh.add_cell(QUAD4, [0, 1, 2, 3], "solid")
        mesh.add_cell(QUAD4, [4, 5, 6, 7], "solid")
        mesh.join(0, 1)
        dom = Domain(
            mesh,
            [
                MaterialBind("joint", ElasticJoint(E=1.0, nu=0.2)),
                MaterialBind(None, ElasticSolid(E=1.0, nu=0.2)),
            ],
        )
        joint = dom.elems[2]
        assert joint.has(Capability.NODAL_VALUES)
        assert not dom.elems[0].has(Capability.NODAL_VALUES)
        for cap, proto in CAPABILITY_PROTOCOLS.items():
            if joint.has(cap):
                assert isinstance(joint, proto)


class TestLoggerBase:
    def test_abstract(self):
        with pytest.raises(TypeError):
            Logger()

    def test_subclass_without_update(self):
        class _BindOnly(Logger):
            def bind(self, domain):
                pass

        with pytest.raises(TypeError):
            _BindOnly()


class TestIpLogger:
    def test_records_state_values(self):
        logger = IpLogger((0.5, 0.5))
        dom = Domain(
            make_rect_mesh(1.0, 1.0, 2, 2),
            [MaterialBind(None, ElasticSolidLinSeep(E=100.0, nu=0.0, k=1.0, gw=10.0))],
            loggers=[logger],
        )
        bcs = [
            NodeBC("all", ux=0.0, uy=0.0),
            NodeBC(lambda x, y, z: y == 1.0, uw=0.0),
        ]
        assert solve(dom, bcs, nincs=2, show_progress=False)
        assert len(logger) == 3
        assert logger.ip.owner.id in (0, 1, 2, 3)
        np.testing.assert_allclose(logger["t"], [0.0, 0.5, 1.0])
        # 静水圧平衡: 積分点の水圧は γw (1 - y)
        assert logger["uw"][-1] == pytest.approx(10.0 * (1.0 - logger.ip.X[1]))
