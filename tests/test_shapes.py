"""形状関数・積分点テーブル・ファセット向きのテスト."""

from __future__ import annotations

import numpy as np
import pytest

from hmcae.shapes import (
    HEX8,
    JQUAD4,
    LIN2,
    LIN3,
    QUAD4,
    QUAD8,
    TET4,
    TRI3,
    get_shape,
)

SOLID_SHAPES = [LIN2, LIN3, TRI3, QUAD4, QUAD8, TET4, HEX8]

# 各形状の節点の局所座標
LOCAL_NODES = {
    "TRI3": np.array([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0]]),
    "QUAD4": np.array([[-1.0, -1.0], [1.0, -1.0], [1.0, 1.0], [-1.0, 1.0]]),
    "TET4": np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]]),
    "HEX8": np.array(
        [
            [-1.0, -1.0, -1.0],
            [1.0, -1.0, -1.0],
            [1.0, 1.0, -1.0],
            [-1.0, 1.0, -1.0],
            [-1.0, -1.0, 1.0],
            [1.0, -1.0, 1.0],
            [1.0, 1.0, 1.0],
            [-1.0, 1.0, 1.0],
        ]
    ),
}


class TestShapeFunctions:
    """形状関数の基本性質."""

    @pytest.mark.parametrize("shape", SOLID_SHAPES, ids=lambda s: s.name)
    def test_partition_of_unity(self, shape):
        """積分点で ΣN = 1, Σ dN/dR = 0."""
        for row in shape.ip_table():
            R = row[:-1]
            assert shape.func(R).sum() == pytest.approx(1.0)
            np.testing.assert_allclose(shape.deriv(R).sum(axis=1), 0.0, atol=1e-14)

    @pytest.mark.parametrize("name", ["TRI3", "QUAD4", "TET4", "HEX8"])
    def test_kronecker_delta(self, name):
        """節点 i で N_j = δ_ij."""
        shape = get_shape(name)
        for i, R in enumerate(LOCAL_NODES[name]):
            expected = np.zeros(shape.npoints)
            expected[i] = 1.0
            np.testing.assert_allclose(shape.func(R), expected, atol=1e-14)

    @pytest.mark.parametrize(
        "shape,measure",
        [(LIN2, 2.0), (LIN3, 2.0), (TRI3, 0.5), (QUAD4, 4.0), (QUAD8, 4.0), (TET4, 1 / 6), (HEX8, 8.0)],
        ids=lambda v: getattr(v, "name", str(v)),
    )
    def test_weight_sum(self, shape, measure):
        """積分重みの和が参照要素の測度に一致."""
        assert shape.ip_table()[:, -1].sum() == pytest.approx(measure)

    def test_unknown_nips(self):
        with pytest.raises(ValueError, match="積分点数"):
            TRI3.ip_table(7)

    def test_unknown_shape(self):
        with pytest.raises(ValueError, match="未知の形状"):
            get_shape("PYR5")


class TestFacets:
    """ファセットの節点順が外向き法線を与えること."""

    @pytest.mark.parametrize("shape", [TET4, HEX8], ids=lambda s: s.name)
    def test_3d_outward(self, shape):
        C = LOCAL_NODES[shape.name]
        center = C.mean(axis=0)
        fshape = shape.facet_shape
        for idxs in shape.facet_idxs:
            Cf = C[idxs]
            R = fshape.ip_table(1)[0, :-1]
            J = fshape.deriv(R) @ Cf
            n = np.cross(J[0], J[1])
            assert np.dot(n, Cf.mean(axis=0) - center) > 0.0

    @pytest.mark.parametrize("shape", [TRI3, QUAD4], ids=lambda s: s.name)
    def test_2d_outward(self, shape):
        C = LOCAL_NODES[shape.name]
        center = C.mean(axis=0)
        for idxs in shape.facet_idxs:
            Cf = C[idxs]
            J = LIN2.deriv([0.0]) @ Cf
            n = np.array([J[0, 1], -J[0, 0]])
            assert np.dot(n, Cf.mean(axis=0) - center) > 0.0

    def test_joint_shape(self):
        assert JQUAD4.npoints == 8
        assert JQUAD4.basic_shape is QUAD4
        assert JQUAD4.is_joint
