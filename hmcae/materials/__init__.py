"""材料モデル.

  ElasticSolid          — 線形弾性固体（MechSolid）
  ElasticSolidLinSeep   — 線形弾性 + 線形浸透（HMSolid）
  ElasticRod, PlasticRod — ロッド（MechRod）
  ElasticJoint          — 線形弾性ジョイント（MechJoint）
"""

from hmcae.materials.elastic_lin_seep import ElasticSolidLinSeep, ElasticSolidLinSeepState
from hmcae.materials.elastic_solid import ElasticSolid, ElasticSolidState, calcDe
from hmcae.materials.joint import ElasticJoint, JointState
from hmcae.materials.rod import (
    ElasticRod,
    IsotropicHardening,
    PlasticRod,
    PlasticRodState,
    RodState,
)

__all__ = [
    "calcDe",
    "ElasticSolid",
    "ElasticSolidState",
    "ElasticSolidLinSeep",
    "ElasticSolidLinSeepState",
    "ElasticRod",
    "RodState",
    "PlasticRod",
    "PlasticRodState",
    "IsotropicHardening",
    "ElasticJoint",
    "JointState",
]
