"""要素ライブラリ.

  MechSolid  — 力学固体
  HMSolid    — 水理力学連成固体
  MechRod    — ロッド
  MechJoint  — ジョイント

材料の element_type 名から要素クラスを引く ELEMENT_TYPES を提供する。
"""

from hmcae.elements.base import Element, Facet
from hmcae.elements.hm_solid import HMSolid
from hmcae.elements.mech_joint import MechJoint
from hmcae.elements.mech_rod import MechRod
from hmcae.elements.mech_solid import MechSolid

ELEMENT_TYPES: dict[str, type[Element]] = {
    "MechSolid": MechSolid,
    "HMSolid": HMSolid,
    "MechRod": MechRod,
    "MechJoint": MechJoint,
}

__all__ = [
    "Element",
    "Facet",
    "MechSolid",
    "HMSolid",
    "MechRod",
    "MechJoint",
    "ELEMENT_TYPES",
]
