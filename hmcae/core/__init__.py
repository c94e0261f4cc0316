"""hmcae.core - 要素・構成則の抽象インタフェース、状態、戻り値型、エラー型.

Protocol 階層:
  ElementProtocol              — 全要素共通（capabilities で能力を宣言）
  MechMaterialProtocol         — 力学材料（tangent + stress_update）
  HydroMechMaterialProtocol    — 水理力学連成材料（+ conductivity）
"""

from hmcae.core.constitutive import (
    HydroMechMaterialProtocol,
    MaterialProtocol,
    MechMaterialProtocol,
)
from hmcae.core.context import AnalysisContext
from hmcae.core.element import (
    Capability,
    ConductivityElementProtocol,
    CouplingElementProtocol,
    ElementProtocol,
    NodalValuesElementProtocol,
    RhsElementProtocol,
    StiffnessElementProtocol,
    UpdateElementProtocol,
)
from hmcae.core.errors import (
    AnalysisError,
    AssemblyError,
    BoundaryConditionError,
    ConfigurationError,
    Failure,
    FailureKind,
    GeometryError,
)
from hmcae.core.results import (
    ElementMatrix,
    ElementVector,
    IncrementRecord,
    PartitionedSolveResult,
    StageResult,
    SystemResult,
)
from hmcae.core.state import Ip, IpState

__all__ = [
    "AnalysisContext",
    "Capability",
    "ElementProtocol",
    "StiffnessElementProtocol",
    "CouplingElementProtocol",
    "ConductivityElementProtocol",
    "RhsElementProtocol",
    "UpdateElementProtocol",
    "NodalValuesElementProtocol",
    "MaterialProtocol",
    "MechMaterialProtocol",
    "HydroMechMaterialProtocol",
    "AnalysisError",
    "AssemblyError",
    "BoundaryConditionError",
    "ConfigurationError",
    "GeometryError",
    "Failure",
    "FailureKind",
    "ElementMatrix",
    "ElementVector",
    "SystemResult",
    "PartitionedSolveResult",
    "IncrementRecord",
    "StageResult",
    "Ip",
    "IpState",
]
