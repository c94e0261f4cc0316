"""hmcae - 水理力学連成有限要素解析エンジン.

使用例:
    from hmcae import Domain, MaterialBind, NodeBC, FaceBC, solve
    from hmcae.materials import ElasticSolidLinSeep
    from hmcae.mesh import make_rect_mesh

    mesh = make_rect_mesh(1.0, 1.0, 1, 4)
    dom = Domain(mesh, [MaterialBind(None, ElasticSolidLinSeep(E=1000.0, nu=0.25, k=1.0, gw=10.0))])
    bcs = [
        NodeBC("all", ux=0.0),
        NodeBC(lambda x, y, z: y == 0.0, uy=0.0),
        NodeBC(lambda x, y, z: y == 1.0, uw=0.0),
        FaceBC(lambda x, y, z: y == 1.0, ty=-10.0),
    ]
    result = solve(dom, bcs, time_span=1.0, nincs=10)
"""

from hmcae.bc import FaceBC, NodeBC, configure_dofs, get_bc_vals
from hmcae.core.context import AnalysisContext
from hmcae.core.errors import (
    AnalysisError,
    AssemblyError,
    BoundaryConditionError,
    ConfigurationError,
    Failure,
    FailureKind,
    GeometryError,
)
from hmcae.core.results import StageResult
from hmcae.domain import Dof, Domain, MaterialBind, Node
from hmcae.loggers import IpLogger, NodeLogger
from hmcae.solver import SolverConfig, solve, solve_partitioned

__version__ = "0.1.0"

__all__ = [
    "AnalysisContext",
    "Domain",
    "Dof",
    "Node",
    "MaterialBind",
    "NodeBC",
    "FaceBC",
    "configure_dofs",
    "get_bc_vals",
    "NodeLogger",
    "IpLogger",
    "SolverConfig",
    "solve",
    "solve_partitioned",
    "StageResult",
    "AnalysisError",
    "AssemblyError",
    "BoundaryConditionError",
    "ConfigurationError",
    "GeometryError",
    "Failure",
    "FailureKind",
]
