"""解析エラーの型定義.

致命的エラーの分類:
  GEOMETRY            — 反転・縮退要素（|J| ≤ 0）、ジョイント厚 h ≤ 0。再試行しない。
  LINEAR_SOLVE        — G11 の特異。例外ではなく NaN で伝播し、非収束として扱う。
  NONCONVERGENCE      — 増分の非収束。自動増分で Δt を半減して再試行する。
  ASSEMBLY            — トリプレットからの全体行列構築失敗。
  BOUNDARY_CONDITION  — 2D 解析での面外荷重など、不正な境界条件。
  CONFIGURATION       — 現在時刻以前の終了時刻など、ステージ設定の不整合。

solve() はこれらの例外を捕捉して Failure に変換し、呼び出し側へ例外を伝播させない。
"""

from __future__ import annotations

import enum
from dataclasses import dataclass


class FailureKind(enum.Enum):
    """解析失敗の種別."""

    GEOMETRY = "geometry"
    LINEAR_SOLVE = "linear_solve"
    NONCONVERGENCE = "nonconvergence"
    ASSEMBLY = "assembly"
    BOUNDARY_CONDITION = "boundary_condition"
    CONFIGURATION = "configuration"


class AnalysisError(Exception):
    """解析エラーの基底クラス."""

    kind: FailureKind


class GeometryError(AnalysisError, ValueError):
    """要素形状の異常（反転・縮退）.

    Attributes:
        elem_id: 問題の要素ID
    """

    kind = FailureKind.GEOMETRY

    def __init__(self, message: str, elem_id: int | None = None) -> None:
        super().__init__(message)
        self.elem_id = elem_id


class AssemblyError(AnalysisError, RuntimeError):
    """全体行列の構築失敗."""

    kind = FailureKind.ASSEMBLY


class BoundaryConditionError(AnalysisError, ValueError):
    """不正な境界条件指定."""

    kind = FailureKind.BOUNDARY_CONDITION


class ConfigurationError(AnalysisError, ValueError):
    """ステージ設定の不整合."""

    kind = FailureKind.CONFIGURATION


@dataclass(frozen=True)
class Failure:
    """solve() が返す失敗情報.

    Attributes:
        kind: 失敗種別
        message: 説明メッセージ
        increment: 失敗時のインクリメント番号（セットアップ時は None）
        elem_id: 問題の要素ID（幾何エラー時）
    """

    kind: FailureKind
    message: str
    increment: int | None = None
    elem_id: int | None = None

    @classmethod
    def from_error(cls, err: AnalysisError, increment: int | None = None) -> Failure:
        return cls(
            kind=err.kind,
            message=str(err),
            increment=increment,
            elem_id=getattr(err, "elem_id", None),
        )

    def __str__(self) -> str:
        where = []
        if self.increment is not None:
            where.append(f"increment {self.increment}")
        if self.elem_id is not None:
            where.append(f"element {self.elem_id}")
        loc = f" ({', '.join(where)})" if where else ""
        return f"[{self.kind.value}]{loc} {self.message}"
