"""解析コンテキスト（不変値）.

次元・解析モデル・厚み・現在時刻をまとめた値で、要素・構成則の全呼び出しに明示的に渡す。
時刻が進むときは dataclasses.replace で新しい値を作る。
"""

from __future__ import annotations

from dataclasses import dataclass, replace

MODEL_TYPES = ("plane_strain", "plane_stress", "axisymmetric", "3d")


@dataclass(frozen=True)
class AnalysisContext:
    """解析コンテキスト.

    Attributes:
        ndim: 空間次元（1, 2, 3）
        model_type: "plane_strain", "plane_stress", "axisymmetric", "3d"
        thickness: 平面問題の厚み
        t: 現在時刻
    """

    ndim: int = 2
    model_type: str = "plane_strain"
    thickness: float = 1.0
    t: float = 0.0

    def __post_init__(self) -> None:
        if self.ndim not in (1, 2, 3):
            raise ValueError(f"ndim は 1, 2, 3 のいずれか: {self.ndim}")
        if self.model_type not in MODEL_TYPES:
            raise ValueError(f"model_type は {MODEL_TYPES} のいずれか: {self.model_type}")
        if self.ndim == 3 and self.model_type != "3d":
            raise ValueError(f"3次元解析の model_type は '3d': {self.model_type}")
        if self.ndim == 2 and self.model_type == "3d":
            raise ValueError("2次元解析に model_type='3d' は指定できない")
        if self.thickness <= 0:
            raise ValueError(f"厚み thickness は正値: {self.thickness}")

    def at(self, t: float) -> AnalysisContext:
        """時刻 t のコンテキストを返す."""
        return replace(self, t=t)
