"""出力: スナップショットと JSON / CSV エクスポート."""

from hmcae.output.export import export_csv, export_json
from hmcae.output.snapshot import Snapshot, take_snapshot

__all__ = ["Snapshot", "take_snapshot", "export_json", "export_csv"]
