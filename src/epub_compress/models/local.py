"""
アプリケーションの内部処理(展開、変換、梱包)で利用されるデータモデル。
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from ..shared.enums import Action, JobStatus, TransformStatus


# --- 作業ツリー関連 ---
@dataclass(frozen=True)
class Entry:
    """作業ツリー内の単一ファイル。ルートからの相対パスで識別されます。"""

    relative_path: str
    path: Path

    @property
    def extension(self) -> str:
        """小文字に正規化された拡張子 (例: '.xhtml')。"""
        return Path(self.relative_path).suffix.lower()

    def read_bytes(self) -> bytes:
        return self.path.read_bytes()

    def write_bytes(self, data: bytes) -> None:
        self.path.write_bytes(data)


# --- 変換処理関連 ---
@dataclass
class TransformResult:
    """単一ファイルの変換結果を格納します。例外の代わりに呼び出し元へ返されます。"""

    relative_path: str
    action: Action
    status: TransformStatus
    original_size: Optional[int] = None
    new_size: Optional[int] = None
    error: Optional[str] = None
    duration: Optional[float] = None


# --- ジョブ関連 ---
@dataclass
class JobReport:
    """ジョブ全体の終了ステータスと集計値。"""

    input_path: Path
    output_path: Path
    status: JobStatus = JobStatus.FAILURE
    results: List[TransformResult] = field(default_factory=list)
    input_size: Optional[int] = None
    output_size: Optional[int] = None

    def _count(self, status: TransformStatus) -> int:
        return sum(1 for r in self.results if r.status == status)

    @property
    def changed_count(self) -> int:
        return self._count(TransformStatus.CHANGED)

    @property
    def unchanged_count(self) -> int:
        return self._count(TransformStatus.UNCHANGED)

    @property
    def skipped_count(self) -> int:
        return self._count(TransformStatus.SKIPPED)

    @property
    def failed_count(self) -> int:
        return self._count(TransformStatus.FAILED)

    @property
    def failures(self) -> List[TransformResult]:
        return [r for r in self.results if r.status == TransformStatus.FAILED]

    @property
    def saved_bytes(self) -> int:
        if self.input_size is None or self.output_size is None:
            return 0
        return self.input_size - self.output_size

    @property
    def saved_percent(self) -> float:
        if not self.input_size:
            return 0.0
        return self.saved_bytes / self.input_size * 100
