# FILE: src/epub_compress/infrastructure/transformers/base.py
import time
from abc import ABC, abstractmethod
from typing import Optional

from loguru import logger

from ...models.local import Entry, TransformResult
from ...shared.enums import Action, TransformStatus


class BaseTransformer(ABC):
    """アセット変換処理の抽象基底クラス。"""

    action: Action

    @abstractmethod
    def transform(self, data: bytes, entry: Entry) -> Optional[bytes]:
        """
        ファイルの内容を変換し、置き換え後のバイト列を返します。
        置き換えが不要な場合はNoneを返します。

        Raises:
            TransformError: 内容を解析・変換できない場合。
        """
        raise NotImplementedError

    def should_replace(self, original: bytes, transformed: bytes) -> bool:
        """変換結果で元のファイルを置き換えるかどうかを判定します。"""
        return transformed != original

    def run(self, entry: Entry) -> TransformResult:
        """
        単一ファイルに変換を適用し、結果を書き戻します。
        変換中のエラーは送出せず、FAILEDの結果として返します。
        """
        start_time = time.time()
        log = logger.bind(relative_path=entry.relative_path, action=self.action.value)
        try:
            original = entry.read_bytes()
            transformed = self.transform(original, entry)
            if transformed is None or not self.should_replace(original, transformed):
                return TransformResult(
                    relative_path=entry.relative_path,
                    action=self.action,
                    status=TransformStatus.UNCHANGED,
                    original_size=len(original),
                    new_size=len(original),
                    duration=time.time() - start_time,
                )
            entry.write_bytes(transformed)
        except Exception as e:
            log.bind(error=str(e)).debug('変換に失敗したため元のファイルを保持します。')
            return TransformResult(
                relative_path=entry.relative_path,
                action=self.action,
                status=TransformStatus.FAILED,
                error=f'{type(e).__name__}: {e}',
                duration=time.time() - start_time,
            )

        log.bind(before=len(original), after=len(transformed)).debug('変換完了')
        return TransformResult(
            relative_path=entry.relative_path,
            action=self.action,
            status=TransformStatus.CHANGED,
            original_size=len(original),
            new_size=len(transformed),
            duration=time.time() - start_time,
        )
