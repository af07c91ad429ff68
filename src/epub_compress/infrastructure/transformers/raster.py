# FILE: src/epub_compress/infrastructure/transformers/raster.py
from typing import Optional

from ...models.local import Entry
from ...shared.enums import Action
from ...shared.exceptions import RasterOptimizeError
from ...shared.settings import ImageSettings
from ...utils.image_optimizer import ImageCompressor
from .base import BaseTransformer


class RasterOptimizer(BaseTransformer):
    """
    JPEG/PNG画像を再エンコードするクラス。
    結果が元のファイルより厳密に小さい場合のみ置き換えるため、ファイルサイズが増えることはありません。
    """

    action = Action.OPTIMIZE_RASTER

    def __init__(
        self, settings: ImageSettings, compressor: Optional[ImageCompressor] = None
    ):
        self.settings = settings
        self.compressor = compressor or ImageCompressor(settings)

    def transform(self, data: bytes, entry: Entry) -> Optional[bytes]:
        try:
            return self.compressor.compress_bytes(data)
        except RasterOptimizeError as e:
            raise RasterOptimizeError(str(e), entry.relative_path) from e

    def should_replace(self, original: bytes, transformed: bytes) -> bool:
        return len(transformed) < len(original)
