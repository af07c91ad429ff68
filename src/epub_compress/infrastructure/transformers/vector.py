# FILE: src/epub_compress/infrastructure/transformers/vector.py
import re
from typing import Optional

from ...models.local import Entry
from ...shared.enums import Action
from .base import BaseTransformer

_COMMENT_PATTERN = re.compile(rb'<!--.*?-->', re.DOTALL)
_WHITESPACE_RUN_PATTERN = re.compile(rb'\s{2,}')


def minify_svg(data: bytes) -> bytes:
    """
    SVGをテキストレベルで保守的に圧縮します。
    コメントの削除、2文字以上の連続空白の1文字への置換、前後の空白の除去のみを行い、
    構造的な解析は行いません。
    """
    text = _COMMENT_PATTERN.sub(b'', data)
    return _WHITESPACE_RUN_PATTERN.sub(b' ', text).strip()


class VectorMinifier(BaseTransformer):
    """SVGファイルを圧縮するクラス。"""

    action = Action.MINIFY_VECTOR

    def transform(self, data: bytes, entry: Entry) -> Optional[bytes]:
        return minify_svg(data)
