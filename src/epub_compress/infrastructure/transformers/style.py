# FILE: src/epub_compress/infrastructure/transformers/style.py
from typing import Optional

import csscompressor
import tinycss2
from loguru import logger

from ...models.local import Entry
from ...shared.enums import Action
from ...shared.exceptions import StyleMinifyError
from .base import BaseTransformer


def merge_adjacent_rules(css: str) -> str:
    """
    同一セレクタを持つ連続したルールを1つにまとめます。
    隣接するルールのみを対象とするため、カスケードの順序は変わりません。
    解析できないトークンが含まれる場合は入力をそのまま返します。
    """
    rules = tinycss2.parse_stylesheet(css, skip_comments=True, skip_whitespace=True)
    blocks: list[list[str]] = []  # [セレクタ, 宣言] または [生のテキスト]
    for rule in rules:
        if rule.type == 'error':
            return css
        if rule.type != 'qualified-rule':
            blocks.append([rule.serialize()])
            continue

        selector = tinycss2.serialize(rule.prelude).strip()
        declarations = tinycss2.serialize(rule.content).strip().strip(';')
        if blocks and len(blocks[-1]) == 2 and blocks[-1][0] == selector:
            if declarations:
                previous = blocks[-1][1]
                blocks[-1][1] = f'{previous};{declarations}' if previous else declarations
            continue
        blocks.append([selector, declarations])

    return ''.join(
        f'{block[0]}{{{block[1]}}}' if len(block) == 2 else block[0] for block in blocks
    )


def minify_css(source: str) -> str:
    """CSSの空白・コメントを除去し、値を短縮した上で隣接ルールを統合します。"""
    compressed = csscompressor.compress(source, preserve_exclamation_comments=False)
    return merge_adjacent_rules(compressed)


class StyleMinifier(BaseTransformer):
    """CSSファイルを圧縮するクラス。"""

    action = Action.MINIFY_STYLE

    def transform(self, data: bytes, entry: Entry) -> Optional[bytes]:
        try:
            source = data.decode('utf-8-sig')
        except UnicodeDecodeError as e:
            raise StyleMinifyError(
                f'UTF-8としてデコードできません: {e}', entry.relative_path
            ) from e

        try:
            minified = minify_css(source)
        except Exception as e:
            raise StyleMinifyError(str(e), entry.relative_path) from e

        if source.strip() and not minified:
            logger.bind(relative_path=entry.relative_path).debug(
                '圧縮後のCSSが空になりました (コメントのみのファイル)。'
            )
        return minified.encode('utf-8')
