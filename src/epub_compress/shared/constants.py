# src/epub_compress/shared/constants.py
from dataclasses import dataclass
from typing import Final

from .enums import Action


# --- 1. EPUB Container ---
@dataclass(frozen=True)
class EpubContainer:
    """
    EPUBコンテナの必須構造を定義する。
    infrastructure/archive/assembler.py がこれを参照する。
    """

    MIMETYPE_FILE_NAME: str = 'mimetype'
    MIMETYPE_CONTENT: bytes = b'application/epub+zip'


EPUB_CONTAINER: Final = EpubContainer()

# 再現可能な出力のため、全エントリに固定のタイムスタンプを設定する
# (ZIP形式で表現可能な最小の日時)
ZIP_FIXED_DATE_TIME: Final = (1980, 1, 1, 0, 0, 0)
ZIP_FILE_MODE: Final = 0o644


# --- 2. File Classification ---
# (domain/classifier.py がこれを参照)
EXTENSION_ACTIONS: Final[dict[str, Action]] = {
    '.html': Action.MINIFY_MARKUP,
    '.xhtml': Action.MINIFY_MARKUP,
    '.htm': Action.MINIFY_MARKUP,
    '.xml': Action.MINIFY_MARKUP,
    '.opf': Action.MINIFY_MARKUP,
    '.css': Action.MINIFY_STYLE,
    '.js': Action.MINIFY_SCRIPT,
    '.svg': Action.MINIFY_VECTOR,
    '.jpg': Action.OPTIMIZE_RASTER,
    '.jpeg': Action.OPTIMIZE_RASTER,
    '.png': Action.OPTIMIZE_RASTER,
}


# --- 3. Markup ---
@dataclass(frozen=True)
class Namespaces:
    XHTML: str = 'http://www.w3.org/1999/xhtml'
    SVG: str = 'http://www.w3.org/2000/svg'
    MATHML: str = 'http://www.w3.org/1998/Math/MathML'
    XML: str = 'http://www.w3.org/XML/1998/namespace'


NAMESPACES: Final = Namespaces()

# 空白を一切変更してはならない要素
WHITESPACE_PRESERVING_TAGS: Final = frozenset({'pre', 'textarea', 'script', 'style'})

# 前後の空白のみのテキストを削除できるブロックレベル要素
BLOCK_LEVEL_TAGS: Final = frozenset(
    {
        'address', 'article', 'aside', 'blockquote', 'body', 'caption', 'col',
        'colgroup', 'dd', 'details', 'dialog', 'div', 'dl', 'dt', 'fieldset',
        'figcaption', 'figure', 'footer', 'form', 'h1', 'h2', 'h3', 'h4', 'h5',
        'h6', 'head', 'header', 'hgroup', 'hr', 'html', 'li', 'link', 'main',
        'meta', 'nav', 'ol', 'optgroup', 'option', 'p', 'section', 'summary',
        'table', 'tbody', 'td', 'tfoot', 'th', 'thead', 'title', 'tr', 'ul',
        'base', 'noscript', 'script', 'style', 'pre',
    }
)  # fmt: skip

# SVG/MathMLのうちインラインとして扱う要素 (埋め込みのルート要素とテキストを保持する要素)
FOREIGN_INLINE_TAGS: Final = frozenset(
    {
        'svg', 'math', 'text', 'tspan', 'textPath', 'title', 'desc',
        'mi', 'mn', 'mo', 'ms', 'mtext',
    }
)  # fmt: skip

EMPTY_REMOVABLE_ATTRIBUTES: Final = frozenset(
    {'class', 'id', 'style', 'title', 'lang', 'dir'}
)

# (タグ名, 属性名, 冗長な値) ― 値がNoneの場合は値に関係なく削除
REDUNDANT_ATTRIBUTES: Final = (
    ('script', 'type', 'text/javascript'),
    ('script', 'language', None),
    ('style', 'type', 'text/css'),
    ('form', 'method', 'get'),
    ('input', 'type', 'text'),
)

BOOLEAN_ATTRIBUTES: Final = frozenset(
    {
        'allowfullscreen', 'async', 'autofocus', 'autoplay', 'checked',
        'controls', 'default', 'defer', 'disabled', 'formnovalidate', 'hidden',
        'ismap', 'loop', 'multiple', 'muted', 'nomodule', 'novalidate', 'open',
        'playsinline', 'readonly', 'required', 'reversed', 'selected',
    }
)  # fmt: skip

# 空要素として自己終了タグ ('<br/>') で出力する要素
VOID_TAGS: Final = frozenset(
    {
        'area', 'base', 'br', 'col', 'embed', 'hr', 'img', 'input', 'link',
        'meta', 'param', 'source', 'track', 'wbr',
    }
)  # fmt: skip

SCRIPT_TYPES: Final = frozenset(
    {'', 'text/javascript', 'application/javascript', 'application/ecmascript'}
)
