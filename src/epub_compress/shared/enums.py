# src/epub_compress/shared/enums.py
from enum import Enum


class Action(str, Enum):
    """
    ファイルごとに適用する処理の種別。
    strを継承することで、ログ出力や設定値との比較をそのまま行える。
    """

    MINIFY_MARKUP = 'minify_markup'
    MINIFY_STYLE = 'minify_style'
    MINIFY_SCRIPT = 'minify_script'
    MINIFY_VECTOR = 'minify_vector'
    OPTIMIZE_RASTER = 'optimize_raster'
    SKIP = 'skip'


class TransformStatus(str, Enum):
    """単一ファイルの変換結果"""

    CHANGED = 'changed'
    UNCHANGED = 'unchanged'
    SKIPPED = 'skipped'
    FAILED = 'failed'


class JobStatus(str, Enum):
    """ジョブ全体の終了ステータス"""

    SUCCESS = 'success'
    FAILURE = 'failure'
