# FILE: src/epub_compress/domain/classifier.py
from pathlib import PurePosixPath
from typing import Mapping

from ..shared.constants import EPUB_CONTAINER, EXTENSION_ACTIONS
from ..shared.enums import Action


def classify(
    relative_path: str,
    *,
    images_enabled: bool = False,
    table: Mapping[str, Action] = EXTENSION_ACTIONS,
) -> Action:
    """
    ファイルの拡張子(大文字小文字を区別しない)から適用する処理を決定します。

    画像の再エンコードは images_enabled が真の場合のみ選択され、
    それ以外の未知の拡張子やルートの 'mimetype' は常にSKIPになります。
    """
    if relative_path == EPUB_CONTAINER.MIMETYPE_FILE_NAME:
        return Action.SKIP

    action = table.get(PurePosixPath(relative_path).suffix.lower(), Action.SKIP)
    if action is Action.OPTIMIZE_RASTER and not images_enabled:
        return Action.SKIP
    return action
