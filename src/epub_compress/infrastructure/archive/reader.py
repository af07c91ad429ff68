# FILE: src/epub_compress/infrastructure/archive/reader.py
import zipfile
from pathlib import Path

from loguru import logger

from ...shared.exceptions import ExtractionError


def extract_archive(archive_path: Path, destination: Path) -> int:
    """
    ZIP形式のアーカイブを指定ディレクトリに展開し、展開したファイル数を返します。

    エントリの相対パス階層はそのまま再現され、中間ディレクトリは必要に応じて作成されます。
    絶対パスや '..' を含むエントリ名は zipfile によって展開先の内側に正規化されます。

    Raises:
        ExtractionError: 入力が有効なZIPでない、破損している、
            または展開先を作成・書き込みできない場合。
    """
    log = logger.bind(archive_path=str(archive_path), destination=str(destination))

    if not archive_path.is_file():
        raise ExtractionError(f'入力ファイルが見つかりません: {archive_path}')

    try:
        destination.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ExtractionError(
            f'展開先ディレクトリを作成できません: {destination}: {e}'
        ) from e

    try:
        with zipfile.ZipFile(archive_path) as zf:
            members = [info for info in zf.infolist() if not info.is_dir()]
            zf.extractall(destination)
    except zipfile.BadZipFile as e:
        raise ExtractionError(
            f'有効なZIPアーカイブではありません: {archive_path}: {e}'
        ) from e
    except (OSError, EOFError, NotImplementedError, RuntimeError) as e:
        # RuntimeError: 暗号化されたエントリ, NotImplementedError: 未対応の圧縮方式
        raise ExtractionError(
            f'アーカイブの展開に失敗しました: {archive_path}: {e}'
        ) from e

    log.bind(file_count=len(members)).debug('アーカイブを展開しました。')
    return len(members)
