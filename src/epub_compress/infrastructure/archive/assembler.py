# FILE: src/epub_compress/infrastructure/archive/assembler.py
import zipfile
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from ...models.workspace import Workspace
from ...shared.constants import EPUB_CONTAINER, ZIP_FILE_MODE, ZIP_FIXED_DATE_TIME
from ...shared.exceptions import (
    AssemblyError,
    InvalidMimetypeError,
    MissingMimetypeError,
)


@dataclass(frozen=True)
class AssemblyResult:
    """梱包したEPUBの情報。"""

    output_path: Path
    entry_names: list[str]
    size: int


class EpubAssembler:
    """
    作業ツリーをEPUBのコンテナ規則に従ったZIPファイルに梱包するクラス。

    - 'mimetype' は常に先頭エントリとして無圧縮で格納されます。
    - それ以外のファイルは相対パスの辞書順に、指定レベルで圧縮して格納されます。
    - タイムスタンプと権限は固定されるため、同じ作業ツリーからは同一のバイト列が得られます。
    """

    def __init__(self, compression_level: int = 9, strict_mimetype: bool = False):
        if not 0 <= compression_level <= 9:
            raise ValueError(f'圧縮レベルは0から9の範囲で指定してください: {compression_level}')
        self.compression_level = compression_level
        self.strict_mimetype = strict_mimetype

    def assemble(self, workspace: Workspace, output_path: Path) -> AssemblyResult:
        """準備された作業ツリーをZIPファイルに書き込み、EPUBを生成します。"""
        mimetype_content = self._read_mimetype(workspace)
        entries = [
            entry
            for entry in workspace.iter_entries()
            if entry.relative_path != EPUB_CONTAINER.MIMETYPE_FILE_NAME
        ]

        log = logger.bind(output_path=str(output_path), entry_count=len(entries) + 1)
        entry_names = [EPUB_CONTAINER.MIMETYPE_FILE_NAME]
        try:
            with zipfile.ZipFile(output_path, 'w') as zip_file:
                self._write_entry(
                    zip_file,
                    EPUB_CONTAINER.MIMETYPE_FILE_NAME,
                    mimetype_content,
                    zipfile.ZIP_STORED,
                )
                for entry in entries:
                    self._write_entry(
                        zip_file,
                        entry.relative_path,
                        entry.read_bytes(),
                        self._compress_type,
                    )
                    entry_names.append(entry.relative_path)
            size = output_path.stat().st_size
        except (OSError, zipfile.LargeZipFile) as e:
            raise AssemblyError(
                f'EPUBの書き出しに失敗しました: {output_path}: {e}'
            ) from e

        log.bind(size=size).debug('EPUB を生成しました。')
        return AssemblyResult(output_path=output_path, entry_names=entry_names, size=size)

    @property
    def _compress_type(self) -> int:
        return zipfile.ZIP_STORED if self.compression_level == 0 else zipfile.ZIP_DEFLATED

    def _read_mimetype(self, workspace: Workspace) -> bytes:
        """'mimetype' の存在を確認し、その内容を返します。出力ファイルを開く前に呼び出されます。"""
        mimetype_path = workspace.mimetype_path
        if not mimetype_path.is_file():
            raise MissingMimetypeError(
                "EPUBのルートに 'mimetype' ファイルが見つかりません。処理を中断します。"
            )
        try:
            content = mimetype_path.read_bytes()
        except OSError as e:
            raise AssemblyError(f"'mimetype' の読み込みに失敗しました: {e}") from e

        if content != EPUB_CONTAINER.MIMETYPE_CONTENT:
            if self.strict_mimetype:
                raise InvalidMimetypeError(
                    f"'mimetype' の内容が不正です: {content[:64]!r}"
                )
            logger.bind(content=repr(content[:64])).warning(
                "'mimetype' の内容が 'application/epub+zip' と一致しません。"
            )
        return content

    def _write_entry(
        self,
        zip_file: zipfile.ZipFile,
        name: str,
        data: bytes,
        compress_type: int,
    ) -> None:
        """固定のメタデータを持つZipInfoで単一エントリを書き込みます。"""
        info = zipfile.ZipInfo(name, date_time=ZIP_FIXED_DATE_TIME)
        info.compress_type = compress_type
        info.external_attr = ZIP_FILE_MODE << 16
        if compress_type == zipfile.ZIP_DEFLATED:
            zip_file.writestr(info, data, compresslevel=self.compression_level)
        else:
            zip_file.writestr(info, data)
