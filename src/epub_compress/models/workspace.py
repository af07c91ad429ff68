# FILE: src/epub_compress/models/workspace.py
import shutil
import tempfile
from collections.abc import Callable, Iterator
from contextlib import AbstractContextManager, contextmanager
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from ..shared.constants import EPUB_CONTAINER
from ..shared.settings import WorkspaceSettings
from .local import Entry


@dataclass(frozen=True)
class Workspace:
    """展開されたEPUBの内容を保持する、ジョブ専有の作業ツリー。"""

    id: str
    root_path: Path

    @property
    def mimetype_path(self) -> Path:
        return self.root_path / EPUB_CONTAINER.MIMETYPE_FILE_NAME

    def relative_path(self, path: Path) -> str:
        """作業ツリー内のファイルをPOSIX形式の相対パスに変換します。"""
        return path.relative_to(self.root_path).as_posix()

    def iter_entries(self) -> Iterator[Entry]:
        """
        作業ツリー内の全ての通常ファイルを相対パスの辞書順で列挙します。
        ファイルを指すシンボリックリンクも対象に含みます。
        """
        files = [p for p in self.root_path.rglob('*') if p.is_file()]
        for path in sorted(files, key=self.relative_path):
            yield Entry(relative_path=self.relative_path(path), path=path)


WorkspaceFactory = Callable[[], AbstractContextManager[Workspace]]


def remove_workspace(workspace: Workspace) -> None:
    """作業ツリーを削除します。失敗してもログに記録するだけで例外は送出しません。"""
    log = logger.bind(workspace_path=str(workspace.root_path))
    try:
        shutil.rmtree(workspace.root_path)
        log.debug('作業ディレクトリを削除しました。')
    except FileNotFoundError:
        log.debug('作業ディレクトリは既に存在しません。')
    except OSError as e:
        log.bind(error=str(e)).warning('作業ディレクトリの削除に失敗しました。')


@contextmanager
def scoped_workspace(directory: Path) -> Iterator[Workspace]:
    """
    指定されたディレクトリを作業ツリーとして確保し、終了時に必ず削除します。
    テストなどで決まったパスを使いたい場合に利用します。
    """
    directory.mkdir(parents=True, exist_ok=True)
    workspace = Workspace(id=directory.name, root_path=directory)
    try:
        yield workspace
    finally:
        remove_workspace(workspace)


def temporary_workspace_factory(settings: WorkspaceSettings) -> WorkspaceFactory:
    """設定に基づき、一意な名前の一時作業ツリーを生成するファクトリを返します。"""

    def factory() -> AbstractContextManager[Workspace]:
        root = settings.root_directory
        if root is not None:
            root.mkdir(parents=True, exist_ok=True)
        directory = Path(tempfile.mkdtemp(prefix=settings.prefix, dir=root))
        return scoped_workspace(directory)

    return factory
