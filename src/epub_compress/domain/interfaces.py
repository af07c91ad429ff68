# FILE: src/epub_compress/domain/interfaces.py

from pathlib import Path
from typing import Protocol, runtime_checkable

from ..models.local import Entry, TransformResult
from ..models.workspace import Workspace
from ..shared.enums import Action


@runtime_checkable
class ITransformer(Protocol):
    """単一ファイルを変換するためのインターフェース。"""

    action: Action

    def run(self, entry: Entry) -> TransformResult:
        """
        ファイルに変換を適用し、結果を返します。
        失敗時も例外を送出せず、FAILEDの結果を返さなければなりません。
        """
        ...


class IAssembler(Protocol):
    """作業ツリーから成果物を生成するためのインターフェース。"""

    def assemble(self, workspace: Workspace, output_path: Path) -> object:
        """指定された作業ツリーを output_path に書き出します。"""
        ...
