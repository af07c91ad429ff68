# FILE: src/epub_compress/domain/orchestrator.py
import time
from contextlib import ExitStack
from pathlib import Path
from typing import List, Optional

from loguru import logger

from ..domain.classifier import classify
from ..domain.interfaces import IAssembler
from ..infrastructure.archive.assembler import EpubAssembler
from ..infrastructure.archive.reader import extract_archive
from ..infrastructure.transformers.registry import TransformerRegistry
from ..models.local import JobReport, TransformResult
from ..models.workspace import Workspace, WorkspaceFactory, temporary_workspace_factory
from ..shared.constants import EPUB_CONTAINER
from ..shared.enums import Action, JobStatus, TransformStatus
from ..shared.exceptions import (
    AssemblyError,
    ExtractionError,
    InvalidMimetypeError,
    MissingMimetypeError,
)
from ..shared.settings import Settings
from ..utils.common import human_readable_size


class CompressionJob:
    """
    展開(Reader)、変換(Transformer)、梱包(Assembler)のワークフローを調整する責務を持つ。

    個別ファイルの変換失敗はここで吸収して集計し、ジョブは継続します。
    展開・梱包の失敗は呼び出し元へ送出されますが、作業ツリーはどの場合でも削除されます。
    """

    def __init__(
        self,
        settings: Settings,
        workspace_factory: Optional[WorkspaceFactory] = None,
        registry: Optional[TransformerRegistry] = None,
        assembler: Optional[IAssembler] = None,
    ):
        self.settings = settings
        self.workspace_factory = workspace_factory or temporary_workspace_factory(
            settings.workspace
        )
        self.registry = registry or TransformerRegistry.from_settings(settings)
        self.assembler = assembler or EpubAssembler(
            compression_level=settings.archive.compression_level,
            strict_mimetype=settings.archive.strict_mimetype,
        )

    def run(self, input_path: Path, output_path: Path) -> JobReport:
        """
        入力EPUBを圧縮し、output_path に書き出します。

        Raises:
            ExtractionError: 入力を展開できない場合。
            MissingMimetypeError: ルートに 'mimetype' が存在しない場合。
            AssemblyError: 出力の書き込みに失敗した場合。
        """
        report = JobReport(input_path=input_path, output_path=output_path)
        start_time = time.time()

        with logger.contextualize(input_path=str(input_path)):
            logger.bind(output_path=str(output_path)).info('EPUB圧縮処理を開始')
            with ExitStack() as stack:
                try:
                    workspace = stack.enter_context(self.workspace_factory())
                except OSError as e:
                    raise ExtractionError(f'作業ディレクトリを作成できません: {e}') from e

                extract_archive(input_path, workspace.root_path)
                report.input_size = input_path.stat().st_size
                report.results = self._process_entries(workspace)
                report.output_size = self._assemble(workspace, output_path)

            report.status = JobStatus.SUCCESS
            self._log_summary(report, time.time() - start_time)
        return report

    def _process_entries(self, workspace: Workspace) -> List[TransformResult]:
        """作業ツリーの各ファイルを分類し、1件ずつ順番に変換します。"""
        results: List[TransformResult] = []
        images_enabled = self.settings.images.enabled

        for entry in workspace.iter_entries():
            if entry.relative_path == EPUB_CONTAINER.MIMETYPE_FILE_NAME:
                continue
            log = logger.bind(relative_path=entry.relative_path)
            action = classify(entry.relative_path, images_enabled=images_enabled)
            transformer = self.registry.get(action) if action is not Action.SKIP else None

            if transformer is None:
                log.bind(action=action.value).debug('スキップ')
                results.append(
                    TransformResult(
                        relative_path=entry.relative_path,
                        action=action,
                        status=TransformStatus.SKIPPED,
                    )
                )
                continue

            try:
                result = transformer.run(entry)
            except Exception as e:
                # 変換クラスは例外を送出しない契約だが、1ファイルの失敗でジョブを止めない
                result = TransformResult(
                    relative_path=entry.relative_path,
                    action=action,
                    status=TransformStatus.FAILED,
                    error=f'{type(e).__name__}: {e}',
                )

            if result.status == TransformStatus.FAILED:
                log.bind(action=action.value, error=result.error).warning(
                    f'処理に失敗したため元のファイルを保持します: {entry.relative_path}'
                )
            results.append(result)

        return results

    def _assemble(self, workspace: Workspace, output_path: Path) -> int:
        """作業ツリーを梱包します。書き込み途中で失敗した場合は不完全な出力を削除します。"""
        if output_path.exists():
            logger.bind(output_path=str(output_path)).warning(
                '出力ファイルは既に存在するため上書きします。'
            )
        try:
            self.assembler.assemble(workspace, output_path)
        except (MissingMimetypeError, InvalidMimetypeError):
            raise
        except AssemblyError:
            self._discard_output(output_path)
            raise
        return output_path.stat().st_size

    def _discard_output(self, output_path: Path) -> None:
        try:
            output_path.unlink(missing_ok=True)
            logger.bind(output_path=str(output_path)).debug('不完全な出力ファイルを削除しました。')
        except OSError as e:
            logger.bind(output_path=str(output_path), error=str(e)).warning(
                '不完全な出力ファイルの削除に失敗しました。このファイルは使用しないでください。'
            )

    def _log_summary(self, report: JobReport, duration: float) -> None:
        if report.skipped_count:
            logger.bind(skipped_count=report.skipped_count).warning(
                f'{report.skipped_count}件のファイルは対象外のためスキップしました。'
            )
        if report.failed_count:
            logger.bind(failed_count=report.failed_count).warning(
                f'{report.failed_count}件のファイルの処理に失敗しました (元の内容を保持)。'
            )
        logger.bind(
            changed_count=report.changed_count,
            duration=round(duration, 2),
        ).success(
            f'完了: {human_readable_size(report.input_size)} -> '
            f'{human_readable_size(report.output_size)} '
            f'({report.saved_percent:.2f}% 削減)'
        )
