# FILE: src/epub_compress/entrypoints/cli.py
import sys
from pathlib import Path
from typing import Annotated, Any, Optional

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from ..domain.orchestrator import CompressionJob
from ..models.local import JobReport
from ..shared.exceptions import EpubCompressError, SettingsError
from ..shared.settings import Settings
from ..utils.common import human_readable_size
from ..utils.logging import setup_logging

app = typer.Typer(
    help='EPUB内のHTML/CSS/JS/SVGを圧縮し、必要に応じて画像を再エンコードして、規格に準拠したEPUBとして再梱包します。',
    rich_markup_mode='markdown',
    add_completion=False,
)
console = Console()


def _initialize_settings(
    config_file: Path | None, overrides: dict[str, Any]
) -> Settings:
    """設定オブジェクトを初期化するヘルパー関数。CLIで指定された値が最優先されます。"""
    try:
        return Settings(_config_file=config_file, **overrides)
    except SettingsError as e:
        logger.bind(error=str(e)).error(f'❌ 設定エラーが発生しました: {e}')
        raise typer.Exit(code=1) from e


def _collect_overrides(
    images: Optional[bool], quality: Optional[int], level: Optional[int]
) -> dict[str, Any]:
    """明示的に指定されたCLIオプションのみを設定の上書き値として集めます。"""
    overrides: dict[str, Any] = {}
    image_overrides: dict[str, Any] = {}
    if images is not None:
        image_overrides['enabled'] = images
    if quality is not None:
        image_overrides['quality'] = quality
    if image_overrides:
        overrides['images'] = image_overrides
    if level is not None:
        overrides['archive'] = {'compression_level': level}
    return overrides


def print_report(report: JobReport) -> None:
    """処理結果をテーブル形式で表示します。"""
    table = Table(title='EPUB圧縮結果', show_header=True, header_style='bold cyan')
    table.add_column('項目')
    table.add_column('値', justify='right')
    table.add_row('変更したファイル', str(report.changed_count))
    table.add_row('変更なし', str(report.unchanged_count))
    table.add_row('スキップ', str(report.skipped_count))
    table.add_row('失敗', str(report.failed_count))
    table.add_row('元のサイズ', human_readable_size(report.input_size))
    table.add_row('圧縮後のサイズ', human_readable_size(report.output_size))
    table.add_row('削減率', f'{report.saved_percent:.2f}%')
    console.print(table)

    if report.failures:
        failures = Table(title='処理に失敗したファイル', header_style='bold red')
        failures.add_column('ファイル')
        failures.add_column('原因')
        for result in report.failures:
            failures.add_row(result.relative_path, result.error or '')
        console.print(failures)


@app.command()
def compress(
    input_path: Annotated[
        Path,
        typer.Argument(
            help='圧縮するEPUBファイルへのパス。',
            metavar='INPUT',
            show_default=False,
        ),
    ],
    output_path: Annotated[
        Path,
        typer.Argument(
            help='出力するEPUBファイルへのパス。既に存在する場合は上書きされます。',
            metavar='OUTPUT',
            dir_okay=False,
            show_default=False,
        ),
    ],
    images: Annotated[
        Optional[bool],
        typer.Option(
            '--images/--no-images',
            help='JPEG/PNG画像の再エンコードを有効にします。[デフォルト: 無効]',
            show_default=False,
        ),
    ] = None,
    quality: Annotated[
        Optional[int],
        typer.Option(
            '--quality',
            min=0,
            max=100,
            help='画像を再エンコードする際の品質 (0-100)。[デフォルト: 80]',
            show_default=False,
        ),
    ] = None,
    level: Annotated[
        Optional[int],
        typer.Option(
            '--level',
            min=0,
            max=9,
            help="'mimetype' 以外のエントリの圧縮レベル (0=無圧縮, 9=最大)。[デフォルト: 9]",
            show_default=False,
        ),
    ] = None,
    config: Annotated[
        Path | None,
        typer.Option(
            '-c',
            '--config',
            help='カスタム設定TOMLファイルへのパス。',
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
            resolve_path=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            '-v',
            '--verbose',
            help='詳細なデバッグログを有効にします。',
            show_default=False,
        ),
    ] = False,
    log_file: Annotated[
        bool,
        typer.Option(
            '--log-file',
            help='ログをJSON形式でファイルに出力します。',
            show_default=False,
        ),
    ] = False,
) -> None:
    """
    EPUBファイルを圧縮します。
    """
    overrides = _collect_overrides(images, quality, level)
    if verbose:
        overrides['log_level'] = 'DEBUG'
    settings = _initialize_settings(config, overrides)
    setup_logging(settings.log_level, serialize_to_file=log_file)

    job = CompressionJob(settings)

    try:
        report = job.run(input_path, output_path)
    except EpubCompressError as e:
        logger.bind(error=str(e)).error(f'❌ 処理中にエラーが発生しました: {e}')
        raise typer.Exit(code=1) from e

    print_report(report)


@logger.catch(onerror=lambda _: sys.exit(1))
def run_app() -> None:
    """
    アプリケーション全体を@logger.catchでラップし、
    制御下の例外は個別処理、それ以外をLoguruに記録させるためのラッパー関数。
    """
    app()
