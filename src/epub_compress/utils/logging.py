# FILE: src/epub_compress/utils/logging.py
from loguru import logger
from rich.console import Console
from rich.logging import RichHandler


def setup_logging(level: str = 'INFO', serialize_to_file: bool = False):
    """
    LoguruをRichHandlerとJSONファイル出力用に設定します。
    コンソール出力は標準エラー出力に送られ、標準出力は結果表示のために空けておきます。
    """
    logger.remove()  # デフォルトハンドラの削除

    # コンソール用のハンドラ
    logger.add(
        RichHandler(
            console=Console(stderr=True),
            rich_tracebacks=True,
            show_path=False,
            markup=False,
            log_time_format='[%X]',
        ),
        level=level.upper(),
        format='{message}',
        backtrace=False,
        diagnose=False,
    )

    # ファイル出力用のハンドラ (JSON形式)
    if serialize_to_file:
        logger.add(
            'logs/epub_compress_{time}.log',
            level='DEBUG',
            serialize=True,
            enqueue=True,
            rotation='10 MB',
            retention='7 days',
            backtrace=True,
            diagnose=True,
        )

    logger.debug(
        'ロガーが設定されました。レベル: {}, ファイル出力: {}',
        level.upper(),
        serialize_to_file,
    )
