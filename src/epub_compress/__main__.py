# FILE: src/epub_compress/__main__.py
"""
パッケージを 'python -m epub_compress' コマンドで実行可能にするための
エントリーポイントです。
"""

from .entrypoints.cli import run_app

if __name__ == '__main__':
    run_app()
