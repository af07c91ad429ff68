"""EPUB内のテキスト系アセットと画像を圧縮し、規格に準拠したEPUBとして再梱包するツール。"""

__version__ = '0.1.0'
