"""
アプリケーション全体で共有される共通のユーティリティ関数。
"""

from typing import Optional


def human_readable_size(size_bytes: Optional[int]) -> str:
    """バイト数を人間が読みやすい形式の文字列 (kB, MBなど) に変換します。"""
    if size_bytes is None:
        return 'N/A'
    n_float = float(size_bytes)
    units = ['B', 'kB', 'MB', 'GB', 'TB']
    i = 0
    while abs(n_float) >= 1024 and i < len(units) - 1:
        n_float /= 1024.0
        i += 1
    if units[i] == 'B':
        return f'{int(n_float)} {units[i]}'
    return f'{n_float:.2f} {units[i]}'
