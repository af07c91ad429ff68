# FILE: src/epub_compress/infrastructure/transformers/script.py
from typing import Optional

from calmjs.parse import es5
from calmjs.parse.exceptions import ECMASyntaxError
from calmjs.parse.unparsers.es5 import minify_print

from ...models.local import Entry
from ...shared.enums import Action
from ...shared.exceptions import ScriptMinifyError
from .base import BaseTransformer


def _print(program, obfuscate: bool) -> str:
    return minify_print(
        program, obfuscate=obfuscate, obfuscate_globals=False, drop_semi=True
    )


def _shorten(source: str) -> str:
    return _print(es5(source), obfuscate=True)


def minify_js(source: str) -> str:
    """
    JavaScript(ES5)を解析し、空白を除去してローカル識別子を短い名前に置き換えます。
    グローバルスコープの識別子は外部から参照される可能性があるため変更しません。

    同じ回数だけ参照される識別子の短縮名は、圧縮済みのコードを再度圧縮するたびに
    入れ替わります。そのため2通りの結果のうち辞書順で小さい方を返し、
    出力を再度圧縮しても同じ結果になるようにします。
    入れ替わりが2回で元に戻らない場合は識別子の短縮を行いません。

    Raises:
        ScriptMinifyError: スクリプトとして解析できない場合。
    """
    try:
        program = es5(source)
    except ECMASyntaxError as e:
        raise ScriptMinifyError(f'スクリプトを解析できません: {e}') from e

    first = _print(program, obfuscate=True)
    try:
        second = _shorten(first)
        third = _shorten(second)
    except ECMASyntaxError:
        return _print(program, obfuscate=False)

    if third != first:
        return _print(program, obfuscate=False)
    return min(first, second)


class ScriptMinifier(BaseTransformer):
    """JavaScriptファイルを圧縮するクラス。"""

    action = Action.MINIFY_SCRIPT

    def transform(self, data: bytes, entry: Entry) -> Optional[bytes]:
        try:
            source = data.decode('utf-8-sig')
        except UnicodeDecodeError as e:
            raise ScriptMinifyError(
                f'UTF-8としてデコードできません: {e}', entry.relative_path
            ) from e

        try:
            minified = minify_js(source)
        except ScriptMinifyError as e:
            raise ScriptMinifyError(str(e), entry.relative_path) from e
        return minified.encode('utf-8')
