# FILE: src/epub_compress/shared/exceptions.py


class EpubCompressError(Exception):
    """アプリケーションの基底例外クラス。"""

    pass


class SettingsError(EpubCompressError):
    """設定関連のエラー。"""

    pass


class ExtractionError(EpubCompressError):
    """入力アーカイブを展開できない場合のエラー。"""

    pass


class TransformError(EpubCompressError):
    """個別ファイルの変換処理中のエラーの基底クラス。ジョブ全体は継続します。"""

    def __init__(self, message: str, relative_path: str | None = None):
        if relative_path:
            super().__init__(f'[{relative_path}] {message}')
        else:
            super().__init__(message)
        self.relative_path = relative_path


class MarkupMinifyError(TransformError):
    """HTML/XHTML/XMLの解析または圧縮に失敗した場合のエラー。"""

    pass


class StyleMinifyError(TransformError):
    """CSSの圧縮に失敗した場合のエラー。"""

    pass


class ScriptMinifyError(TransformError):
    """JavaScriptとして解析できない場合のエラー。"""

    pass


class RasterOptimizeError(TransformError):
    """画像の再エンコードに失敗した場合のエラー。"""

    pass


class AssemblyError(EpubCompressError):
    """EPUBアーカイブの書き出し中のエラー。出力ファイルは信頼できません。"""

    pass


class MissingMimetypeError(AssemblyError):
    """ルートに 'mimetype' が存在しないエラー。"""

    pass


class InvalidMimetypeError(AssemblyError):
    """'mimetype' の内容が 'application/epub+zip' ではないエラー(厳格モードのみ)。"""

    pass
