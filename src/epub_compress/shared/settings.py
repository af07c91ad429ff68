# FILE: src/epub_compress/shared/settings.py

import tomllib
from pathlib import Path
from typing import Any, cast

from pydantic import (
    BaseModel,
    Field,
    ValidationError,
    field_validator,
)
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from .exceptions import SettingsError

LOG_LEVELS = ('TRACE', 'DEBUG', 'INFO', 'SUCCESS', 'WARNING', 'ERROR', 'CRITICAL')


# --- TOMLファイル読み込みロジック ---
def load_toml_config(toml_file: Path) -> dict[str, Any]:
    """指定されたTOMLファイルを読み込みます。"""
    if not toml_file.is_file():
        return {}
    try:
        with toml_file.open('rb') as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise SettingsError(
            f"設定ファイル '{toml_file}' の解析に失敗しました: {e}"
        ) from e


class TomlConfigSettingsSource(PydanticBaseSettingsSource):
    """ユーザー指定のTOML設定ファイルを読み込むためのカスタムソース。"""

    def __init__(self, settings_cls: type[BaseSettings], config_file: Path | None):
        super().__init__(settings_cls)
        self.config_file = config_file
        self._toml_config: dict[str, Any] = (
            load_toml_config(self.config_file) if self.config_file else {}
        )

    def get_field_value(self, field: object, field_name: str) -> tuple[Any, str, bool]:
        """このカスタムソースはフィールドごとの値取得をサポートしないため、__call__に処理を委ねます。"""
        return None, field_name, False

    def __call__(self) -> dict[str, Any]:
        """設定ファイル全体を辞書として一度に返します。"""
        return self._toml_config


class PyProjectTomlSource(PydanticBaseSettingsSource):
    """pyproject.tomlから[tool.epub_compress]セクションを読み込むソース。"""

    def __init__(self, settings_cls: type[BaseSettings]):
        super().__init__(settings_cls)
        self._config = self._load_pyproject_toml()

    def _load_pyproject_toml(self) -> dict[str, Any]:
        pyproject_path = Path.cwd() / 'pyproject.toml'
        config = load_toml_config(pyproject_path)
        return cast(dict[str, Any], config.get('tool', {}).get('epub_compress', {}))

    def get_field_value(self, field: object, field_name: str) -> tuple[Any, str, bool]:
        return None, field_name, False

    def __call__(self) -> dict[str, Any]:
        return self._config


# --- 設定モデル定義 ---


class ImageSettings(BaseModel):
    """ラスター画像(JPEG/PNG)の再エンコードに関する設定。"""

    enabled: bool = Field(
        default=False, description='画像の再エンコードを有効にするかどうか。'
    )
    quality: int = Field(
        default=80, ge=0, le=100, description='再エンコード時の品質 (0-100)。'
    )
    strip_metadata: bool = Field(
        default=True, description='EXIFなどのメタデータを削除するかどうか。'
    )
    progressive: bool = Field(
        default=True, description='JPEGをプログレッシブ形式で保存するかどうか。'
    )
    pngquant_speed: int = Field(
        default=3, ge=1, le=11, description='pngquantの速度設定 (1=高品質, 11=高速)。'
    )
    tool_timeout: int = Field(
        default=60, gt=0, description='外部コマンドのタイムアウト秒数。'
    )

    @property
    def png_quality_range(self) -> tuple[float, float]:
        """PNG量子化に使用する品質の範囲 (最小, 最大) を0.0-1.0で返します。"""
        high = self.quality / 100
        return min(max(0.1, (self.quality - 30) / 100), high), high


class MinifySettings(BaseModel):
    """テキスト系アセットの圧縮処理を個別に切り替える設定。"""

    markup: bool = Field(default=True, description='HTML/XHTML/XMLを圧縮するか。')
    style: bool = Field(default=True, description='CSSを圧縮するか。')
    script: bool = Field(default=True, description='JavaScriptを圧縮するか。')
    vector: bool = Field(default=True, description='SVGを圧縮するか。')


class ArchiveSettings(BaseModel):
    """出力EPUBアーカイブに関する設定。"""

    compression_level: int = Field(
        default=9,
        ge=0,
        le=9,
        description="'mimetype' 以外のエントリの圧縮レベル (0=無圧縮, 9=最大)。",
    )
    strict_mimetype: bool = Field(
        default=False,
        description="'mimetype' の内容が 'application/epub+zip' であることも検証するか。",
    )


class WorkspaceSettings(BaseModel):
    """作業ディレクトリに関する設定。"""

    root_directory: Path | None = Field(
        default=None,
        description='作業ディレクトリを作成する親ディレクトリ。未指定時はシステムの一時ディレクトリ。',
    )
    prefix: str = Field(
        default='epub-compress-', description='作業ディレクトリ名の接頭辞。'
    )


class Settings(BaseSettings):
    """
    アプリケーションの階層的設定管理クラス。
    以下の優先順位で設定を読み込みます:
    1. Pythonコードからの直接初期化 (CLIオプション)
    2. --config で指定されたカスタムTOMLファイル
    3. 環境変数 (例: EPUB_COMPRESS_IMAGES__QUALITY=70)
    4. .env ファイル
    5. pyproject.toml内の [tool.epub_compress] セクション
    6. モデルで定義されたデフォルト値
    """

    images: ImageSettings = Field(default_factory=ImageSettings)
    minify: MinifySettings = Field(default_factory=MinifySettings)
    archive: ArchiveSettings = Field(default_factory=ArchiveSettings)
    workspace: WorkspaceSettings = Field(default_factory=WorkspaceSettings)
    log_level: str = Field(
        default='INFO', description='コンソールに出力するログの最低レベル。'
    )

    _config_file: Path | None = None

    def __init__(self, **values: object):
        config_file_path = values.get('_config_file')

        try:
            super().__init__(**values)  # type: ignore [arg-type]
        except (ValidationError, ValueError) as e:
            raise SettingsError(f'設定の検証に失敗しました:\n{e}') from e

        self._config_file = (
            Path(cast(Path | str, config_file_path)) if config_file_path else None
        )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(
                f'不明なログレベルです: {value} (指定可能: {", ".join(LOG_LEVELS)})'
            )
        return level

    model_config = SettingsConfigDict(
        env_nested_delimiter='__',
        env_prefix='EPUB_COMPRESS_',
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore',
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        config_file_path = getattr(init_settings, 'init_kwargs', {}).get('_config_file')
        if config_file_path and not isinstance(config_file_path, Path):
            config_file_path = Path(config_file_path)

        return (
            init_settings,
            TomlConfigSettingsSource(settings_cls, config_file_path),
            env_settings,
            dotenv_settings,
            PyProjectTomlSource(settings_cls),
        )
