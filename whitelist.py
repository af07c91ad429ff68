# whitelist.py
"""
このファイルは Vulture が検出した「デッドコード」の誤検知を
抑制するためのホワイトリストです。

Pydanticモデルのフィールド、Typerのコマンド、
Protocolのメソッド定義など、Vulture が静的解析で
「未使用」と判断してしまう項目をここで定義することで、
Vulture のレポートから除外します。
"""

# --- Pydanticモデルの設定 (settings.py) ---
model_config
settings_customise_sources
file_secret_settings
get_field_value
validate_log_level

# --- Typerのコマンド (entrypoints/cli.py) ---
compress

# --- 集計用プロパティ (models/local.py) ---
unchanged_count
duration

# --- 梱包結果 (infrastructure/archive/assembler.py) ---
entry_names
