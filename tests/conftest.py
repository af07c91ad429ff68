# tests/conftest.py
"""
pytest 全体の設定。

テスト全体で再利用するフィクスチャ (EPUBの生成、設定、ログの捕捉) を提供します。
"""

import io
import random
import zipfile
from pathlib import Path
from typing import Callable, Dict, List, Optional

import pytest
from loguru import logger
from PIL import Image

from epub_compress.shared.settings import Settings

MIMETYPE = b'application/epub+zip'

CONTAINER_XML = b"""<?xml version="1.0" encoding="UTF-8"?>
<container version="1.0" xmlns="urn:oasis:names:tc:opendocument:xmlns:container">
  <rootfiles>
    <rootfile full-path="content.opf" media-type="application/oebps-package+xml"/>
  </rootfiles>
</container>
"""

CONTENT_OPF = b"""<?xml version="1.0" encoding="UTF-8"?>
<package xmlns="http://www.idpf.org/2007/opf" version="3.0" unique-identifier="id">
  <metadata xmlns:dc="http://purl.org/dc/elements/1.1/">
    <dc:identifier id="id">urn:uuid:12345</dc:identifier>
    <dc:title>Test   Book</dc:title>
  </metadata>
  <manifest>
    <item id="c1" href="chapter1.xhtml" media-type="application/xhtml+xml"/>
    <item id="css" href="style.css" media-type="text/css"/>
  </manifest>
  <spine>
    <itemref idref="c1"/>
  </spine>
</package>
"""

CHAPTER_XHTML = b"""<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE html>
<html xmlns="http://www.w3.org/1999/xhtml">
  <head>
    <title>Chapter 1</title>
    <link rel="stylesheet" href="style.css"/>
  </head>
  <body>
    <!-- chapter start -->
    <p>  hello   world  </p>
  </body>
</html>
"""

STYLE_CSS = b'body {  color:  red;  }'


def build_zip(path: Path, entries: Dict[str, bytes], mimetype_first: bool = True) -> Path:
    """指定されたエントリを持つZIPファイルを作成します。"""
    with zipfile.ZipFile(path, 'w', zipfile.ZIP_DEFLATED) as zf:
        names = list(entries)
        if mimetype_first and 'mimetype' in entries:
            names.remove('mimetype')
            zf.writestr('mimetype', entries['mimetype'], compress_type=zipfile.ZIP_STORED)
        for name in names:
            zf.writestr(name, entries[name])
    return path


def noisy_jpeg(quality: int, size: int = 64, seed: int = 0) -> bytes:
    """圧縮しにくいノイズ画像を指定品質のJPEGとして返します。"""
    rng = random.Random(seed)
    raw = bytes(rng.randrange(256) for _ in range(size * size * 3))
    img = Image.frombytes('RGB', (size, size), raw)
    buffer = io.BytesIO()
    img.save(buffer, format='JPEG', quality=quality)
    return buffer.getvalue()


def solid_png(size: int = 32) -> bytes:
    img = Image.new('RGB', (size, size), (200, 30, 30))
    buffer = io.BytesIO()
    img.save(buffer, format='PNG', compress_level=0)
    return buffer.getvalue()


@pytest.fixture
def basic_entries() -> Dict[str, bytes]:
    """最小構成のEPUBエントリを返します。"""
    return {
        'mimetype': MIMETYPE,
        'META-INF/container.xml': CONTAINER_XML,
        'content.opf': CONTENT_OPF,
        'chapter1.xhtml': CHAPTER_XHTML,
        'style.css': STYLE_CSS,
    }


@pytest.fixture
def make_epub(tmp_path) -> Callable[..., Path]:
    """エントリの辞書からEPUBファイルを生成するファクトリを返します。"""
    counter = {'n': 0}

    def factory(
        entries: Dict[str, bytes],
        name: Optional[str] = None,
        mimetype_first: bool = True,
    ) -> Path:
        counter['n'] += 1
        path = tmp_path / (name or f'input-{counter["n"]}.epub')
        return build_zip(path, entries, mimetype_first=mimetype_first)

    return factory


@pytest.fixture
def settings(tmp_path) -> Settings:
    """テスト用の設定。作業ディレクトリは tmp_path 配下に作成されます。"""
    return Settings(workspace={'root_directory': tmp_path / 'workspaces'})


@pytest.fixture
def log_records() -> List[dict]:
    """Loguruのログレコードを捕捉します。"""
    records: List[dict] = []
    handler_id = logger.add(lambda message: records.append(message.record), level='DEBUG')
    yield records
    logger.remove(handler_id)


def read_entries(path: Path) -> List[zipfile.ZipInfo]:
    with zipfile.ZipFile(path) as zf:
        return zf.infolist()


def read_entry(path: Path, name: str) -> bytes:
    with zipfile.ZipFile(path) as zf:
        return zf.read(name)
