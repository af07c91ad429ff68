# tests/infrastructure/test_reader.py
"""
infrastructure.archive.reader のテスト。
"""

import pytest

from epub_compress.infrastructure.archive.reader import extract_archive
from epub_compress.shared.exceptions import ExtractionError


class TestExtractArchive:
    """extract_archive のテスト。"""

    def test_recreates_hierarchy(self, make_epub, basic_entries, tmp_path):
        epub = make_epub(basic_entries)
        destination = tmp_path / 'out' / 'nested'

        count = extract_archive(epub, destination)

        assert count == len(basic_entries)
        assert (destination / 'mimetype').read_bytes() == basic_entries['mimetype']
        assert (destination / 'META-INF' / 'container.xml').is_file()
        assert (destination / 'style.css').read_bytes() == basic_entries['style.css']

    def test_not_a_zip(self, tmp_path):
        path = tmp_path / 'broken.epub'
        path.write_text('This is not an EPUB')

        with pytest.raises(ExtractionError):
            extract_archive(path, tmp_path / 'out')

    def test_missing_input(self, tmp_path):
        with pytest.raises(ExtractionError):
            extract_archive(tmp_path / 'nothing.epub', tmp_path / 'out')

    def test_truncated_archive(self, make_epub, basic_entries, tmp_path):
        epub = make_epub(basic_entries)
        truncated = tmp_path / 'truncated.epub'
        truncated.write_bytes(epub.read_bytes()[:-40])

        with pytest.raises(ExtractionError):
            extract_archive(truncated, tmp_path / 'out')

    def test_destination_cannot_be_created(self, make_epub, basic_entries, tmp_path):
        epub = make_epub(basic_entries)
        blocker = tmp_path / 'file'
        blocker.write_text('not a directory')

        with pytest.raises(ExtractionError):
            extract_archive(epub, blocker / 'out')
