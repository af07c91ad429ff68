# tests/core/test_orchestrator.py
"""
domain.orchestrator.CompressionJob のテスト。
"""

import zipfile

import pytest

from epub_compress.domain.orchestrator import CompressionJob
from epub_compress.models.workspace import scoped_workspace
from epub_compress.shared.enums import Action, JobStatus, TransformStatus
from epub_compress.shared.exceptions import (
    AssemblyError,
    ExtractionError,
    MissingMimetypeError,
)
from epub_compress.shared.settings import Settings
from tests.conftest import noisy_jpeg, read_entries, read_entry


def make_settings(tmp_path, **overrides) -> Settings:
    return Settings(workspace={'root_directory': tmp_path / 'workspaces'}, **overrides)


def leftover_workspaces(tmp_path) -> list:
    root = tmp_path / 'workspaces'
    return list(root.iterdir()) if root.exists() else []


class TestCompressionJob:
    """CompressionJob のテスト。"""

    def test_minifies_text_assets(self, make_epub, basic_entries, settings, tmp_path):
        epub = make_epub(basic_entries)
        output = tmp_path / 'out.epub'

        report = CompressionJob(settings).run(epub, output)

        assert report.status == JobStatus.SUCCESS
        assert report.failed_count == 0

        chapter = read_entry(output, 'chapter1.xhtml')
        assert b'chapter start' not in chapter
        assert b'<p> hello world </p>' in chapter
        assert read_entry(output, 'style.css') == b'body{color:red}'

        opf = read_entry(output, 'content.opf')
        assert b'<dc:title>Test Book</dc:title>' in opf
        assert b'media-type="text/css"/>' in opf

        infos = read_entries(output)
        assert infos[0].filename == 'mimetype'
        assert infos[0].compress_type == zipfile.ZIP_STORED
        assert read_entry(output, 'mimetype') == b'application/epub+zip'
        names = [info.filename for info in infos[1:]]
        assert names == sorted(names)
        assert set(names) == set(basic_entries) - {'mimetype'}

    def test_report_excludes_mimetype(self, make_epub, basic_entries, settings, tmp_path):
        report = CompressionJob(settings).run(make_epub(basic_entries), tmp_path / 'out.epub')

        paths = [result.relative_path for result in report.results]
        assert 'mimetype' not in paths
        assert len(paths) == len(basic_entries) - 1
        assert report.input_size > 0
        assert report.output_size == (tmp_path / 'out.epub').stat().st_size

    def test_one_broken_file_does_not_abort_job(
        self, make_epub, basic_entries, settings, tmp_path
    ):
        broken = b'function ('
        entries = {**basic_entries, 'js/bad.js': broken}
        output = tmp_path / 'out.epub'

        report = CompressionJob(settings).run(make_epub(entries), output)

        assert report.status == JobStatus.SUCCESS
        assert report.failed_count == 1
        failure = report.failures[0]
        assert failure.relative_path == 'js/bad.js'
        assert failure.action == Action.MINIFY_SCRIPT
        assert failure.error
        assert read_entry(output, 'js/bad.js') == broken
        assert read_entry(output, 'style.css') == b'body{color:red}'

    def test_unknown_files_are_copied_verbatim(
        self, make_epub, basic_entries, settings, tmp_path
    ):
        font = bytes(range(256)) * 4
        entries = {**basic_entries, 'fonts/book.otf': font, 'README': b'  keep  me  '}
        output = tmp_path / 'out.epub'

        report = CompressionJob(settings).run(make_epub(entries), output)

        assert read_entry(output, 'fonts/book.otf') == font
        assert read_entry(output, 'README') == b'  keep  me  '
        skipped = {r.relative_path for r in report.results if r.status == TransformStatus.SKIPPED}
        assert {'fonts/book.otf', 'README'} <= skipped

    def test_missing_mimetype_writes_no_output(self, make_epub, basic_entries, settings, tmp_path):
        entries = dict(basic_entries)
        del entries['mimetype']
        output = tmp_path / 'out.epub'

        with pytest.raises(MissingMimetypeError):
            CompressionJob(settings).run(make_epub(entries), output)

        assert not output.exists()
        assert leftover_workspaces(tmp_path) == []

    def test_corrupt_input_raises_extraction_error(self, settings, tmp_path):
        epub = tmp_path / 'broken.epub'
        epub.write_bytes(b'This is not an EPUB')
        output = tmp_path / 'out.epub'

        with pytest.raises(ExtractionError):
            CompressionJob(settings).run(epub, output)

        assert not output.exists()
        assert leftover_workspaces(tmp_path) == []

    def test_workspace_removed_after_success(self, make_epub, basic_entries, settings, tmp_path):
        CompressionJob(settings).run(make_epub(basic_entries), tmp_path / 'out.epub')

        assert leftover_workspaces(tmp_path) == []

    def test_injected_workspace_factory(self, make_epub, basic_entries, settings, tmp_path):
        directory = tmp_path / 'fixed-workspace'
        job = CompressionJob(settings, workspace_factory=lambda: scoped_workspace(directory))

        report = job.run(make_epub(basic_entries), tmp_path / 'out.epub')

        assert report.status == JobStatus.SUCCESS
        assert not directory.exists()

    def test_cleanup_failure_does_not_fail_job(
        self, make_epub, basic_entries, settings, tmp_path, monkeypatch
    ):
        def broken_rmtree(path, *args, **kwargs):
            raise PermissionError(f'cannot remove {path}')

        monkeypatch.setattr('epub_compress.models.workspace.shutil.rmtree', broken_rmtree)
        output = tmp_path / 'out.epub'

        report = CompressionJob(settings).run(make_epub(basic_entries), output)

        assert report.status == JobStatus.SUCCESS
        assert output.exists()

    def test_partial_output_removed_on_assembly_failure(
        self, make_epub, basic_entries, settings, tmp_path
    ):
        class FailingAssembler:
            def assemble(self, workspace, output_path):
                output_path.write_bytes(b'PK\x03\x04 partial')
                raise AssemblyError('disk full')

        output = tmp_path / 'out.epub'
        job = CompressionJob(settings, assembler=FailingAssembler())

        with pytest.raises(AssemblyError):
            job.run(make_epub(basic_entries), output)

        assert not output.exists()
        assert leftover_workspaces(tmp_path) == []

    def test_images_untouched_by_default(self, make_epub, basic_entries, settings, tmp_path):
        photo = noisy_jpeg(quality=100)
        entries = {**basic_entries, 'images/photo.jpg': photo}
        output = tmp_path / 'out.epub'

        report = CompressionJob(settings).run(make_epub(entries), output)

        assert read_entry(output, 'images/photo.jpg') == photo
        result = next(r for r in report.results if r.relative_path == 'images/photo.jpg')
        assert result.status == TransformStatus.SKIPPED

    def test_images_recompressed_when_enabled(self, make_epub, basic_entries, tmp_path):
        photo = noisy_jpeg(quality=100)
        entries = {**basic_entries, 'images/photo.jpg': photo}
        output = tmp_path / 'out.epub'
        settings = make_settings(tmp_path, images={'enabled': True, 'quality': 50})

        report = CompressionJob(settings).run(make_epub(entries), output)

        optimized = read_entry(output, 'images/photo.jpg')
        assert len(optimized) < len(photo)
        assert optimized.startswith(b'\xff\xd8\xff')
        result = next(r for r in report.results if r.relative_path == 'images/photo.jpg')
        assert result.action == Action.OPTIMIZE_RASTER
        assert result.status == TransformStatus.CHANGED

    def test_level_zero_stores_everything(self, make_epub, basic_entries, tmp_path):
        output = tmp_path / 'out.epub'
        settings = make_settings(tmp_path, archive={'compression_level': 0})

        CompressionJob(settings).run(make_epub(basic_entries), output)

        for info in read_entries(output):
            assert info.compress_type == zipfile.ZIP_STORED

    def test_disabled_minifier_leaves_files_alone(
        self, make_epub, basic_entries, tmp_path
    ):
        output = tmp_path / 'out.epub'
        settings = make_settings(tmp_path, minify={'style': False})

        CompressionJob(settings).run(make_epub(basic_entries), output)

        assert read_entry(output, 'style.css') == basic_entries['style.css']

    def test_second_run_does_not_grow(self, make_epub, basic_entries, settings, tmp_path):
        first = tmp_path / 'first.epub'
        second = tmp_path / 'second.epub'
        job = CompressionJob(settings)

        job.run(make_epub(basic_entries), first)
        report = job.run(first, second)

        assert second.stat().st_size <= first.stat().st_size
        assert report.failed_count == 0

    def test_second_run_keeps_contents(self, make_epub, basic_entries, settings, tmp_path):
        entries = dict(basic_entries)
        entries['js/app.js'] = (
            b'function f(alpha, beta) {\n  if (alpha < beta) { return alpha & beta; }\n'
            b'  return 0;\n}\n'
        )
        entries['chapter2.xhtml'] = (
            b'<html xmlns="http://www.w3.org/1999/xhtml"><head><script>\n'
            b'function g(first, second) { return first * second; }\n</script></head>'
            b'<body>\n  <pre>  keep  </pre>\n  <p>  x  </p>\n</body></html>'
        )
        first = tmp_path / 'first.epub'
        second = tmp_path / 'second.epub'
        job = CompressionJob(settings)

        job.run(make_epub(entries), first)
        job.run(first, second)

        names = [info.filename for info in read_entries(first)]
        assert names == [info.filename for info in read_entries(second)]
        for name in names:
            assert read_entry(second, name) == read_entry(first, name), name

    def test_mimetype_not_first_in_input(self, make_epub, basic_entries, settings, tmp_path):
        epub = make_epub(basic_entries, mimetype_first=False)
        output = tmp_path / 'out.epub'

        CompressionJob(settings).run(epub, output)

        assert read_entries(output)[0].filename == 'mimetype'

    def test_overwrites_existing_output(self, make_epub, basic_entries, settings, tmp_path, log_records):
        output = tmp_path / 'out.epub'
        output.write_bytes(b'old content')

        CompressionJob(settings).run(make_epub(basic_entries), output)

        assert zipfile.is_zipfile(output)
        assert any(record['level'].name == 'WARNING' for record in log_records)
