"""
Tests for file I/O, artifact writing and settings.
"""

import json
import re

import pytest

from snapdiff.core.diff.text_diff import WhitespaceMode
from snapdiff.services.file_io import ArtifactWriter, FileIOService
from snapdiff.services.settings import DiffSettings, SettingsManager


class TestFileIOService:
    """Tests for FileIOService."""

    def test_read_utf8(self, tmp_path):
        """Test reading UTF-8 text."""
        path = tmp_path / 'a.txt'
        path.write_text('héllo wörld\nça va, naïve café über', encoding='utf-8')

        assert FileIOService().read_text(path) == 'héllo wörld\nça va, naïve café über'

    def test_read_forced_encoding(self, tmp_path):
        """Test an explicit encoding skips detection."""
        path = tmp_path / 'a.txt'
        path.write_bytes('café'.encode('latin-1'))

        assert FileIOService().read_text(path, encoding='latin-1') == 'café'

    def test_read_utf16_bom(self, tmp_path):
        """Test a UTF-16 BOM is honoured and stripped."""
        path = tmp_path / 'a.txt'
        path.write_bytes(b'\xff\xfe' + 'line'.encode('utf-16-le'))

        assert FileIOService().read_text(path) == 'line'

    def test_read_empty(self, tmp_path):
        """Test reading an empty file."""
        path = tmp_path / 'a.txt'
        path.write_bytes(b'')

        assert FileIOService().read_text(path) == ''

    def test_write_bytes_atomic(self, tmp_path):
        """Test atomic writes create parents and leave no temp files."""
        path = tmp_path / 'nested' / 'dir' / 'out.bin'
        result = FileIOService().write_bytes(path, b'data')

        assert result.success
        assert result.bytes_written == 4
        assert path.read_bytes() == b'data'
        assert [p.name for p in path.parent.iterdir()] == ['out.bin']

    def test_write_bytes_failure(self, tmp_path):
        """Test write errors come back in the result."""
        blocker = tmp_path / 'file.txt'
        blocker.write_text('x')

        result = FileIOService().write_bytes(blocker / 'out.bin', b'data')

        assert not result.success
        assert result.error


class TestArtifactWriter:
    """Tests for ArtifactWriter."""

    def test_default_path(self, tmp_path):
        """Test default names use a content digest and a sequence number."""
        writer = ArtifactWriter(tmp_path)

        first = writer.write(b'png bytes')
        second = writer.write(b'png bytes')

        assert re.fullmatch(r'diff-[0-9a-f]{16}-1\.png', first.name)
        assert re.fullmatch(r'diff-[0-9a-f]{16}-2\.png', second.name)
        assert first != second
        assert first.read_bytes() == b'png bytes'

    def test_default_path_is_deterministic(self, tmp_path):
        """Test two writers name the same content the same way."""
        assert (
            ArtifactWriter(tmp_path).default_path(b'abc')
            == ArtifactWriter(tmp_path).default_path(b'abc')
        )

    def test_explicit_path(self, tmp_path):
        """Test a caller path is used as given."""
        target = tmp_path / 'reports' / 'home.png'
        written = ArtifactWriter(tmp_path / 'unused').write(b'img', target)

        assert written == target
        assert target.read_bytes() == b'img'
        assert not (tmp_path / 'unused').exists()

    def test_home_is_expanded(self):
        """Test the default directory resolves under the home directory."""
        writer = ArtifactWriter()

        assert '~' not in str(writer.artifact_dir)
        assert writer.artifact_dir.parts[-3:] == ('.snapdiff', 'tmp', 'diffs')

    def test_write_failure_raises(self, tmp_path):
        """Test write failures raise OSError."""
        blocker = tmp_path / 'file.txt'
        blocker.write_text('x')

        with pytest.raises(OSError):
            ArtifactWriter().write(b'img', blocker / 'diff.png')


class TestSettingsManager:
    """Tests for SettingsManager."""

    def test_defaults_when_missing(self, tmp_path):
        """Test a missing file yields defaults."""
        manager = SettingsManager(tmp_path / 'settings.json')

        assert manager.settings == DiffSettings()
        assert manager.settings.image.threshold == 0.1

    def test_save_and_load(self, tmp_path):
        """Test settings survive a round trip."""
        path = tmp_path / 'cfg' / 'settings.json'
        settings = DiffSettings()
        settings.text.whitespace_mode = WhitespaceMode.NORMALIZE
        settings.image.threshold = 0.25
        settings.artifacts.artifact_dir = str(tmp_path / 'diffs')

        assert SettingsManager(path).save(settings)

        loaded = SettingsManager(path).load()
        assert loaded == settings
        assert json.loads(path.read_text())['text']['whitespace_mode'] == 'NORMALIZE'

    def test_malformed_file(self, tmp_path, caplog):
        """Test a malformed file yields defaults and a warning."""
        path = tmp_path / 'settings.json'
        path.write_text('{not json')

        assert SettingsManager(path).load() == DiffSettings()
        assert 'Failed to load' in caplog.text

    def test_unknown_enum(self, tmp_path):
        """Test unknown enum names fall back to the first member."""
        path = tmp_path / 'settings.json'
        path.write_text(json.dumps({'text': {'whitespace_mode': 'SIDEWAYS'}}))

        assert SettingsManager(path).load().text.whitespace_mode == WhitespaceMode.EXACT

    def test_observers(self, tmp_path):
        """Test observers see saved settings."""
        seen = []
        manager = SettingsManager(tmp_path / 'settings.json')
        manager.add_observer(seen.append)

        manager.reset()

        assert seen == [DiffSettings()]

    def test_to_options(self):
        """Test conversion into engine options."""
        settings = DiffSettings()
        settings.image.threshold = 0.3
        settings.text.ignore_case = True

        assert settings.to_image_options().threshold == 0.3
        assert settings.to_text_options().ignore_case is True

    def test_default_path_honours_xdg(self, tmp_path, monkeypatch):
        """Test the settings file lives under XDG_CONFIG_HOME."""
        monkeypatch.setattr('os.name', 'posix')
        monkeypatch.setenv('XDG_CONFIG_HOME', str(tmp_path))

        assert SettingsManager().settings_path == tmp_path / 'snapdiff' / 'settings.json'

    def test_artifact_writer_uses_configured_dir(self, tmp_path):
        """Test the configured artifact directory reaches the writer."""
        settings = DiffSettings()
        settings.artifacts.artifact_dir = str(tmp_path / 'diffs')

        written = settings.artifact_writer().write(b'img')

        assert written.parent == tmp_path / 'diffs'
