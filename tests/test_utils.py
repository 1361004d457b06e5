"""Unit tests for utility functions, sync modes and configuration."""

import json

import pytest

from pyremsync.config import DEFAULT_AUTH_URL, Config
from pyremsync.exceptions import RemSyncConfigError
from pyremsync.sync.modes import SyncMode, SyncSettings
from pyremsync.utils import chunked, file_extension, format_size, is_uuid


class TestIsUuid:
    """Tests for is_uuid function."""

    def test_uuid_strings(self):
        """Canonical UUIDs are recognized in either case."""
        assert is_uuid("1b4e28ba-2fa1-11d2-883f-0016d3cca427")
        assert is_uuid("1B4E28BA-2FA1-11D2-883F-0016D3CCA427")

    def test_other_strings(self):
        """Names and malformed ids are not UUIDs."""
        assert not is_uuid("Books")
        assert not is_uuid("")
        assert not is_uuid("1b4e28ba2fa111d2883f0016d3cca427")
        assert not is_uuid("1b4e28ba-2fa1-11d2-883f-0016d3cca427x")
        assert not is_uuid("1b4e28ba-2fa1-11d2-883f-0016d3cca427\n")


class TestChunked:
    """Tests for chunked function."""

    def test_uneven_split(self):
        """The last chunk holds the remainder."""
        assert [len(c) for c in chunked(list(range(12)), 5)] == [5, 5, 2]

    def test_exact_split(self):
        """No empty trailing chunk is produced."""
        assert list(chunked([1, 2, 3, 4], 2)) == [[1, 2], [3, 4]]

    def test_empty(self):
        """An empty sequence yields nothing."""
        assert list(chunked([], 5)) == []

    def test_invalid_size(self):
        """Chunk sizes below one are rejected."""
        with pytest.raises(ValueError):
            list(chunked([1], 0))


class TestFileHelpers:
    """Tests for file_extension and format_size."""

    def test_file_extension(self):
        """The text after the last dot is returned."""
        assert file_extension("book.pdf") == "pdf"
        assert file_extension("archive.tar.epub") == "epub"
        assert file_extension("README") == "README"

    def test_format_size(self):
        """Sizes are shown in the largest fitting unit."""
        assert format_size(256) == "256 B"
        assert format_size(1536) == "1.5 KB"
        assert format_size(52428800) == "50.0 MB"


class TestSyncMode:
    """Tests for SyncMode parsing."""

    def test_from_string(self):
        """Mode names are parsed case-insensitively."""
        assert SyncMode.from_string("mirror") == SyncMode.MIRROR
        assert SyncMode.from_string(" Update ") == SyncMode.UPDATE
        assert SyncMode.from_string(SyncMode.MIRROR) == SyncMode.MIRROR

    def test_unknown_mode(self):
        """Unsupported modes are a configuration error listing the choices."""
        with pytest.raises(RemSyncConfigError, match="try one from: update, mirror"):
            SyncMode.from_string("twoway")

    def test_only_mirror_deletes(self):
        """Remote deletion is limited to mirror mode."""
        assert SyncMode.MIRROR.allows_remote_delete
        assert not SyncMode.UPDATE.allows_remote_delete

    def test_settings_parse_mode(self):
        """SyncSettings accepts the mode as a string."""
        settings = SyncSettings(source="a", root="b", mode="mirror")

        assert settings.mode == SyncMode.MIRROR
        assert settings.skip == []


class TestConfig:
    """Tests for Config."""

    def test_defaults(self, tmp_path, monkeypatch):
        """Without a file or environment the built-in defaults apply."""
        monkeypatch.delenv("REMSYNC_AUTH_URL", raising=False)
        monkeypatch.delenv("REMSYNC_STORAGE_HOST", raising=False)
        cfg = Config(config_dir=tmp_path)

        assert cfg.auth_url == DEFAULT_AUTH_URL
        assert cfg.storage_host is None
        assert cfg.get_default_mode() == "update"
        assert cfg.get_default_skip_list() == []
        assert cfg.get_store_path() == tmp_path / "store.json"

    def test_file_values(self, tmp_path, monkeypatch):
        """Values from config.json are used."""
        monkeypatch.delenv("REMSYNC_STORAGE_HOST", raising=False)
        (tmp_path / "config.json").write_text(
            json.dumps(
                {"mode": "mirror", "skip": ["Drafts"], "storage_host": "s.test"}
            )
        )
        cfg = Config(config_dir=tmp_path)

        assert cfg.get_default_mode() == "mirror"
        assert cfg.get_default_skip_list() == ["Drafts"]
        assert cfg.storage_host == "s.test"

    def test_environment_wins(self, tmp_path, monkeypatch):
        """Environment variables override the config file."""
        (tmp_path / "config.json").write_text(
            json.dumps({"auth_url": "https://file.test"})
        )
        monkeypatch.setenv("REMSYNC_AUTH_URL", "https://env.test")
        cfg = Config(config_dir=tmp_path)

        assert cfg.auth_url == "https://env.test"

    def test_config_dir_from_environment(self, tmp_path, monkeypatch):
        """REMSYNC_CONFIG_DIR moves the config directory."""
        monkeypatch.setenv("REMSYNC_CONFIG_DIR", str(tmp_path))

        assert Config().get_config_path() == tmp_path / "config.json"

    def test_malformed_file_is_ignored(self, tmp_path):
        """A broken config file falls back to defaults."""
        (tmp_path / "config.json").write_text("{oops")
        cfg = Config(config_dir=tmp_path)

        assert cfg.get_default_mode() == "update"
