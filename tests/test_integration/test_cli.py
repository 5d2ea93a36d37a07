"""Integration tests for the streamcache command line.

Each test drives the real Typer app through ``CliRunner`` against a cache
root in ``tmp_path`` and verifies side effects on disk.
"""

from __future__ import annotations

import json
from pathlib import Path

import httpx
import pytest
from typer.testing import CliRunner

from streamcache.app import app
from streamcache.config import load_global_config
from streamcache.exceptions import CacheRootUnwritableError
from streamcache.exit_codes import EXIT_NOT_FOUND
from streamcache.hashing import hash_key


@pytest.fixture
def root(isolated_config: Path) -> Path:
    return isolated_config / "entries"


def _invoke(runner: CliRunner, root: Path, *args: str, **kwargs):
    return runner.invoke(app, ["--cache-dir", str(root), "--no-color", *args], **kwargs)


class TestPutGet:
    def test_put_file_then_get(self, cli_runner: CliRunner, root: Path, isolated_config: Path) -> None:
        source = isolated_config / "payload.txt"
        source.write_bytes(b"hello")

        result = _invoke(cli_runner, root, "put", "user:42", str(source))
        assert result.exit_code == 0, result.output
        assert (root / hash_key("user:42")).read_bytes() == b"hello"

        result = _invoke(cli_runner, root, "get", "user:42", "--max-age", "5")
        assert result.exit_code == 0
        assert result.stdout_bytes == b"hello"

    def test_put_from_stdin(self, cli_runner: CliRunner, root: Path) -> None:
        result = _invoke(cli_runner, root, "put", "piped", input=b"from stdin")
        assert result.exit_code == 0
        assert (root / hash_key("piped")).read_bytes() == b"from stdin"

    def test_put_missing_file(self, cli_runner: CliRunner, root: Path, isolated_config: Path) -> None:
        result = _invoke(cli_runner, root, "put", "k", str(isolated_config / "nope"))
        assert result.exit_code == 2

    def test_get_to_file(self, cli_runner: CliRunner, root: Path, isolated_config: Path) -> None:
        _invoke(cli_runner, root, "put", "k", input=b"content")
        target = isolated_config / "out.bin"

        result = _invoke(cli_runner, root, "get", "k", "-o", str(target))
        assert result.exit_code == 0
        assert target.read_bytes() == b"content"

    def test_get_missing_exits_not_found(self, cli_runner: CliRunner, root: Path) -> None:
        result = _invoke(cli_runner, root, "get", "missing")
        assert result.exit_code == EXIT_NOT_FOUND
        assert not (root / hash_key("missing")).exists()

    def test_get_refills_from_url(
        self, cli_runner: CliRunner, root: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        real_client = httpx.Client

        def fake_client(**kwargs) -> httpx.Client:
            return real_client(
                transport=httpx.MockTransport(lambda r: httpx.Response(200, content=b"remote"))
            )

        monkeypatch.setattr("streamcache.producers.httpx.Client", fake_client)

        result = _invoke(cli_runner, root, "get", "feed", "--url", "https://example.com/feed")
        assert result.exit_code == 0
        assert result.stdout_bytes == b"remote"
        assert (root / hash_key("feed")).read_bytes() == b"remote"


class TestHasDelete:
    def test_has(self, cli_runner: CliRunner, root: Path) -> None:
        assert _invoke(cli_runner, root, "has", "k").exit_code == EXIT_NOT_FOUND
        _invoke(cli_runner, root, "put", "k", input=b"v")
        assert _invoke(cli_runner, root, "has", "k", "--max-age", "1", "--unit", "minutes").exit_code == 0

    def test_delete(self, cli_runner: CliRunner, root: Path) -> None:
        _invoke(cli_runner, root, "put", "k", input=b"v")
        assert _invoke(cli_runner, root, "delete", "k").exit_code == 0
        assert not (root / hash_key("k")).exists()
        # Deleting again is not an error.
        assert _invoke(cli_runner, root, "delete", "k").exit_code == 0

    def test_clear_with_force(self, cli_runner: CliRunner, root: Path) -> None:
        for key in ("a", "b", "c"):
            _invoke(cli_runner, root, "put", key, input=b"v")

        result = _invoke(cli_runner, root, "clear", "--force")
        assert result.exit_code == 0
        assert list(root.iterdir()) == []

    def test_clear_declined(self, cli_runner: CliRunner, root: Path) -> None:
        _invoke(cli_runner, root, "put", "a", input=b"v")
        result = _invoke(cli_runner, root, "clear", input="n\n")
        assert result.exit_code == 0
        assert len(list(root.iterdir())) == 1


class TestInfoCommands:
    def test_where_json(self, cli_runner: CliRunner, root: Path) -> None:
        _invoke(cli_runner, root, "put", "a", input=b"1234")
        result = cli_runner.invoke(app, ["--cache-dir", str(root), "--json", "where"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["directory"] == str(root)
        assert data["entries"] == 1
        assert data["size_bytes"] == 4

    def test_hash(self, cli_runner: CliRunner, root: Path) -> None:
        result = _invoke(cli_runner, root, "hash", "user:42")
        assert result.exit_code == 0
        assert result.stdout.strip() == hash_key("user:42")

    def test_version(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "streamcache" in result.stdout

    def test_env_var_selects_root(
        self, cli_runner: CliRunner, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        env_root = isolated_config / "from-env"
        monkeypatch.setenv("STREAMCACHE_CACHE_DIR", str(env_root))
        result = cli_runner.invoke(app, ["put", "k"], input=b"v")
        assert result.exit_code == 0
        assert (env_root / hash_key("k")).exists()

    def test_unusable_root_raises(self, cli_runner: CliRunner, isolated_config: Path) -> None:
        blocker = isolated_config / "blocker"
        blocker.write_text("x")
        result = _invoke(cli_runner, blocker / "cache", "has", "k")
        assert isinstance(result.exception, CacheRootUnwritableError)


class TestConfigCommands:
    def test_set_and_show(self, cli_runner: CliRunner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["config", "set", "cache.write_failure", "raise"])
        assert result.exit_code == 0
        assert load_global_config().cache.write_failure.value == "raise"

        result = cli_runner.invoke(app, ["--json", "--quiet", "config", "show"])
        assert json.loads(result.stdout)["cache"]["write_failure"] == "raise"

    def test_set_int_coercion(self, cli_runner: CliRunner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["config", "set", "cache.chunk_size", "4096"])
        assert result.exit_code == 0
        assert load_global_config().cache.chunk_size == 4096

    def test_set_invalid_value(self, cli_runner: CliRunner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["config", "set", "cache.write_failure", "explode"])
        assert result.exit_code == 2

    def test_set_unknown_key(self, cli_runner: CliRunner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["config", "set", "cache.nope", "1"])
        assert result.exit_code == 2

    def test_set_rejects_non_key_sections(self, cli_runner: CliRunner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["config", "set", "cache", "x"])
        assert result.exit_code == 2
        assert load_global_config().cache.directory is None

    @pytest.mark.parametrize("value", ["maybe", "2", "enabled"])
    def test_set_rejects_unparseable_bool(
        self, cli_runner: CliRunner, isolated_config: Path, value: str
    ) -> None:
        result = cli_runner.invoke(app, ["config", "set", "cache.dedupe_refills", value])
        assert result.exit_code == 2
        assert load_global_config().cache.dedupe_refills is True

    @pytest.mark.parametrize("value", ["false", "no", "0"])
    def test_set_bool_false(self, cli_runner: CliRunner, isolated_config: Path, value: str) -> None:
        result = cli_runner.invoke(app, ["config", "set", "cache.dedupe_refills", value])
        assert result.exit_code == 0
        assert load_global_config().cache.dedupe_refills is False

    def test_set_out_of_range_int(self, cli_runner: CliRunner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["config", "set", "cache.chunk_size", "0"])
        assert result.exit_code == 2
        assert load_global_config().cache.chunk_size == 8192

    @pytest.mark.parametrize("value", ["none", "null", ""])
    def test_clear_directory(self, cli_runner: CliRunner, isolated_config: Path, value: str) -> None:
        cli_runner.invoke(app, ["config", "set", "cache.directory", str(isolated_config / "c")])
        assert load_global_config().cache.directory == str(isolated_config / "c")

        result = cli_runner.invoke(app, ["config", "set", "cache.directory", value])
        assert result.exit_code == 0
        assert load_global_config().cache.directory is None

    def test_unset_restores_default(self, cli_runner: CliRunner, isolated_config: Path) -> None:
        cli_runner.invoke(app, ["config", "set", "cache.directory", str(isolated_config / "c")])
        cli_runner.invoke(app, ["config", "set", "cache.chunk_size", "4096"])

        result = cli_runner.invoke(app, ["config", "unset", "cache.directory"])
        assert result.exit_code == 0
        config = load_global_config()
        assert config.cache.directory is None
        assert config.cache.chunk_size == 4096

    def test_unset_unknown_key(self, cli_runner: CliRunner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["config", "unset", "cache.nope"])
        assert result.exit_code == 2

    def test_reset(self, cli_runner: CliRunner, isolated_config: Path) -> None:
        cli_runner.invoke(app, ["config", "set", "cache.chunk_size", "4096"])
        result = cli_runner.invoke(app, ["config", "reset", "--force"])
        assert result.exit_code == 0
        assert load_global_config().cache.chunk_size == 8192
