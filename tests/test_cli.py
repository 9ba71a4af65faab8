"""Tests for mdbulk CLI helpers."""
import logging
import os
from pathlib import Path

import pytest

from mdbulk.cli import CLIError, _build_parser, _load_env_file, _parse_fields, _setup_logging, run_cli
from mdbulk.cli_progress import DownloadProgressDisplay, _human_size
from mdbulk.editor.fields import DEFAULT_FIELDS
from mdbulk.models import DriveItem
from mdbulk.orchestrator.models import DownloadOutcome, DownloadSummary, DownloadTask
from mdbulk.utils.events import EventEmitter


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    logging.disable(logging.NOTSET)


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for key in ("AZURE_WORD2MD_CLIENT_ID", "AZURE_WORD2MD_CLIENT_SECRET", "AZURE_WORD2MD_REFRESH_TOKEN",
                "MDBULK_TOKENS_FILE", "MDBULK_STATE_FILE", "MDBULK_MAX_CONCURRENT"):
        monkeypatch.delenv(key, raising=False)
    (tmp_path / "a.md").write_text("# A\n\n---\n\nTopics: x, y\n\nProducts: Word\n", encoding="utf-8")
    return tmp_path


def test_load_env_file(tmp_path, monkeypatch):
    env_path = tmp_path / ".env"
    env_path.write_text(
        "\n".join(
            [
                "# credentials",
                "AZURE_WORD2MD_CLIENT_ID=abc",
                "AZURE_WORD2MD_CLIENT_SECRET='s3cr=t'",
                "export MDBULK_STATE_FILE=C:/state/.hlx-blk.json",
                "not a pair",
            ]
        ),
        encoding="utf-8",
    )

    # set first so the loaded values are undone after the test
    for key in ("AZURE_WORD2MD_CLIENT_ID", "AZURE_WORD2MD_CLIENT_SECRET", "MDBULK_STATE_FILE"):
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)

    _load_env_file(env_path)

    assert os.environ["AZURE_WORD2MD_CLIENT_ID"] == "abc"
    assert os.environ["AZURE_WORD2MD_CLIENT_SECRET"] == "s3cr=t"
    assert os.environ["MDBULK_STATE_FILE"] == "C:/state/.hlx-blk.json"


def test_load_env_file_keeps_existing_values(tmp_path, monkeypatch):
    env_path = tmp_path / ".env"
    env_path.write_text("AZURE_WORD2MD_CLIENT_ID=from-file\n", encoding="utf-8")
    monkeypatch.setenv("AZURE_WORD2MD_CLIENT_ID", "from-shell")

    _load_env_file(env_path)
    assert os.environ["AZURE_WORD2MD_CLIENT_ID"] == "from-shell"

    _load_env_file(env_path, override=True)
    assert os.environ["AZURE_WORD2MD_CLIENT_ID"] == "from-file"


def test_load_env_file_missing(tmp_path):
    with pytest.raises(CLIError, match="env file not found"):
        _load_env_file(tmp_path / "missing.env")


def test_parse_fields():
    assert _parse_fields(None) == DEFAULT_FIELDS
    fields = _parse_fields(["authors=Authors", "tags"])
    assert [cfg.field for cfg in fields] == ["authors", "tags"]
    with pytest.raises(CLIError):
        _parse_fields(["=Label"])


def test_parser_get_options():
    args = _build_parser().parse_args(["get", "docs", "-r", "-l", "out", "-j", "4"])
    assert args.command == "get"
    assert args.recursive is True
    assert args.local == "out"
    assert args.concurrency == 4


def test_setup_logging_defaults_to_silent():
    mode = _setup_logging(debug=False, silent=False, log_level=None)
    assert mode == "silent"
    assert logging.getLogger().isEnabledFor(logging.INFO) is False


def test_setup_logging_debug_mode():
    mode = _setup_logging(debug=True, silent=False, log_level=None)
    assert mode == "DEBUG"
    assert logging.getLogger().isEnabledFor(logging.DEBUG) is True


def test_setup_logging_explicit_level():
    mode = _setup_logging(debug=False, silent=False, log_level="warning")
    assert mode == "WARNING"
    assert logging.getLogger().isEnabledFor(logging.INFO) is False


class TestRunCli:
    def test_no_command_prints_help(self, workdir, capsys):
        assert run_cli([]) == 0
        assert "usage: mdbulk" in capsys.readouterr().out

    def test_extract_to_stdout(self, workdir, capsys):
        assert run_cli(["extract", "a.md"]) == 0
        assert capsys.readouterr().out == 'path\ttopics\tproducts\n"a.md"\t"x, y"\t"Word"\n'

    def test_extract_custom_field(self, workdir, capsys):
        assert run_cli(["extract", "a.md", "--json", "-f", "products"]) == 0
        assert '"products": [' in capsys.readouterr().out

    def test_extract_to_file(self, workdir, capsys):
        assert run_cli(["extract", ".", "-o", "table.tsv"]) == 0
        assert (workdir / "table.tsv").read_text().startswith("path\ttopics\tproducts\n")
        assert "Wrote 1 row(s)" in capsys.readouterr().out

    def test_extract_directory_with_images(self, workdir, capsys):
        (workdir / "media").mkdir()
        (workdir / "media" / "img.png").write_bytes(b"\x89PNG\r\n\x1a\n\xff")

        assert run_cli(["extract", "."]) == 0
        assert '"media/img.png"\t""\t""' in capsys.readouterr().out

    def test_extract_missing_path(self, workdir, capsys):
        assert run_cli(["extract", "missing"]) == 1
        assert "does not exist" in capsys.readouterr().err

    def test_update_then_verify(self, workdir, capsys):
        (workdir / "table.tsv").write_text('path\ttopics\n"a.md"\t"z"\n', encoding="utf-8")
        (workdir / "table.csv").write_text("path,topics\na.md,z\n", encoding="utf-8")

        assert run_cli(["update", "table.tsv"]) == 0
        assert "Topics: z" in (workdir / "a.md-new.md").read_text()

        assert run_cli(["verify", "table.csv"]) == 0
        assert "1 of 1 row(s) modified" in capsys.readouterr().out

    def test_update_in_place(self, workdir):
        (workdir / "table.json").write_text('[{"path": "a.md", "topics": ["q"]}]', encoding="utf-8")
        assert run_cli(["update", "--in-place", "table.json"]) == 0
        assert "Topics: q" in (workdir / "a.md").read_text()

    def test_onedrive_without_credentials(self, workdir, capsys):
        assert run_cli(["ls"]) == 1
        assert "not authenticated" in capsys.readouterr().err

    def test_invalid_concurrency(self, workdir, capsys):
        assert run_cli(["get", "docs", "-j", "0"]) == 1
        assert "concurrency must be at least 1" in capsys.readouterr().err

    def test_missing_env_file(self, workdir, capsys):
        assert run_cli(["--env-file", "nope.env", "extract", "a.md"]) == 1
        assert "env file not found" in capsys.readouterr().err


class TestDownloadProgressDisplay:
    @pytest.mark.asyncio
    async def test_renders_events(self, tmp_path, capsys):
        display = DownloadProgressDisplay()
        events = display.attach(EventEmitter())
        item = DriveItem(id="a", name="a.md", is_file=True)
        task = DownloadTask(client=None, dest_dir=tmp_path, rel_dir="docs", item=item)

        await events.emit("file_saved", task, 2048)
        await events.emit("item_skipped", task)
        display.on_finish(DownloadOutcome(
            destination=Path(tmp_path),
            recursive=True,
            bytes_written=2048,
            summary=DownloadSummary(files=1, folders=1, skipped=1, bytes_written=2048),
        ))

        out = capsys.readouterr().out
        assert "2.00kb" in out
        assert "skipped docs/a.md" in out
        assert "Downloaded 1 file(s) from 1 folder(s), 2.00 KB, 1 skipped" in out


def test_human_size():
    assert _human_size(0) == "0 B"
    assert _human_size(1536) == "1.50 KB"
    assert _human_size(5 * 1024 * 1024) == "5.00 MB"
