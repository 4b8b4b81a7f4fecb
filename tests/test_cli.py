import zipfile
from pathlib import Path

import pytest

from cli import build_parser, main
from cli.main import EXIT_ACCESS_DENIED, EXIT_FAILURE, EXIT_SUCCESS, exit_code_for


@pytest.fixture()
def config_path(tmp_path: Path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(
        "\n".join(
            [
                "paths:",
                "  logs: logs",
                "databases:",
                "  access_grants: data/access_grants.sqlite",
                "  content_index: data/content_index.sqlite",
                "  state: data/state.sqlite",
                "access:",
                "  strategy: direct",
            ]
        ),
        encoding="utf-8",
    )
    return path


def run(config_path: Path, *argv: str) -> int:
    return main(["--config", str(config_path), *argv])


def test_mkdir_copy_compress_extract(tmp_path: Path, config_path: Path) -> None:
    work = tmp_path / "work"
    photos = work / "photos"
    assert run(config_path, "mkdir", str(photos / "trip")) == EXIT_SUCCESS
    (photos / "trip" / "a.jpg").write_bytes(b"a" * 2048)

    backup = work / "backup"
    assert run(config_path, "mkdir", str(backup)) == EXIT_SUCCESS
    assert run(config_path, "copy", str(photos), "--to", str(backup)) == EXIT_SUCCESS
    assert (backup / "photos" / "trip" / "a.jpg").read_bytes() == b"a" * 2048

    archive_path = work / "photos.zip"
    assert run(config_path, "compress", str(photos), "--output", str(archive_path)) == EXIT_SUCCESS
    with zipfile.ZipFile(archive_path) as archive:
        assert archive.namelist() == ["photos/trip/a.jpg"]

    restored = work / "restored"
    assert run(config_path, "extract", str(archive_path), "--to", str(restored)) == EXIT_SUCCESS
    assert (restored / "photos" / "trip" / "a.jpg").read_bytes() == b"a" * 2048
    assert (tmp_path / "logs").is_dir()
    assert (tmp_path / "data" / "state.sqlite").exists()


def test_rename_move_and_delete(tmp_path: Path, config_path: Path) -> None:
    work = tmp_path / "work"
    (work / "inbox").mkdir(parents=True)
    (work / "archive").mkdir()
    (work / "inbox" / "draft.txt").write_text("draft", encoding="utf-8")

    assert run(config_path, "rename", str(work / "inbox" / "draft.txt"), "final.txt") == EXIT_SUCCESS
    assert (work / "inbox" / "final.txt").exists()

    assert run(config_path, "move", str(work / "inbox" / "final.txt"), "--to", str(work / "archive")) == 0
    assert (work / "archive" / "final.txt").read_text(encoding="utf-8") == "draft"

    assert run(config_path, "delete", str(work / "inbox"), str(work / "archive")) == EXIT_SUCCESS
    assert list(work.iterdir()) == []


def test_failed_operation_exits_with_failure(tmp_path: Path, config_path: Path) -> None:
    (tmp_path / "dest").mkdir()
    (tmp_path / "dest" / "a.txt").write_text("keep", encoding="utf-8")
    (tmp_path / "a.txt").write_text("new", encoding="utf-8")

    assert run(config_path, "move", str(tmp_path / "a.txt"), "--to", str(tmp_path / "dest")) == EXIT_FAILURE
    assert (tmp_path / "dest" / "a.txt").read_text(encoding="utf-8") == "keep"


def test_unwritable_target_exits_with_access_denied(tmp_path: Path, config_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("a file, not a directory", encoding="utf-8")

    assert run(config_path, "mkdir", str(blocker / "sub")) == EXIT_ACCESS_DENIED
    assert blocker.is_file()


def test_grant_list_and_revoke(tmp_path: Path, config_path: Path, capsys: pytest.CaptureFixture) -> None:
    card = tmp_path / "card"
    card.mkdir()

    assert run(config_path, "grant", str(card)) == EXIT_SUCCESS
    assert run(config_path, "grants") == EXIT_SUCCESS
    assert str(card.resolve()) in capsys.readouterr().out

    assert run(config_path, "revoke", str(card)) == EXIT_SUCCESS
    assert run(config_path, "revoke", str(card)) == EXIT_FAILURE
    assert run(config_path, "grant", str(tmp_path / "missing")) == EXIT_FAILURE


def test_strategy_can_be_overridden_on_the_command_line(tmp_path: Path, config_path: Path) -> None:
    card = tmp_path / "card"
    (card / "music").mkdir(parents=True)
    assert run(config_path, "grant", str(card)) == EXIT_SUCCESS

    assert run(config_path, "--strategy", "sandboxed", "mkdir", str(card / "music" / "new")) == 0
    assert (card / "music" / "new").is_dir()


def test_parser_requires_a_command() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args([])
    args = build_parser().parse_args(["copy", "a", "b", "--to", "dest"])
    assert args.sources == ["a", "b"] and args.to == "dest"


def test_missing_explicit_config_is_a_failure(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        main(["--config", str(tmp_path / "nope.yaml"), "grants"])


def test_exit_codes() -> None:
    assert exit_code_for("completed") == EXIT_SUCCESS
    assert exit_code_for("denied") == EXIT_ACCESS_DENIED
    assert exit_code_for("failed") == EXIT_FAILURE
    assert exit_code_for(None) == EXIT_FAILURE
