import zipfile
from pathlib import Path
from typing import BinaryIO

import pytest

from config import AppConfig
from database import ContentIndex, DatabaseManager
from operations import (
    OUTCOME_COMPLETED,
    OUTCOME_DENIED,
    OUTCOME_FAILED,
    CompressArguments,
    CompressOperation,
    CopyArguments,
    CopyOperation,
    CreateDirectoryArguments,
    CreateDirectoryOperation,
    DeleteArguments,
    DeleteOperation,
    ExtractArguments,
    ExtractOperation,
    FileOperationRunner,
    MoveArguments,
    MoveOperation,
    OperationEnvironment,
    RenameArguments,
    RenameOperation,
    build_access_manager,
)
from storage import (
    ConfiguredConsentFlow,
    DirectAccess,
    DirectBackend,
    FileHandle,
    SandboxedAccess,
)


class ReadOnlyBackend(DirectBackend):
    """Raw path backend on a volume that refuses every write."""

    def open_output(self, path: Path) -> BinaryIO:
        raise PermissionError(f"read-only: {path}")

    def make_directory(self, path: Path) -> bool:
        return path.is_dir()

    def make_directories(self, path: Path) -> bool:
        return path.is_dir()

    def delete(self, path: Path) -> bool:
        return False

    def rename(self, source: Path, destination: Path) -> bool:
        return False


class ReadOnlyVolumeEnvironment(OperationEnvironment):
    def direct_backend(self) -> DirectBackend:
        return ReadOnlyBackend(self.logger)


class GrantOnlyAccess(SandboxedAccess):
    def has_write_access(self, path: Path) -> bool:
        return self.permission_granted_for_root_of(path)


class RecordingStatus:
    def __init__(self) -> None:
        self.events: list[tuple] = []

    def show_success(self, operation_id: str, kind: str, target: Path) -> None:
        self.events.append(("success", kind))

    def show_failure(self, operation_id: str, kind: str, target: Path) -> None:
        self.events.append(("failure", kind))

    def show_access_denied(self, operation_id: str, kind: str) -> None:
        self.events.append(("denied", kind))

    def show_consent_error(self, operation_id: str, kind: str) -> None:
        self.events.append(("consent_error", kind))

    def clear(self, operation_id: str) -> None:
        self.events.append(("clear",))


class RecordingProgress:
    def __init__(self) -> None:
        self.reports: list[tuple] = []

    def report(self, operation_id: str, completed: int, total: int, item: str, context: str) -> None:
        self.reports.append((completed, total, item, context))


@pytest.fixture()
def db_manager(tmp_path: Path):
    manager = DatabaseManager(
        {
            "access_grants": tmp_path / "db" / "access_grants.sqlite",
            "content_index": tmp_path / "db" / "content_index.sqlite",
            "state": tmp_path / "db" / "state.sqlite",
        }
    )
    manager.initialize()
    yield manager
    manager.close()


def direct_environment(db_manager: DatabaseManager) -> OperationEnvironment:
    return OperationEnvironment(
        access_manager=DirectAccess(),
        index=ContentIndex(db_manager),
        status=RecordingStatus(),
        progress=RecordingProgress(),
        journal=db_manager,
    )


def sandboxed_environment(
    db_manager: DatabaseManager, card: Path, auto_grant: bool = True
) -> ReadOnlyVolumeEnvironment:
    flow = ConfiguredConsentFlow(db_manager, [card] if auto_grant else [])
    return ReadOnlyVolumeEnvironment(
        access_manager=GrantOnlyAccess(db_manager, flow, storage_roots=[card]),
        index=ContentIndex(db_manager),
        status=RecordingStatus(),
        progress=RecordingProgress(),
        journal=db_manager,
    )


def make_card(tmp_path: Path) -> Path:
    card = tmp_path / "card"
    (card / "dcim" / "trip").mkdir(parents=True)
    (card / "dcim" / "trip" / "a.jpg").write_bytes(b"a" * 5000)
    (card / "dcim" / "b.jpg").write_bytes(b"b")
    (card / "music").mkdir()
    return card


def test_copy_reports_progress_status_and_journal(tmp_path: Path, db_manager: DatabaseManager) -> None:
    card = make_card(tmp_path)
    environment = direct_environment(db_manager)
    operation = CopyOperation(environment)
    args = CopyArguments(target=card / "music", files=[FileHandle.from_path(card / "dcim")])

    FileOperationRunner(environment.access_manager).invoke(operation, args)

    assert operation.outcome == OUTCOME_COMPLETED
    assert (card / "music" / "dcim" / "trip" / "a.jpg").read_bytes() == b"a" * 5000
    assert environment.progress.reports == [(0, 2, "b.jpg", "dcim"), (1, 2, "a.jpg", "trip")]
    assert environment.status.events == [("success", "copy")]
    assert db_manager.index_contains(str(card / "music" / "dcim"))
    journal = db_manager.get_operation(operation.operation_id)
    assert journal["status"] == "completed" and journal["attempts"] == 1


def test_sandboxed_move_asks_for_consent_then_succeeds(tmp_path: Path, db_manager: DatabaseManager) -> None:
    card = make_card(tmp_path)
    environment = sandboxed_environment(db_manager, card)
    operation = MoveOperation(environment)
    args = MoveArguments(target=card / "music", files=[FileHandle.from_path(card / "dcim")])

    FileOperationRunner(environment.access_manager).invoke(operation, args)

    assert operation.outcome == OUTCOME_COMPLETED
    assert not (card / "dcim").exists()
    assert (card / "music" / "dcim" / "trip" / "a.jpg").read_bytes() == b"a" * 5000
    assert db_manager.find_grant(card) is not None
    assert environment.status.events == [("clear",), ("success", "move")]
    assert db_manager.get_operation(operation.operation_id)["attempts"] == 2


def test_sandboxed_operation_denied_without_consent(tmp_path: Path, db_manager: DatabaseManager) -> None:
    card = make_card(tmp_path)
    environment = sandboxed_environment(db_manager, card, auto_grant=False)
    operation = DeleteOperation(environment)
    args = DeleteArguments(target=card, victims=[FileHandle.from_path(card / "dcim")])

    FileOperationRunner(environment.access_manager).invoke(operation, args)

    assert operation.outcome == OUTCOME_DENIED
    assert (card / "dcim" / "b.jpg").exists()
    assert environment.status.events == [("clear",), ("denied", "delete")]
    assert db_manager.get_operation(operation.operation_id)["status"] == "denied"


def test_sandboxed_rename_mkdir_and_delete(tmp_path: Path, db_manager: DatabaseManager) -> None:
    card = make_card(tmp_path)
    db_manager.persist_grant(card, "t")
    environment = sandboxed_environment(db_manager, card)
    runner = FileOperationRunner(environment.access_manager)

    rename = RenameOperation(environment)
    runner.invoke(
        rename,
        RenameArguments(target=card / "dcim" / "c.jpg", file_to_rename=FileHandle.from_path(card / "dcim" / "b.jpg")),
    )
    mkdir = CreateDirectoryOperation(environment)
    runner.invoke(mkdir, CreateDirectoryArguments(target=card / "new" / "nested"))
    delete = DeleteOperation(environment)
    runner.invoke(delete, DeleteArguments(target=card, victims=[FileHandle.from_path(card / "music")]))

    assert [rename.outcome, mkdir.outcome, delete.outcome] == [OUTCOME_COMPLETED] * 3
    assert (card / "dcim" / "c.jpg").read_bytes() == b"b"
    assert (card / "new" / "nested").is_dir()
    assert not (card / "music").exists()


def test_compress_failure_removes_partial_archive(tmp_path: Path, db_manager: DatabaseManager) -> None:
    card = make_card(tmp_path)
    environment = direct_environment(db_manager)
    operation = CompressOperation(environment)
    archive_path = card / "backup.zip"
    args = CompressArguments(
        target=archive_path,
        to_compress=[FileHandle.from_path(card / "dcim"), FileHandle.from_path(card / "vanished.jpg")],
    )

    FileOperationRunner(environment.access_manager).invoke(operation, args)

    assert operation.outcome == OUTCOME_FAILED
    assert not archive_path.exists()
    assert environment.status.events == [("failure", "compress")]


def test_compress_then_extract_through_operations(tmp_path: Path, db_manager: DatabaseManager) -> None:
    card = make_card(tmp_path)
    db_manager.persist_grant(card, "t")
    environment = sandboxed_environment(db_manager, card)
    runner = FileOperationRunner(environment.access_manager)
    archive_path = card / "music" / "dcim.zip"

    compress = CompressOperation(environment)
    runner.invoke(compress, CompressArguments(target=archive_path, to_compress=[FileHandle.from_path(card / "dcim")]))
    extract = ExtractOperation(environment)
    runner.invoke(
        extract,
        ExtractArguments(target=card / "restored", archives=[FileHandle.from_path(archive_path)]),
    )

    assert compress.outcome == OUTCOME_COMPLETED
    assert extract.outcome == OUTCOME_COMPLETED
    with zipfile.ZipFile(archive_path) as archive:
        assert archive.namelist() == ["dcim/b.jpg", "dcim/trip/a.jpg"]
    assert (card / "restored" / "dcim" / "trip" / "a.jpg").read_bytes() == b"a" * 5000
    assert db_manager.index_contains(str(card / "restored"))


def test_callbacks_go_through_the_executor(tmp_path: Path, db_manager: DatabaseManager) -> None:
    queued = []
    environment = direct_environment(db_manager)
    operation = CreateDirectoryOperation(environment, callback_executor=queued.append)

    FileOperationRunner(environment.access_manager).invoke(
        operation, CreateDirectoryArguments(target=tmp_path / "made")
    )

    assert environment.status.events == []
    for callback in queued:
        callback()
    assert environment.status.events == [("success", "mkdir")]


def test_arguments_reject_missing_payload(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        CopyArguments(target=tmp_path, files=[])
    with pytest.raises(ValueError):
        CreateDirectoryArguments(target=None)
    with pytest.raises(ValueError):
        RenameArguments(target=tmp_path / "x")

    args = MoveArguments(target=tmp_path, files=[FileHandle.from_path(tmp_path)])
    assert isinstance(args.files, tuple)


def test_access_strategy_comes_from_config(tmp_path: Path, db_manager: DatabaseManager) -> None:
    config = AppConfig.defaults(tmp_path)
    assert isinstance(build_access_manager(config), DirectAccess)

    sandboxed = config.with_value("access", "strategy", value="sandboxed")
    assert isinstance(build_access_manager(sandboxed, grants=db_manager), SandboxedAccess)
    with pytest.raises(ValueError):
        build_access_manager(sandboxed)
    with pytest.raises(ValueError):
        build_access_manager(config.with_value("access", "strategy", value="magic"))

    environment = OperationEnvironment.from_config(
        config.with_value("storage", "copy_buffer_bytes", value=1024), grants=db_manager
    )
    assert environment.copy_buffer_size == 1024
    with pytest.raises(RuntimeError):
        environment.document_backend()
