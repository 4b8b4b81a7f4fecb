"""
Command line front end for the storage operations.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
import uuid
from pathlib import Path
from typing import Optional, Sequence

from config import AppConfig
from config.settings import ENV_CONFIG_PATH
from database import ContentIndex, DatabaseManager, db_paths_from_config
from operations import (
    OUTCOME_COMPLETED,
    OUTCOME_DENIED,
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
    FileOperation,
    FileOperationRunner,
    MoveArguments,
    MoveOperation,
    OperationEnvironment,
    RenameArguments,
    RenameOperation,
)
from operations.arguments import Arguments
from operations.environment import ACCESS_STRATEGIES
from storage import CompositeIndexInvalidation, ConsoleConsentFlow, FileHandle, LoggingIndexInvalidation
from utils import setup_logging

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_ACCESS_DENIED = 3

OPERATION_COMMANDS = ("copy", "move", "delete", "rename", "mkdir", "compress", "extract")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="file_ops",
        description="Copy, move, delete, rename, compress and extract files.",
    )
    parser.add_argument("--config", default=None, help="Optional config path override")
    parser.add_argument(
        "--strategy",
        choices=ACCESS_STRATEGIES,
        default=None,
        help="Override access.strategy from the config",
    )
    parser.add_argument(
        "--interactive",
        action="store_true",
        help="Ask on the terminal which directory to grant when access is missing",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    copy_parser = commands.add_parser("copy", help="Copy files or directories into a directory")
    copy_parser.add_argument("sources", nargs="+")
    copy_parser.add_argument("--to", required=True, help="Destination directory")

    move_parser = commands.add_parser("move", help="Move files or directories into a directory")
    move_parser.add_argument("sources", nargs="+")
    move_parser.add_argument("--to", required=True, help="Destination directory")

    delete_parser = commands.add_parser("delete", help="Delete files or directory trees")
    delete_parser.add_argument("paths", nargs="+")

    rename_parser = commands.add_parser("rename", help="Rename a file or directory")
    rename_parser.add_argument("source")
    rename_parser.add_argument("new_name", help="New name, or a full path in the same directory")

    mkdir_parser = commands.add_parser("mkdir", help="Create a directory and its missing parents")
    mkdir_parser.add_argument("path")

    compress_parser = commands.add_parser("compress", help="Compress files or directories into a zip")
    compress_parser.add_argument("sources", nargs="+")
    compress_parser.add_argument("--output", required=True, help="Archive to create")

    extract_parser = commands.add_parser("extract", help="Extract zip archives into a directory")
    extract_parser.add_argument("archives", nargs="+")
    extract_parser.add_argument("--to", required=True, help="Destination directory")

    grant_parser = commands.add_parser("grant", help="Persist an access grant for a directory tree")
    grant_parser.add_argument("root")

    commands.add_parser("grants", help="List persisted access grants")

    revoke_parser = commands.add_parser("revoke", help="Remove the access grant of a directory tree")
    revoke_parser.add_argument("root")
    return parser


def load_config(path: Optional[str]) -> AppConfig:
    """Load the config; without an explicit path a missing config.yaml means defaults."""
    try:
        return AppConfig.load(Path(path) if path else None)
    except FileNotFoundError:
        if path or os.environ.get(ENV_CONFIG_PATH):
            raise
        return AppConfig.defaults()


def build_operation(
    args: argparse.Namespace,
    environment: OperationEnvironment,
) -> tuple[FileOperation, Arguments]:
    """Translate parsed command line arguments into an operation and its arguments."""
    if args.command == "copy":
        files = [FileHandle.from_path(source) for source in args.sources]
        return CopyOperation(environment), CopyArguments(target=Path(args.to), files=files)
    if args.command == "move":
        files = [FileHandle.from_path(source) for source in args.sources]
        return MoveOperation(environment), MoveArguments(target=Path(args.to), files=files)
    if args.command == "delete":
        victims = [FileHandle.from_path(path) for path in args.paths]
        parent = victims[0].path.parent
        return DeleteOperation(environment), DeleteArguments(target=parent, victims=victims)
    if args.command == "rename":
        handle = FileHandle.from_path(args.source)
        new_path = Path(args.new_name)
        if len(new_path.parts) == 1:
            new_path = handle.path.parent / args.new_name
        return RenameOperation(environment), RenameArguments(target=new_path, file_to_rename=handle)
    if args.command == "mkdir":
        return CreateDirectoryOperation(environment), CreateDirectoryArguments(target=Path(args.path))
    if args.command == "compress":
        sources = [FileHandle.from_path(source) for source in args.sources]
        return CompressOperation(environment), CompressArguments(
            target=Path(args.output), to_compress=sources
        )
    if args.command == "extract":
        archives = [FileHandle.from_path(archive) for archive in args.archives]
        return ExtractOperation(environment), ExtractArguments(target=Path(args.to), archives=archives)
    raise ValueError(f"Unknown operation command: {args.command}")


def run_grant_command(args: argparse.Namespace, db_manager: DatabaseManager) -> int:
    if args.command == "grant":
        root = Path(args.root).expanduser().resolve()
        if not root.is_dir():
            print(f"Not a directory: {root}", file=sys.stderr)
            return EXIT_FAILURE
        grant = db_manager.persist_grant(root, uuid.uuid4().hex)
        print(f"Granted {grant.root}")
        return EXIT_SUCCESS
    if args.command == "grants":
        for grant in db_manager.list_grants():
            print(f"{grant.root}\t{grant.granted_at}")
        return EXIT_SUCCESS
    root = Path(args.root).expanduser().resolve()
    if db_manager.revoke_grant(root):
        print(f"Revoked {root}")
        return EXIT_SUCCESS
    print(f"No grant for {root}", file=sys.stderr)
    return EXIT_FAILURE


def exit_code_for(outcome: Optional[str]) -> int:
    if outcome == OUTCOME_COMPLETED:
        return EXIT_SUCCESS
    if outcome == OUTCOME_DENIED:
        return EXIT_ACCESS_DENIED
    return EXIT_FAILURE


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)
    config = load_config(args.config)
    if args.strategy:
        config = config.with_value("access", "strategy", value=args.strategy)

    loggers = setup_logging(config.resolve_path("paths", "logs", default="logs"))
    logger = loggers["main"]

    db_manager = DatabaseManager(db_paths_from_config(config))
    db_manager.initialize()
    try:
        if args.command not in OPERATION_COMMANDS:
            return run_grant_command(args, db_manager)

        index = CompositeIndexInvalidation(
            LoggingIndexInvalidation(loggers["movement"]),
            ContentIndex(db_manager, logger),
        )
        consent_flow = ConsoleConsentFlow(db_manager, logger=logger) if args.interactive else None
        environment = OperationEnvironment.from_config(
            config,
            grants=db_manager,
            index=index,
            consent_flow=consent_flow,
            journal=db_manager,
            logger=logger,
        )
        runner = FileOperationRunner.from_config(config, environment.access_manager, logger)
        operation, operation_args = build_operation(args, environment)
        runner.invoke(operation, operation_args)
        return exit_code_for(operation.outcome)
    except Exception:
        logging.getLogger("file_ops").exception("Command %s failed", args.command)
        return EXIT_FAILURE
    finally:
        db_manager.close()
