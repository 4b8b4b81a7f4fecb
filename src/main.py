"""
Main entry point for running storage operations from the command line.
"""

import faulthandler
import sys
import threading
import traceback
from datetime import datetime
from pathlib import Path

from cli import main


def _enable_crash_diagnostics() -> None:
    logs_dir = Path("logs")
    logs_dir.mkdir(parents=True, exist_ok=True)
    crash_log = logs_dir / f"crash_traceback_{datetime.utcnow().strftime('%Y%m%d')}.log"
    crash_stream = crash_log.open("a", encoding="utf-8")
    faulthandler.enable(file=crash_stream, all_threads=True)

    def _hook(exc_type, exc, tb):
        with crash_log.open("a", encoding="utf-8") as handle:
            handle.write("\n")
            handle.write(datetime.utcnow().isoformat() + " Unhandled exception\n")
            traceback.print_exception(exc_type, exc, tb, file=handle)
        sys.__excepthook__(exc_type, exc, tb)

    sys.excepthook = _hook

    def _thread_hook(args):
        _hook(args.exc_type, args.exc_value, args.exc_traceback)

    threading.excepthook = _thread_hook


if __name__ == "__main__":
    _enable_crash_diagnostics()
    raise SystemExit(main())
