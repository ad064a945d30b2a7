"""Entry point for the RestoBill Textual register."""

from __future__ import annotations

import logging
from pathlib import Path

from restobill.config import DEBUG_LOG_PATH
from restobill.persistence import SnapshotStore, SqliteKeyValueStore
from restobill.pos_app import RestoBillApp
from restobill.session import Session


def configure_logging(path: str = DEBUG_LOG_PATH, level: int = logging.INFO) -> None:
    """Send package logs to a file; the terminal belongs to the UI."""
    try:
        log_file = Path(path)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_file, encoding="utf-8")
    except OSError:
        # Logging must never interfere with app flow.
        return
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    package_logger = logging.getLogger("restobill")
    package_logger.setLevel(level)
    package_logger.addHandler(handler)


def main() -> None:
    configure_logging()
    session = Session.load(SnapshotStore(SqliteKeyValueStore()))
    RestoBillApp(session).run()


if __name__ == "__main__":
    main()
