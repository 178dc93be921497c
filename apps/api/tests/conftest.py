from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path

import pytest

_TMP_DIR = Path(tempfile.mkdtemp(prefix="nestlog-tests-"))
_CONFIG_FILE = _TMP_DIR / "config.json"
_CONFIG_FILE.write_text(
    json.dumps(
        {
            "database_path": str(_TMP_DIR / "nestlog.db"),
            "default_timezone": "America/Los_Angeles",
        }
    )
)
os.environ["NESTLOG_CONFIG"] = str(_CONFIG_FILE)


@pytest.fixture
def clean_db():
    from nestlog.db import get_connection, initialize_db

    initialize_db()
    with get_connection() as conn:
        conn.execute("DELETE FROM events")
        conn.commit()
    yield
