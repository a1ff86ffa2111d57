# tests/conftest.py
"""Test environment: file-backed SQLite, no MQTT, cheap bcrypt."""

import os
import sys
import tempfile

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

_db_dir = tempfile.mkdtemp(prefix="bintrack-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{os.path.join(_db_dir, 'bintrack.db')}")
os.environ.setdefault("MQTT_ENABLED", "false")
os.environ.setdefault("PASSWORD_HASH_ROUNDS", "4")
