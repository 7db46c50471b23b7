"""Root conftest: loads .env.test before exchange_chat.config builds its settings."""
from __future__ import annotations

import os
from pathlib import Path

_env_test = Path(__file__).resolve().parent / ".env.test"
if _env_test.exists():
    for line in _env_test.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        os.environ.setdefault(key.strip(), value.strip().strip('"'))

# tests never talk to Redis; pushes stay in-process
os.environ["RELAY_FANOUT"] = "local"
