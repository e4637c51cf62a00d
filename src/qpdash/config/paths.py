from __future__ import annotations

import os
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[3]
DATA_DIR = str(ROOT_DIR / "data")

STATE_FILE = os.getenv("QP_STATE_FILE", str(ROOT_DIR / "data" / "dashboard_state.json"))
