from __future__ import annotations

import logging
from pathlib import Path
import subprocess
import sys

from leadflow_app.core.config import AppConfig
from leadflow_app.core.env import (
    LEADFLOW_LOCAL_DB_AUTO_INIT,
    LEADFLOW_LOCAL_DB_RESET_ON_START,
    get_env_bool,
)

LOGGER = logging.getLogger(__name__)

REPO_ROOT = Path(__file__).resolve().parents[3]
INIT_SCRIPT = REPO_ROOT / "setup" / "local_db" / "init_local_db.py"


def local_db_init_command(db_path: Path, *, reset: bool) -> list[str]:
    command = [sys.executable, str(INIT_SCRIPT), "--db-path", str(db_path), "--skip-seed"]
    return [*command, "--reset"] if reset else command


def ensure_local_db_ready(config: AppConfig) -> None:
    """Create the dev SQLite file on startup when it is missing (or on every start with RESET_ON_START)."""
    if not config.use_local_db or not get_env_bool(LEADFLOW_LOCAL_DB_AUTO_INIT, default=True):
        return

    db_path = Path(config.local_db_path).resolve()
    reset = get_env_bool(LEADFLOW_LOCAL_DB_RESET_ON_START, default=False)
    if db_path.exists() and not reset:
        return
    if not INIT_SCRIPT.exists():
        raise RuntimeError(f"Local DB init script not found: {INIT_SCRIPT}")

    command = local_db_init_command(db_path, reset=reset)
    result = subprocess.run(command, capture_output=True, text=True, cwd=str(REPO_ROOT), check=False)
    if result.returncode != 0:
        raise RuntimeError(
            f"Local DB bootstrap failed ({' '.join(command)}).\n"
            f"stdout:\n{result.stdout}\n"
            f"stderr:\n{result.stderr}"
        )
    LOGGER.info(
        "Local lead database initialized at %s.",
        db_path,
        extra={"event": "local_db_initialized", "reset": reset},
    )
