"""
Environment-driven settings.

Usage:
    from productgate.config.settings import get_config_dir

    config_dir = get_config_dir()

CLI check:
    python -m productgate.config.settings --check
"""

import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from ..errors import ConfigError

# productgate/config/settings.py -> repo root
_REPO_ROOT = Path(__file__).resolve().parent.parent.parent
_env_path = _REPO_ROOT / ".env"

if _env_path.exists():
    load_dotenv(_env_path)
else:
    load_dotenv()

DEFAULT_CONFIG_DIR = _REPO_ROOT / "config"
DEFAULT_SNAPSHOT_DIR = Path("qa_snapshots")
DEFAULT_MAX_WORKERS = 4


def get_config_dir() -> Path:
    """
    Directory holding ``categories/`` and ``schemas/``.

    Returns:
        Path from PRODUCTGATE_CONFIG_DIR, or the repo's ``config/``
    """
    value = os.environ.get("PRODUCTGATE_CONFIG_DIR", "").strip()
    return Path(value) if value else DEFAULT_CONFIG_DIR


def get_snapshot_dir() -> Path:
    """Directory for golden-set snapshots (PRODUCTGATE_SNAPSHOT_DIR)."""
    value = os.environ.get("PRODUCTGATE_SNAPSHOT_DIR", "").strip()
    return Path(value) if value else DEFAULT_SNAPSHOT_DIR


def get_max_workers() -> int:
    """
    Worker count for batch sweeps.

    Raises:
        ConfigError: If PRODUCTGATE_MAX_WORKERS is not a positive integer
    """
    value = os.environ.get("PRODUCTGATE_MAX_WORKERS", "").strip()
    if not value:
        return DEFAULT_MAX_WORKERS
    try:
        workers = int(value)
    except ValueError:
        raise ConfigError(f"PRODUCTGATE_MAX_WORKERS must be an integer, got {value!r}")
    if workers <= 0:
        raise ConfigError(f"PRODUCTGATE_MAX_WORKERS must be > 0, got {workers}")
    return workers


def check_settings() -> dict:
    """
    Resolve every setting without raising.

    Returns:
        dict: setting name -> resolved value or "ERROR: ..."
    """
    status = {
        "PRODUCTGATE_CONFIG_DIR": str(get_config_dir()),
        "PRODUCTGATE_SNAPSHOT_DIR": str(get_snapshot_dir()),
    }
    try:
        status["PRODUCTGATE_MAX_WORKERS"] = str(get_max_workers())
    except ConfigError as e:
        status["PRODUCTGATE_MAX_WORKERS"] = f"ERROR: {e}"
    return status


def _cli_check():
    """CLI entry point for --check flag."""
    all_ok = True
    for name, value in check_settings().items():
        print(f"{name}: {value}")
        if value.startswith("ERROR"):
            all_ok = False

    if not get_config_dir().is_dir():
        print(f"\nConfig directory not found: {get_config_dir()}")
        all_ok = False

    sys.exit(0 if all_ok else 1)


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(
        description="Check product gate settings"
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Resolve and print every setting"
    )

    args = parser.parse_args()

    if args.check:
        _cli_check()
    else:
        parser.print_help()
