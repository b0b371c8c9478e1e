"""
Connection profile for the pipeline.

Values come from environment variables, with a .env file loaded first.
Command-line options override individual fields.
"""

import os
from dataclasses import dataclass, replace
from typing import Optional

from dotenv import load_dotenv

DEFAULT_TARGET = "dev"
DEFAULT_WAREHOUSE_DIR = os.path.join("data", "warehouse")
DEFAULT_RAW_DATA_DIR = os.path.join("data", "raw")
DEFAULT_EXPORT_DIR = os.path.join("data", "export")
DEFAULT_LOG_DIR = "logs"
DEFAULT_AWS_REGION = "us-east-1"


@dataclass(frozen=True)
class Profile:
    """Where the warehouse lives and how to reach the export bucket."""

    target: str
    db_path: str
    raw_data_dir: str = DEFAULT_RAW_DATA_DIR
    export_dir: str = DEFAULT_EXPORT_DIR
    log_dir: str = DEFAULT_LOG_DIR
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_region: str = DEFAULT_AWS_REGION

    def with_overrides(self, **overrides) -> "Profile":
        """Return a copy with every non-None override applied."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        if "target" in changes and "db_path" not in changes:
            warehouse_dir = os.path.dirname(self.db_path) or "."
            changes["db_path"] = default_db_path(warehouse_dir, changes["target"])
        return replace(self, **changes)


def default_db_path(warehouse_dir: str, target: str) -> str:
    return os.path.join(warehouse_dir, f"movielens_{target}.db")


def load_profile(target: Optional[str] = None, dotenv_path: Optional[str] = None) -> Profile:
    """
    Build a Profile from the environment.

    Args:
        target: Target name; falls back to MOVIELENS_TARGET, then "dev"
        dotenv_path: Optional .env file to load before reading the environment

    Returns:
        The resolved profile
    """
    load_dotenv(dotenv_path)

    target = target or os.environ.get("MOVIELENS_TARGET", DEFAULT_TARGET)
    warehouse_dir = os.environ.get("MOVIELENS_WAREHOUSE_DIR", DEFAULT_WAREHOUSE_DIR)
    db_path = os.environ.get("MOVIELENS_DB_PATH") or default_db_path(warehouse_dir, target)

    return Profile(
        target=target,
        db_path=db_path,
        raw_data_dir=os.environ.get("MOVIELENS_RAW_DATA_DIR", DEFAULT_RAW_DATA_DIR),
        export_dir=os.environ.get("MOVIELENS_EXPORT_DIR", DEFAULT_EXPORT_DIR),
        log_dir=os.environ.get("MOVIELENS_LOG_DIR", DEFAULT_LOG_DIR),
        aws_access_key_id=os.environ.get("AWS_ACCESS_KEY_ID"),
        aws_secret_access_key=os.environ.get("AWS_SECRET_ACCESS_KEY"),
        aws_region=os.environ.get("AWS_REGION", DEFAULT_AWS_REGION),
    )
