"""
Environment checks behind the ``debug`` and ``deps`` commands.
"""

import os
import sqlite3
import logging
from importlib import metadata
from typing import Dict, List, Optional, Tuple

from movielens_pipeline.config import Profile
from movielens_pipeline.sources import missing_sources
from movielens_pipeline.warehouse import Warehouse

logger = logging.getLogger(__name__)

# Distribution names as published on the package index
RUNTIME_PACKAGES = ("pandas", "numpy", "pyarrow", "boto3", "python-dotenv")

Check = Tuple[str, bool, str]


def check_profile(profile: Profile) -> Check:
    directory = os.path.dirname(os.path.abspath(profile.db_path))
    if os.path.isdir(directory) and not os.access(directory, os.W_OK):
        return ("profile", False, f"warehouse directory {directory} is not writable")
    return ("profile", True, f"target={profile.target} db_path={profile.db_path}")


def check_connection(warehouse: Warehouse) -> Check:
    try:
        version = warehouse.scalar("SELECT sqlite_version()")
    except sqlite3.Error as e:
        return ("connection", False, str(e))
    return ("connection", True, f"sqlite {version}")


def check_raw_sources(warehouse: Warehouse) -> Check:
    try:
        missing = missing_sources(warehouse)
    except sqlite3.Error as e:
        return ("raw sources", False, str(e))
    if missing:
        return ("raw sources", False, f"missing or incomplete: {', '.join(missing)} (run 'seed')")
    return ("raw sources", True, "all raw tables present")


def debug(profile: Profile, warehouse: Optional[Warehouse] = None) -> List[Check]:
    """
    Check the profile, the warehouse connection and the raw tables.

    Returns:
        (name, ok, detail) for every check, in order
    """
    checks = [check_profile(profile)]
    owns_warehouse = warehouse is None
    warehouse = warehouse or Warehouse(profile.db_path)
    try:
        checks.append(check_connection(warehouse))
        if checks[-1][1]:
            checks.append(check_raw_sources(warehouse))
    finally:
        if owns_warehouse:
            warehouse.close()

    for name, ok, detail in checks:
        log = logger.info if ok else logger.error
        log(f"{name}: {'OK' if ok else 'FAILED'} ({detail})")
    return checks


def installed_versions(packages=RUNTIME_PACKAGES) -> Dict[str, Optional[str]]:
    """Map each distribution to its installed version, or None if absent."""
    versions = {}
    for package in packages:
        try:
            versions[package] = metadata.version(package)
        except metadata.PackageNotFoundError:
            versions[package] = None
    return versions


def deps(packages=RUNTIME_PACKAGES) -> bool:
    versions = installed_versions(packages)
    for package, version in versions.items():
        if version is None:
            logger.error(f"{package}: not installed")
        else:
            logger.info(f"{package}: {version}")
    return all(version is not None for version in versions.values())
