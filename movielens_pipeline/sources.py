"""
Raw layer: loads the MovieLens CSV files into the raw_* tables.

The models never write to these tables; they only read them.
"""

import csv
import os
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

import pandas as pd

from movielens_pipeline.errors import SourceError
from movielens_pipeline.warehouse import Warehouse

logger = logging.getLogger(__name__)

CSV_CHUNK_SIZE = 100000
LOAD_MODES = ("replace", "append")


@dataclass(frozen=True)
class RawSource:
    table: str
    file_name: str
    columns: Dict[str, str]

    @property
    def required_columns(self) -> List[str]:
        return list(self.columns)


RAW_SOURCES: List[RawSource] = [
    RawSource("raw_movies", "movies.csv", {"movieId": "int64", "title": "string", "genres": "string"}),
    RawSource(
        "raw_ratings",
        "ratings.csv",
        {"userId": "int64", "movieId": "int64", "rating": "float64", "timestamp": "int64"},
    ),
    RawSource(
        "raw_tags",
        "tags.csv",
        {"userId": "int64", "movieId": "int64", "tag": "string", "timestamp": "int64"},
    ),
    RawSource("raw_links", "links.csv", {"movieId": "int64", "imdbId": "string", "tmdbId": "Int64"}),
    RawSource("raw_genome_tags", "genome-tags.csv", {"tagId": "int64", "tag": "string"}),
    RawSource(
        "raw_genome_scores",
        "genome-scores.csv",
        {"movieId": "int64", "tagId": "int64", "relevance": "float64"},
    ),
]


def get_source(table: str) -> RawSource:
    for source in RAW_SOURCES:
        if source.table == table:
            return source
    raise SourceError(f"Unknown raw source: {table}")


def validate_csv_structure(csv_file: str, required_columns: list) -> None:
    """
    Validate the header of a CSV file.

    Args:
        csv_file: Path to the CSV file
        required_columns: List of required column names

    Raises:
        SourceError: If the file is missing, empty or lacks a required column
    """
    if not os.path.exists(csv_file):
        raise SourceError(f"CSV file not found: {csv_file}")

    with open(csv_file, newline='', encoding='utf-8') as f:
        reader = csv.DictReader(f)
        csv_columns = reader.fieldnames
        if not csv_columns:
            raise SourceError(f"CSV file {csv_file} is empty or has no headers.")
        missing_columns = [col for col in required_columns if col not in csv_columns]
        if missing_columns:
            raise SourceError(f"CSV file {csv_file} is missing required columns: {missing_columns}")


def load_source(warehouse: Warehouse, source: RawSource, data_dir: str, mode: str = "replace") -> int:
    """
    Load one CSV file into its raw table.

    Args:
        warehouse: Target warehouse
        source: Raw source definition
        data_dir: Directory holding the MovieLens CSV files
        mode: 'replace' to reload the table, 'append' to add rows to it

    Returns:
        Number of rows loaded
    """
    if mode not in LOAD_MODES:
        raise ValueError(f"Invalid load mode: {mode}")

    csv_file = os.path.join(data_dir, source.file_name)
    validate_csv_structure(csv_file, source.required_columns)

    record_count = 0
    if_exists = mode
    for chunk in pd.read_csv(
        csv_file,
        usecols=source.required_columns,
        dtype=source.columns,
        chunksize=CSV_CHUNK_SIZE,
    ):
        record_count += warehouse.write_frame(chunk, source.table, if_exists=if_exists)
        if_exists = "append"

    # An empty file still produces the table so downstream views compile
    if record_count == 0 and (mode == "replace" or not warehouse.relation_exists(source.table)):
        empty = pd.DataFrame({col: pd.Series(dtype=dtype) for col, dtype in source.columns.items()})
        warehouse.write_frame(empty, source.table, if_exists="replace")

    logger.info(f"Loaded {record_count} records from {source.file_name} into {source.table}")
    return record_count


def load_sources(
    warehouse: Warehouse,
    data_dir: str,
    mode: str = "replace",
    tables: Optional[List[str]] = None,
) -> bool:
    """
    Load every raw source (or the named subset) from a directory.

    Returns:
        True if all sources loaded, False otherwise
    """
    sources = RAW_SOURCES if not tables else [get_source(table) for table in tables]
    ok = True
    for source in sources:
        try:
            load_source(warehouse, source, data_dir, mode=mode)
        except (SourceError, ValueError) as e:
            logger.error(f"Failed to load {source.table}: {e}")
            ok = False
    return ok


def missing_sources(warehouse: Warehouse) -> List[str]:
    """Return the raw tables that are absent or lack required columns."""
    missing = []
    for source in RAW_SOURCES:
        if not warehouse.relation_exists(source.table):
            missing.append(source.table)
            continue
        columns = warehouse.columns(source.table)
        if any(col not in columns for col in source.required_columns):
            missing.append(source.table)
    return missing
