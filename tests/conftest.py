"""Shared fixtures: a tiny MovieLens dataset and temporary warehouses."""

import os

import pandas as pd
import pytest

from movielens_pipeline import project
from movielens_pipeline.runner import run_models
from movielens_pipeline.sources import load_sources
from movielens_pipeline.warehouse import Warehouse


@pytest.fixture
def raw_frames():
    """Four movies, four users (one only tags), three genome tags."""
    return {
        "movies.csv": pd.DataFrame({
            "movieId": [1, 2, 3, 4],
            "title": ["toy story (1995)", "  jumanji (1995) ", "schindler's list (1993)", "Unknown Film (2000)"],
            "genres": ["Adventure|Animation|Children", "Adventure|Children|Fantasy", "Drama|War", "(no genres listed)"],
        }),
        "ratings.csv": pd.DataFrame({
            "userId": [1, 1, 2, 3],
            "movieId": [1, 3, 2, 1],
            "rating": [4.0, 5.0, 3.5, 0.5],
            "timestamp": [964982703, 964981247, 1445714835, 1306463578],
        }),
        "tags.csv": pd.DataFrame({
            "userId": [2, 4],
            "movieId": [1, 3],
            "tag": ["pixar", "holocaust"],
            "timestamp": [1445714994, 1445715054],
        }),
        "links.csv": pd.DataFrame({
            "movieId": [1, 2, 3, 4],
            "imdbId": ["0114709", "0113497", "0108052", "0000001"],
            "tmdbId": pd.array([862, 8844, 424, None], dtype="Int64"),
        }),
        "genome-tags.csv": pd.DataFrame({
            "tagId": [1, 2, 3],
            "tag": ["007", "  dark comedy ", "based on a book"],
        }),
        "genome-scores.csv": pd.DataFrame({
            "movieId": [1, 1, 1, 2, 2, 3],
            "tagId": [1, 2, 3, 1, 2, 3],
            "relevance": [0.02871, 0.00003, 0.99999, 0.5, 0.0, 0.123456],
        }),
    }


def write_csvs(frames, directory):
    os.makedirs(directory, exist_ok=True)
    for file_name, df in frames.items():
        df.to_csv(os.path.join(directory, file_name), index=False)
    return str(directory)


@pytest.fixture
def raw_dir(tmp_path, raw_frames):
    return write_csvs(raw_frames, tmp_path / "raw")


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "warehouse" / "movielens_test.db")


@pytest.fixture
def warehouse(db_path):
    wh = Warehouse(db_path)
    yield wh
    wh.close()


@pytest.fixture
def seeded_warehouse(warehouse, raw_dir):
    assert load_sources(warehouse, raw_dir)
    return warehouse


@pytest.fixture
def built_warehouse(seeded_warehouse):
    results = run_models(seeded_warehouse, project.MODELS)
    assert [r.status for r in results] == ["success"] * len(project.MODELS)
    return seeded_warehouse


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep profile lookups away from the developer's environment."""
    for name in list(os.environ):
        if name.startswith("MOVIELENS_"):
            monkeypatch.delenv(name)
    monkeypatch.setenv("MOVIELENS_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.chdir(tmp_path)
