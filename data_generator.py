#!/usr/bin/env python3
"""
MovieLens Data Generator

Writes a small synthetic dataset in the MovieLens file layout (movies.csv,
ratings.csv, tags.csv, links.csv, genome-tags.csv, genome-scores.csv) so the
pipeline can be exercised without downloading the real dataset.

Ids are consistent across files. Passing a later --start-date produces a
batch of newer ratings that can be appended with
`movielens seed --mode append --tables raw_ratings`.
"""

import os
import logging
import argparse
from datetime import datetime, timezone
from typing import Dict

import numpy as np
import pandas as pd

from movielens_pipeline.utils.logger import setup_logger

logger = logging.getLogger("Data_Generator")

DEFAULT_OUTPUT_DIR = os.path.join("data", "raw")
DEFAULT_NUM_MOVIES = 200
DEFAULT_NUM_USERS = 100
DEFAULT_NUM_RATINGS = 5000
DEFAULT_NUM_TAGS = 500
DEFAULT_NUM_GENOME_TAGS = 40
DEFAULT_START_DATE = "2015-01-01"
DEFAULT_DAYS = 365

GENRES = [
    "Action", "Adventure", "Animation", "Children", "Comedy", "Crime",
    "Documentary", "Drama", "Fantasy", "Film-Noir", "Horror", "IMAX",
    "Musical", "Mystery", "Romance", "Sci-Fi", "Thriller", "War", "Western",
]
NO_GENRES = "(no genres listed)"

TITLE_WORDS = [
    "lost", "city", "night", "return", "shadow", "river", "king", "dream",
    "last", "summer", "ghost", "road", "star", "heart", "winter", "stranger's",
]

TAG_WORDS = [
    "atmospheric", "dark comedy", "based on a book", "twist ending", "visually appealing",
    "thought-provoking", "quirky", "sci-fi", "classic", "bittersweet", "slow", "funny",
]

RATING_VALUES = np.arange(0.5, 5.01, 0.5)


def generate_movies(num_movies: int, rng: np.random.Generator) -> pd.DataFrame:
    """Movies with MovieLens-style titles, including some untidy casing and whitespace."""
    records = []
    for movie_id in range(1, num_movies + 1):
        words = rng.choice(TITLE_WORDS, size=rng.integers(1, 4), replace=False)
        title = f"{' '.join(words)} ({rng.integers(1950, 2020)})"
        if rng.random() < 0.8:
            title = title.title().replace("'S", "'s")
        if rng.random() < 0.1:
            title = f"  {title} "
        if rng.random() < 0.05:
            genres = NO_GENRES
        else:
            genres = "|".join(rng.choice(GENRES, size=rng.integers(1, 4), replace=False))
        records.append({"movieId": movie_id, "title": title, "genres": genres})
    return pd.DataFrame(records)


def generate_links(movie_ids: np.ndarray, rng: np.random.Generator) -> pd.DataFrame:
    imdb_ids = 100000 + rng.choice(9900000, size=len(movie_ids), replace=False)
    tmdb_ids = 1 + rng.choice(500000, size=len(movie_ids), replace=False)
    return pd.DataFrame({
        "movieId": movie_ids,
        "imdbId": [f"{i:07d}" for i in imdb_ids],
        "tmdbId": tmdb_ids,
    })


def _timestamps(size: int, start_date: str, days: int, rng: np.random.Generator) -> np.ndarray:
    start = int(datetime.strptime(start_date, "%Y-%m-%d").replace(tzinfo=timezone.utc).timestamp())
    return start + rng.integers(0, days * 86400, size=size)


def generate_ratings(
    num_ratings: int,
    user_ids: np.ndarray,
    movie_ids: np.ndarray,
    start_date: str,
    days: int,
    rng: np.random.Generator,
) -> pd.DataFrame:
    """Ratings with at most one rating per (user, movie) pair."""
    num_ratings = min(num_ratings, len(user_ids) * len(movie_ids))
    df = pd.DataFrame({
        "userId": rng.choice(user_ids, size=num_ratings * 2),
        "movieId": rng.choice(movie_ids, size=num_ratings * 2),
    }).drop_duplicates().head(num_ratings)
    df["rating"] = rng.choice(RATING_VALUES, size=len(df))
    df["timestamp"] = _timestamps(len(df), start_date, days, rng)
    return df.sort_values(["userId", "movieId"]).reset_index(drop=True)


def generate_tags(
    num_tags: int,
    user_ids: np.ndarray,
    movie_ids: np.ndarray,
    start_date: str,
    days: int,
    rng: np.random.Generator,
) -> pd.DataFrame:
    return pd.DataFrame({
        "userId": rng.choice(user_ids, size=num_tags),
        "movieId": rng.choice(movie_ids, size=num_tags),
        "tag": rng.choice(TAG_WORDS, size=num_tags),
        "timestamp": _timestamps(num_tags, start_date, days, rng),
    })


def generate_genome_tags(num_genome_tags: int) -> pd.DataFrame:
    tags = [TAG_WORDS[i % len(TAG_WORDS)] + ("" if i < len(TAG_WORDS) else f" {i}") for i in range(num_genome_tags)]
    return pd.DataFrame({"tagId": np.arange(1, num_genome_tags + 1), "tag": tags})


def generate_genome_scores(movie_ids: np.ndarray, tag_ids: np.ndarray, rng: np.random.Generator) -> pd.DataFrame:
    """One relevance score per (movie, tag); a few round to zero at four decimals."""
    movie_grid, tag_grid = np.meshgrid(movie_ids, tag_ids, indexing="ij")
    relevance = np.round(rng.beta(0.8, 3.0, size=movie_grid.size), 5)
    return pd.DataFrame({
        "movieId": movie_grid.ravel(),
        "tagId": tag_grid.ravel(),
        "relevance": relevance,
    })


def generate_movielens_data(
    num_movies: int = DEFAULT_NUM_MOVIES,
    num_users: int = DEFAULT_NUM_USERS,
    num_ratings: int = DEFAULT_NUM_RATINGS,
    num_tags: int = DEFAULT_NUM_TAGS,
    num_genome_tags: int = DEFAULT_NUM_GENOME_TAGS,
    start_date: str = DEFAULT_START_DATE,
    days: int = DEFAULT_DAYS,
    seed: int = 42,
) -> Dict[str, pd.DataFrame]:
    """
    Generate every MovieLens file as a DataFrame.

    Returns:
        Mapping of file name to its contents
    """
    rng = np.random.default_rng(seed)
    movies = generate_movies(num_movies, rng)
    movie_ids = movies["movieId"].to_numpy()
    user_ids = np.arange(1, num_users + 1)
    genome_tags = generate_genome_tags(num_genome_tags)

    return {
        "movies.csv": movies,
        "links.csv": generate_links(movie_ids, rng),
        "ratings.csv": generate_ratings(num_ratings, user_ids, movie_ids, start_date, days, rng),
        "tags.csv": generate_tags(num_tags, user_ids, movie_ids, start_date, days, rng),
        "genome-tags.csv": genome_tags,
        "genome-scores.csv": generate_genome_scores(movie_ids, genome_tags["tagId"].to_numpy(), rng),
    }


def write_dataset(frames: Dict[str, pd.DataFrame], output_dir: str) -> None:
    os.makedirs(output_dir, exist_ok=True)
    for file_name, df in frames.items():
        output_file = os.path.join(output_dir, file_name)
        df.to_csv(output_file, index=False)
        logger.info(f"Generated {len(df)} records at: {output_file}")


def main():
    parser = argparse.ArgumentParser(description='Generate a synthetic MovieLens dataset')
    parser.add_argument('--output-dir', type=str, default=DEFAULT_OUTPUT_DIR)
    parser.add_argument('--movies', type=int, default=DEFAULT_NUM_MOVIES)
    parser.add_argument('--users', type=int, default=DEFAULT_NUM_USERS)
    parser.add_argument('--ratings', type=int, default=DEFAULT_NUM_RATINGS)
    parser.add_argument('--tags', type=int, default=DEFAULT_NUM_TAGS)
    parser.add_argument('--genome-tags', type=int, default=DEFAULT_NUM_GENOME_TAGS)
    parser.add_argument('--start-date', type=str, default=DEFAULT_START_DATE, help='YYYY-MM-DD')
    parser.add_argument('--days', type=int, default=DEFAULT_DAYS)
    parser.add_argument('--seed', type=int, default=42)
    args = parser.parse_args()
    setup_logger("Data_Generator", log_file="data_generator.log")

    frames = generate_movielens_data(
        num_movies=args.movies,
        num_users=args.users,
        num_ratings=args.ratings,
        num_tags=args.tags,
        num_genome_tags=args.genome_tags,
        start_date=args.start_date,
        days=args.days,
        seed=args.seed,
    )
    write_dataset(frames, args.output_dir)


if __name__ == "__main__":
    main()
