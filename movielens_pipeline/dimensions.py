"""
Dimension layer: cleaned, deduplicated entities rebuilt on every run.
"""

import json
import re

import pandas as pd

from movielens_pipeline import data_tests as dt
from movielens_pipeline.models import model

GENRE_SEPARATOR = "|"

# Characters after which INITCAP starts a new word
_WORD_DELIMITERS = r"""\s!?@"^#$&~_,.:;+\-*%/|\\\[\](){}<>"""
_WORD_START = re.compile(rf"(^|[{_WORD_DELIMITERS}])([^{_WORD_DELIMITERS}])")


def initcap(value):
    """
    Capitalize the first letter of every word and lowercase the rest.

    Unlike str.title(), apostrophes do not start a new word, so
    "schindler's list" becomes "Schindler's List".
    """
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return value
    return _WORD_START.sub(lambda m: m.group(1) + m.group(2).upper(), value.lower())


def split_genres(genres):
    """Split a pipe-delimited genre string into a JSON array string."""
    if genres is None or (not isinstance(genres, str) and pd.isna(genres)):
        return json.dumps([])
    return json.dumps([g for g in genres.split(GENRE_SEPARATOR) if g])


@model("dim_movies", layer="dimension", materialized="table", depends_on=["src_movies"])
def dim_movies():
    """One row per movie with a cleaned title and its genres as an array."""
    return """
        SELECT
            movie_id,
            TRIM(title) AS movie_title,
            genres
        FROM (
            SELECT
                movie_id,
                title,
                genres,
                ROW_NUMBER() OVER (PARTITION BY movie_id ORDER BY title, genres) AS row_num
            FROM src_movies
        )
        WHERE row_num = 1
        ORDER BY movie_id
    """


@dim_movies.post
def _clean_movies(df: pd.DataFrame) -> pd.DataFrame:
    df["movie_title"] = df["movie_title"].map(initcap)
    df["genre_array"] = df["genres"].map(split_genres)
    return df


@model("dim_users", layer="dimension", materialized="table", depends_on=["src_ratings", "src_tags"])
def dim_users():
    """Every user that rated or tagged at least one movie."""
    return """
        SELECT DISTINCT user_id
        FROM (
            SELECT user_id FROM src_ratings
            UNION
            SELECT user_id FROM src_tags
        )
        WHERE user_id IS NOT NULL
        ORDER BY user_id
    """


@model("dim_genome_tags", layer="dimension", materialized="table", depends_on=["src_genome_tags"])
def dim_genome_tags():
    return """
        SELECT
            tag_id,
            TRIM(tag) AS tag_name
        FROM (
            SELECT
                tag_id,
                tag,
                ROW_NUMBER() OVER (PARTITION BY tag_id ORDER BY tag) AS row_num
            FROM src_genome_tags
        )
        WHERE row_num = 1
        ORDER BY tag_id
    """


@dim_genome_tags.post
def _clean_genome_tags(df: pd.DataFrame) -> pd.DataFrame:
    df["tag_name"] = df["tag_name"].map(initcap)
    return df


MODELS = [dim_movies, dim_users, dim_genome_tags]

TESTS = [
    dt.unique("dim_movies", "movie_id"),
    dt.not_null("dim_movies", "movie_id"),
    dt.not_null("dim_movies", "movie_title", severity="warn"),
    dt.unique("dim_users", "user_id"),
    dt.not_null("dim_users", "user_id"),
    dt.unique("dim_genome_tags", "tag_id"),
    dt.not_null("dim_genome_tags", "tag_id"),
]
