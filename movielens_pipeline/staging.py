"""
Staging layer: snake_case, typed views over the raw tables.

Views hold no state; they are recreated on every invocation.
"""

from movielens_pipeline import data_tests as dt
from movielens_pipeline.models import model


@model("src_movies", layer="staging", materialized="view")
def src_movies():
    """Movies with renamed key column."""
    return """
        SELECT
            movieId AS movie_id,
            title,
            genres
        FROM raw_movies
    """


@model("src_ratings", layer="staging", materialized="view")
def src_ratings():
    """Ratings with the unix timestamp converted to UTC datetime text."""
    return """
        SELECT
            userId AS user_id,
            movieId AS movie_id,
            CAST(rating AS REAL) AS rating,
            datetime(timestamp, 'unixepoch') AS rating_timestamp
        FROM raw_ratings
    """


@model("src_tags", layer="staging", materialized="view")
def src_tags():
    return """
        SELECT
            userId AS user_id,
            movieId AS movie_id,
            tag,
            datetime(timestamp, 'unixepoch') AS tag_timestamp
        FROM raw_tags
    """


@model("src_links", layer="staging", materialized="view")
def src_links():
    return """
        SELECT
            movieId AS movie_id,
            imdbId AS imdb_id,
            tmdbId AS tmdb_id
        FROM raw_links
    """


@model("src_genome_tags", layer="staging", materialized="view")
def src_genome_tags():
    return """
        SELECT
            tagId AS tag_id,
            tag
        FROM raw_genome_tags
    """


@model("src_genome_scores", layer="staging", materialized="view")
def src_genome_scores():
    return """
        SELECT
            movieId AS movie_id,
            tagId AS tag_id,
            relevance
        FROM raw_genome_scores
    """


MODELS = [src_movies, src_ratings, src_tags, src_links, src_genome_tags, src_genome_scores]

TESTS = [
    dt.not_null("src_movies", "movie_id"),
    dt.not_null("src_ratings", "rating_timestamp"),
    dt.not_null("src_genome_scores", "relevance", severity="warn"),
]
