"""
Fact layer: measurable events keyed by the dimensions.

fct_ratings grows incrementally on its rating_timestamp watermark and
refuses to append when its columns drift from the target table.
"""

from movielens_pipeline import data_tests as dt
from movielens_pipeline.models import model

RATING_MIN = 0.5
RATING_MAX = 5.0
RELEVANCE_DECIMALS = 4


@model(
    "fct_ratings",
    layer="fact",
    materialized="incremental",
    depends_on=["src_ratings"],
    watermark="rating_timestamp",
    on_schema_change="fail",
)
def fct_ratings():
    """One row per rating event."""
    return """
        SELECT
            user_id,
            movie_id,
            rating,
            rating_timestamp
        FROM src_ratings
        WHERE rating IS NOT NULL
    """


@model("fct_genome_scores", layer="fact", materialized="table", depends_on=["src_genome_scores"])
def fct_genome_scores():
    """Tag genome relevance per movie, rounded and restricted to positive scores."""
    return f"""
        SELECT
            movie_id,
            tag_id,
            ROUND(relevance, {RELEVANCE_DECIMALS}) AS relevance_score
        FROM src_genome_scores
        WHERE ROUND(relevance, {RELEVANCE_DECIMALS}) > 0
    """


MODELS = [fct_ratings, fct_genome_scores]

TESTS = [
    dt.not_null("fct_ratings", "user_id"),
    dt.not_null("fct_ratings", "movie_id"),
    dt.not_null("fct_ratings", "rating_timestamp"),
    dt.relationships("fct_ratings", "movie_id", to="dim_movies", field="movie_id"),
    dt.relationships("fct_ratings", "user_id", to="dim_users", field="user_id"),
    dt.accepted_range("fct_ratings", "rating", min_value=RATING_MIN, max_value=RATING_MAX),
    dt.unique_combination("fct_ratings", ["user_id", "movie_id", "rating_timestamp"]),
    dt.relationships("fct_genome_scores", "movie_id", to="dim_movies", field="movie_id"),
    dt.relationships("fct_genome_scores", "tag_id", to="dim_genome_tags", field="tag_id"),
    dt.accepted_range(
        "fct_genome_scores", "relevance_score", min_value=0, min_inclusive=False, max_value=1
    ),
    dt.max_decimal_places("fct_genome_scores", "relevance_score", places=RELEVANCE_DECIMALS),
]
