from data_generator import generate_movielens_data, write_dataset
from movielens_pipeline import project
from movielens_pipeline.runner import data_tests_passed, run_data_tests, run_models, run_succeeded
from movielens_pipeline.sources import RAW_SOURCES, load_sources


def small_dataset(**kwargs):
    params = dict(num_movies=30, num_users=15, num_ratings=200, num_tags=40, num_genome_tags=8, seed=7)
    params.update(kwargs)
    return generate_movielens_data(**params)


def test_generates_every_movielens_file():
    frames = small_dataset()

    assert set(frames) == {source.file_name for source in RAW_SOURCES}
    for source in RAW_SOURCES:
        assert list(frames[source.file_name].columns) == source.required_columns


def test_ids_are_consistent_across_files():
    frames = small_dataset()
    movie_ids = set(frames["movies.csv"]["movieId"])

    assert set(frames["ratings.csv"]["movieId"]) <= movie_ids
    assert set(frames["genome-scores.csv"]["movieId"]) == movie_ids
    assert set(frames["genome-scores.csv"]["tagId"]) == set(frames["genome-tags.csv"]["tagId"])
    assert not frames["ratings.csv"].duplicated(["userId", "movieId"]).any()
    assert frames["ratings.csv"]["rating"].between(0.5, 5.0).all()


def test_same_seed_is_reproducible():
    a, b = small_dataset(), small_dataset()
    assert a["ratings.csv"].equals(b["ratings.csv"])


def test_later_batch_has_later_timestamps():
    early = small_dataset(start_date="2015-01-01", days=30)["ratings.csv"]
    late = small_dataset(start_date="2016-01-01", days=30)["ratings.csv"]
    assert late["timestamp"].min() > early["timestamp"].max()


def test_generated_data_passes_every_data_test(warehouse, tmp_path):
    frames = small_dataset()
    write_dataset(frames, str(tmp_path / "raw"))

    assert load_sources(warehouse, str(tmp_path / "raw"))
    assert run_succeeded(run_models(warehouse, project.MODELS))
    assert data_tests_passed(run_data_tests(warehouse, project.MODELS))

    # Append a later ratings batch; only the new rows reach the fact table
    before = warehouse.row_count("fct_ratings")
    later = small_dataset(start_date="2030-01-01", seed=8)
    write_dataset({"ratings.csv": later["ratings.csv"]}, str(tmp_path / "batch"))
    assert load_sources(warehouse, str(tmp_path / "batch"), mode="append", tables=["raw_ratings"])
    assert run_succeeded(run_models(warehouse, project.load_graph().select(["+fct_ratings", "+dim_users"])))

    assert warehouse.row_count("fct_ratings") == before + len(later["ratings.csv"])
    assert data_tests_passed(run_data_tests(warehouse, project.MODELS))
