import pytest

from movielens_pipeline import project
from movielens_pipeline.errors import SelectionError
from movielens_pipeline.models import Model, ModelGraph, model


@pytest.fixture
def graph():
    return project.load_graph()


def names(models):
    return [m.name for m in models]


def test_project_models_are_declared_upstream_first(graph):
    assert names(graph)[:6] == [
        "src_movies", "src_ratings", "src_tags", "src_links", "src_genome_tags", "src_genome_scores",
    ]
    assert graph["fct_ratings"].materialized == "incremental"
    assert graph["fct_ratings"].on_schema_change == "fail"
    assert graph["dim_users"].depends_on == ["src_ratings", "src_tags"]


def test_select_everything_by_default(graph):
    assert names(graph.select()) == graph.names()


def test_select_single_model(graph):
    assert names(graph.select(["dim_movies"])) == ["dim_movies"]


def test_select_with_upstream(graph):
    assert names(graph.select(["+dim_users"])) == ["src_ratings", "src_tags", "dim_users"]


def test_select_with_downstream(graph):
    assert names(graph.select(["src_ratings+"])) == ["src_ratings", "dim_users", "fct_ratings"]


def test_select_by_layer_and_tag(graph):
    assert names(graph.select(["layer:dimension"])) == ["dim_movies", "dim_users", "dim_genome_tags"]
    assert names(graph.select(["tag:fact"])) == ["fct_ratings", "fct_genome_scores"]


def test_select_accepts_space_and_comma_separated_values(graph):
    selected = graph.select(["dim_users,fct_ratings src_movies"])
    assert names(selected) == ["src_movies", "dim_users", "fct_ratings"]


def test_exclude_removes_models(graph):
    selected = graph.select(["layer:staging"], exclude=["src_links", "src_tags"])
    assert names(selected) == ["src_movies", "src_ratings", "src_genome_tags", "src_genome_scores"]


@pytest.mark.parametrize("selector", ["dim_reviews", "+dim_reviews", "tag:nothing", "layer:marts"])
def test_unknown_selectors_raise(graph, selector):
    with pytest.raises(SelectionError):
        graph.select([selector])


def test_model_rejects_unknown_materialization():
    with pytest.raises(ValueError, match="materialization"):
        Model(name="x", layer="staging", materialized="ephemeral", sql="SELECT 1")


def test_incremental_model_needs_watermark():
    with pytest.raises(ValueError, match="watermark"):
        Model(name="x", layer="fact", materialized="incremental", sql="SELECT 1")


def test_view_cannot_take_transform():
    @model("v", layer="staging", materialized="view")
    def v():
        return "SELECT 1 AS one"

    with pytest.raises(ValueError, match="views cannot"):
        @v.post
        def _noop(df):
            return df


def test_decorator_uses_docstring_and_layer_tag():
    @model("dim_x", layer="dimension", materialized="table", tags=["core"])
    def dim_x():
        """Describes x."""
        return "  SELECT 1 AS x  "

    assert dim_x.sql == "SELECT 1 AS x"
    assert dim_x.description == "Describes x."
    assert dim_x.tags == ["dimension", "core"]


def test_graph_rejects_duplicates_and_bad_order():
    a = Model(name="a", layer="staging", materialized="view", sql="SELECT 1")
    b = Model(name="b", layer="dimension", materialized="table", sql="SELECT 1", depends_on=["a"])

    with pytest.raises(ValueError, match="Duplicate"):
        ModelGraph([a, a])
    with pytest.raises(ValueError, match="declared before"):
        ModelGraph([b, a])
    with pytest.raises(ValueError, match="unknown model"):
        ModelGraph([b])


def test_upstream_and_downstream_are_transitive():
    a = Model(name="a", layer="staging", materialized="view", sql="SELECT 1")
    b = Model(name="b", layer="dimension", materialized="table", sql="SELECT 1", depends_on=["a"])
    c = Model(name="c", layer="fact", materialized="table", sql="SELECT 1", depends_on=["b"])
    graph = ModelGraph([a, b, c])

    assert graph.upstream("c") == {"a", "b"}
    assert graph.downstream("a") == {"b", "c"}
