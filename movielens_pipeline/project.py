"""
The MovieLens project: every model in upstream-first order, plus its data tests.
"""

from typing import Iterable, List, Optional, Sequence

from movielens_pipeline import dimensions, facts, staging
from movielens_pipeline.data_tests import DataTest
from movielens_pipeline.models import Model, ModelGraph

PROJECT_NAME = "movielens"

MODELS: List[Model] = [*staging.MODELS, *dimensions.MODELS, *facts.MODELS]
TESTS: List[DataTest] = [*staging.TESTS, *dimensions.TESTS, *facts.TESTS]


def load_graph() -> ModelGraph:
    return ModelGraph(MODELS)


def tests_for(
    models: Sequence[Model],
    tests: Optional[Sequence[DataTest]] = None,
    existing: Iterable[str] = (),
) -> List[DataTest]:
    """
    Return the data tests attached to any of the given models.

    A test that also reads other models (a relationships test) is kept
    only when each of those models is selected or named in ``existing``.
    """
    names = {m.name for m in models}
    available = names | set(existing)
    return [
        t for t in (TESTS if tests is None else tests)
        if t.model in names and all(dep in available for dep in t.depends_on())
    ]
