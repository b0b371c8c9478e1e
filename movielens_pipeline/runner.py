"""
Builds selected models in order and runs their data tests.
"""

import logging
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence

from movielens_pipeline import project
from movielens_pipeline.data_tests import DataTest, TestResult, run_test
from movielens_pipeline.materializations import materialize
from movielens_pipeline.models import Model, ModelGraph
from movielens_pipeline.warehouse import Warehouse

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    model: str
    status: str
    rows: int = 0
    message: str = ""
    elapsed: float = 0.0


def run_models(
    warehouse: Warehouse,
    models: Sequence[Model],
    graph: Optional[ModelGraph] = None,
    full_refresh: bool = False,
) -> List[RunResult]:
    """
    Materialize models in the given order.

    A model that raises is recorded as 'error'; any later model that
    depends on it, directly or not, is recorded as 'skipped'.

    Args:
        warehouse: Target warehouse
        models: Models to build, upstream-first
        graph: Graph used to find dependents of failed models
        full_refresh: Rebuild incremental models from scratch

    Returns:
        One RunResult per model
    """
    graph = graph or project.load_graph()
    results: List[RunResult] = []
    blocked = set()
    total = len(models)

    for index, model in enumerate(models, start=1):
        prefix = f"{index} of {total}"
        if model.name in blocked:
            logger.warning(f"{prefix} SKIP {model.materialized} model {model.name} (upstream failure)")
            results.append(RunResult(model.name, "skipped", message="upstream model failed"))
            continue

        logger.info(f"{prefix} START {model.materialized} model {model.name}")
        started = time.perf_counter()
        try:
            rows = materialize(warehouse, model, full_refresh=full_refresh)
        except Exception as e:
            elapsed = time.perf_counter() - started
            logger.error(f"{prefix} ERROR creating {model.materialized} model {model.name}: {e}")
            results.append(RunResult(model.name, "error", message=str(e), elapsed=elapsed))
            blocked |= graph.downstream(model.name)
            continue

        elapsed = time.perf_counter() - started
        logger.info(f"{prefix} OK created {model.materialized} model {model.name} [{rows} rows in {elapsed:.2f}s]")
        results.append(RunResult(model.name, "success", rows=rows, elapsed=elapsed))

    summary = summarize([r.status for r in results])
    logger.info(f"Finished running {total} models: {summary}")
    return results


def run_data_tests(
    warehouse: Warehouse,
    models: Sequence[Model],
    tests: Optional[Sequence[DataTest]] = None,
) -> List[TestResult]:
    """
    Run the data tests attached to the given models.

    Tests that also read an unselected model run only when that model
    already exists in the warehouse.
    """
    selected = project.tests_for(models, tests, existing=warehouse.list_relations())
    names = {m.name for m in models}
    skipped = sum(1 for t in (project.TESTS if tests is None else tests) if t.model in names) - len(selected)
    if skipped:
        logger.info(f"Skipping {skipped} data test(s) whose unselected parents have not been built")
    results = [run_test(warehouse, test) for test in selected]
    summary = summarize([r.status for r in results])
    logger.info(f"Finished running {len(selected)} data tests: {summary}")
    return results


def summarize(statuses: Sequence[str]) -> str:
    counts = {}
    for status in statuses:
        counts[status] = counts.get(status, 0) + 1
    if not counts:
        return "nothing to do"
    return ", ".join(f"{status}={count}" for status, count in sorted(counts.items()))


def run_succeeded(results: Sequence[RunResult]) -> bool:
    return all(r.status == "success" for r in results)


def data_tests_passed(results: Sequence[TestResult]) -> bool:
    return all(r.status in ("pass", "warn") for r in results)
