"""
How each materialization turns a model's SELECT into a relation.
"""

import logging
from typing import Callable, Dict

import pandas as pd

from movielens_pipeline.errors import SchemaChangeError
from movielens_pipeline.models import Model
from movielens_pipeline.warehouse import Warehouse

logger = logging.getLogger(__name__)


def _replace_wrong_type(warehouse: Warehouse, name: str, expected: str) -> None:
    kind = warehouse.relation_type(name)
    if kind is not None and kind != expected:
        logger.info(f"Dropping {kind} {name} so it can be rebuilt as a {expected}")
        warehouse.drop_relation(name)


def _select(warehouse: Warehouse, model: Model, sql: str, params=None) -> pd.DataFrame:
    df = warehouse.read_sql(sql, params=params)
    if model.transform is not None:
        df = model.transform(df)
    return df


def materialize_view(warehouse: Warehouse, model: Model, full_refresh: bool = False) -> int:
    """
    Recreate the model as a view.

    Returns:
        Row count of the view after creation
    """
    _replace_wrong_type(warehouse, model.name, "view")
    with warehouse.conn:
        warehouse.execute(f'DROP VIEW IF EXISTS "{model.name}"')
        warehouse.execute(f'CREATE VIEW "{model.name}" AS {model.sql}')
    return warehouse.row_count(model.name)


def materialize_table(warehouse: Warehouse, model: Model, full_refresh: bool = False) -> int:
    """
    Rebuild the model as a table from its SELECT.

    The SELECT is evaluated before the existing table is touched.
    """
    df = _select(warehouse, model, model.sql)
    _replace_wrong_type(warehouse, model.name, "table")
    return warehouse.write_frame(df, model.name, if_exists="replace")


def materialize_incremental(warehouse: Warehouse, model: Model, full_refresh: bool = False) -> int:
    """
    Append rows newer than the target's watermark.

    Builds the table from scratch when it does not exist yet or when
    ``full_refresh`` is set.

    Returns:
        Number of rows written by this run

    Raises:
        SchemaChangeError: If the incoming columns differ from the target's
            and the model's on_schema_change is 'fail'
    """
    _replace_wrong_type(warehouse, model.name, "table")
    if full_refresh or not warehouse.relation_exists(model.name):
        logger.info(f"Building {model.name} from scratch")
        return materialize_table(warehouse, model)

    watermark = model.watermark
    target_columns = warehouse.columns(model.name)
    if watermark not in target_columns:
        if model.on_schema_change == "fail":
            raise SchemaChangeError(model.name, target_columns, [watermark])
        logger.warning(f"{model.name} has no {watermark} column; rebuilding it")
        return materialize_table(warehouse, model)

    high_water = warehouse.scalar(f'SELECT MAX("{watermark}") FROM "{model.name}"')
    if high_water is None:
        sql = model.sql
        params = None
    else:
        sql = f'SELECT * FROM ({model.sql}) WHERE "{watermark}" > ?'
        params = (high_water,)
    incoming = _select(warehouse, model, sql, params=params)
    logger.info(f"{model.name}: {len(incoming)} rows above watermark {high_water}")

    if set(incoming.columns) != set(target_columns):
        if model.on_schema_change == "fail":
            raise SchemaChangeError(model.name, target_columns, incoming.columns)
        logger.warning(f"{model.name}: columns differ from the target; appending the shared ones")
    incoming = incoming[[c for c in target_columns if c in incoming.columns]]

    if incoming.empty:
        return 0
    return warehouse.write_frame(incoming, model.name, if_exists="append")


MATERIALIZERS: Dict[str, Callable[..., int]] = {
    "view": materialize_view,
    "table": materialize_table,
    "incremental": materialize_incremental,
}


def materialize(warehouse: Warehouse, model: Model, full_refresh: bool = False) -> int:
    return MATERIALIZERS[model.materialized](warehouse, model, full_refresh=full_refresh)
