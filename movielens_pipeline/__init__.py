"""
MovieLens Dimensional Pipeline Package

Modules:
    config.py           - Connection profile read from the environment.
    warehouse.py        - SQLite connection and relation helpers.
    sources.py          - Loads the MovieLens CSV files into the raw tables.
    staging.py          - Staging views that rename and type the raw columns.
    dimensions.py       - Movie, user and genome tag dimensions.
    facts.py            - Rating and genome score facts.
    materializations.py - View, table and incremental materializations.
    data_tests.py       - Uniqueness, referential and range assertions.
    runner.py           - Builds selected models and runs their data tests.
    export.py           - Parquet export and S3 upload of dimension and fact tables.
    diagnostics.py      - Checks behind the debug and deps commands.
    run_pipeline.py     - Command-line entry point.
    utils/logger.py     - File and console logging setup.

Version: 1.0.0
"""

__version__ = "1.0.0"
