#!/usr/bin/env python3
"""
Command-line entry point for the MovieLens pipeline.

    movielens seed --data-dir data/raw
    movielens run --select +fct_ratings
    movielens test --select layer:dimension
    movielens build --full-refresh
    movielens export --s3-bucket my-bucket
"""

import sys
import logging
import argparse
from typing import List, Optional

from movielens_pipeline import __version__, diagnostics, project
from movielens_pipeline.config import load_profile, Profile
from movielens_pipeline.errors import PipelineError
from movielens_pipeline.export import export_models, upload_exports
from movielens_pipeline.runner import data_tests_passed, run_data_tests, run_models, run_succeeded
from movielens_pipeline.sources import LOAD_MODES, load_sources
from movielens_pipeline.warehouse import Warehouse
from movielens_pipeline.utils.logger import setup_logger

LOGGER_NAME = "movielens_pipeline"

logger = logging.getLogger(__name__)


def _add_selection_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('-s', '--select', nargs='+', help='Models to include (name, +name, name+, tag:x, layer:x)')
    parser.add_argument('--exclude', nargs='+', help='Models to leave out, same syntax as --select')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='movielens',
        description='Build the MovieLens staging, dimension and fact layers',
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('--target', type=str, help='Target name (default: MOVIELENS_TARGET or dev)')
    parser.add_argument('--db', type=str, help='Path to the SQLite warehouse file')
    parser.add_argument('--log-level', type=str, default='INFO', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'])
    subparsers = parser.add_subparsers(dest='command', required=True)

    seed = subparsers.add_parser('seed', help='Load the MovieLens CSV files into the raw tables')
    seed.add_argument('--data-dir', type=str, help='Directory holding the CSV files')
    seed.add_argument('--mode', choices=LOAD_MODES, default='replace', help='Replace or append to the raw tables')
    seed.add_argument('--tables', nargs='+', help='Only load these raw tables (e.g. raw_ratings)')

    run = subparsers.add_parser('run', help='Build the selected models')
    _add_selection_args(run)
    run.add_argument('--full-refresh', action='store_true', help='Rebuild incremental models from scratch')

    test = subparsers.add_parser('test', help='Run data tests on the selected models')
    _add_selection_args(test)

    build = subparsers.add_parser('build', help='Run, then test, the selected models')
    _add_selection_args(build)
    build.add_argument('--full-refresh', action='store_true', help='Rebuild incremental models from scratch')

    ls = subparsers.add_parser('ls', help='List the selected models')
    _add_selection_args(ls)

    subparsers.add_parser('debug', help='Check the profile, connection and raw tables')
    subparsers.add_parser('deps', help='Check that runtime packages are installed')

    export = subparsers.add_parser('export', help='Export dimension and fact tables to Parquet')
    _add_selection_args(export)
    export.add_argument('--export-dir', type=str, help='Directory for exported files')
    export.add_argument('--s3-bucket', type=str, help='Also upload the files to this bucket')
    export.add_argument('--s3-prefix', type=str, default='', help='Key prefix inside the bucket')

    return parser


def cmd_seed(args, profile: Profile, warehouse: Warehouse) -> bool:
    data_dir = args.data_dir or profile.raw_data_dir
    logger.info(f"Seeding raw tables from: {data_dir}")
    return load_sources(warehouse, data_dir, mode=args.mode, tables=args.tables)


def cmd_run(args, profile: Profile, warehouse: Warehouse) -> bool:
    graph = project.load_graph()
    models = graph.select(args.select, args.exclude)
    results = run_models(warehouse, models, graph=graph, full_refresh=args.full_refresh)
    return run_succeeded(results)


def cmd_test(args, profile: Profile, warehouse: Warehouse) -> bool:
    models = project.load_graph().select(args.select, args.exclude)
    return data_tests_passed(run_data_tests(warehouse, models))


def cmd_build(args, profile: Profile, warehouse: Warehouse) -> bool:
    if not cmd_run(args, profile, warehouse):
        logger.error("Model run failed; skipping data tests.")
        return False
    return cmd_test(args, profile, warehouse)


def cmd_ls(args, profile: Profile, warehouse: Warehouse) -> bool:
    for model in project.load_graph().select(args.select, args.exclude):
        upstream = ", ".join(model.depends_on) or "-"
        line = f"{model.name:<20} {model.layer:<10} {model.materialized:<12} <- {upstream}"
        if model.description:
            line += f"  # {model.description.splitlines()[0]}"
        print(line)
    return True


def cmd_debug(args, profile: Profile, warehouse: Warehouse) -> bool:
    checks = diagnostics.debug(profile, warehouse)
    ok = all(passed for _, passed, _ in checks)
    print("All checks passed!" if ok else "Some checks failed; see the log for details.")
    return ok


def cmd_deps(args, profile: Profile, warehouse: Warehouse) -> bool:
    return diagnostics.deps()


def cmd_export(args, profile: Profile, warehouse: Warehouse) -> bool:
    models = project.load_graph().select(args.select, args.exclude)
    exported = export_models(warehouse, models, profile, output_dir=args.export_dir)
    for path in exported:
        print(path)
    if not exported:
        return False
    if args.s3_bucket:
        return upload_exports(exported, profile, args.s3_bucket, s3_prefix=args.s3_prefix)
    return True


COMMANDS = {
    'seed': cmd_seed,
    'run': cmd_run,
    'test': cmd_test,
    'build': cmd_build,
    'ls': cmd_ls,
    'debug': cmd_debug,
    'deps': cmd_deps,
    'export': cmd_export,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Parse arguments, run one command and return the process exit code."""
    args = build_parser().parse_args(argv)
    profile = load_profile(target=args.target).with_overrides(db_path=args.db)
    setup_logger(
        LOGGER_NAME,
        log_file=f"movielens_{profile.target}.log",
        level=getattr(logging, args.log_level),
        log_dir=profile.log_dir,
    )
    logger.debug(f"Using profile: target={profile.target} db_path={profile.db_path}")

    with Warehouse(profile.db_path) as warehouse:
        try:
            ok = COMMANDS[args.command](args, profile, warehouse)
        except PipelineError as e:
            logger.error(str(e))
            return 2
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
