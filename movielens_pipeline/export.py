"""
Exports dimension and fact tables to Parquet and, optionally, to S3.
"""

import os
import logging
import datetime
from typing import List, Optional, Sequence

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from movielens_pipeline.config import Profile
from movielens_pipeline.models import Model
from movielens_pipeline.warehouse import Warehouse

logger = logging.getLogger(__name__)

EXPORTABLE_LAYERS = ("dimension", "fact")


def export_table_to_parquet(warehouse: Warehouse, table_name: str, output_file: str) -> Optional[str]:
    """
    Write one table to a Parquet file.

    Returns:
        The output path, or None when the table is missing or empty
    """
    if not warehouse.relation_exists(table_name):
        logger.warning(f"Table '{table_name}' does not exist. Run the models before exporting.")
        return None

    df = warehouse.read_sql(f'SELECT * FROM "{table_name}"')
    if df.empty:
        logger.warning(f"Table '{table_name}' is empty. No data to export.")
        return None

    df.to_parquet(output_file, index=False)
    logger.info(f"Exported {len(df)} records from table '{table_name}' to {output_file}")
    return output_file


def make_s3_client(profile: Profile):
    return boto3.client(
        's3',
        aws_access_key_id=profile.aws_access_key_id,
        aws_secret_access_key=profile.aws_secret_access_key,
        region_name=profile.aws_region,
    )


def upload_file_to_s3(s3_client, local_file: str, bucket: str, s3_key: str) -> bool:
    """Upload a local file to s3://bucket/s3_key."""
    try:
        s3_client.upload_file(local_file, bucket, s3_key)
        logger.info(f"Uploaded {local_file} to s3://{bucket}/{s3_key}")
        return True
    except (BotoCoreError, ClientError) as e:
        logger.error(f"Failed to upload {local_file} to s3://{bucket}/{s3_key}: {e}")
        return False


def export_models(
    warehouse: Warehouse,
    models: Sequence[Model],
    profile: Profile,
    output_dir: Optional[str] = None,
) -> List[str]:
    """
    Export the dimension and fact models among ``models``.

    Staging views are skipped. Files are named ``<timestamp>_<model>.parquet``.

    Returns:
        Paths of the files written
    """
    output_dir = output_dir or profile.export_dir
    os.makedirs(output_dir, exist_ok=True)
    ts = datetime.datetime.now().strftime("%Y-%m-%d_%H-%M-%S")

    exported = []
    for model in models:
        if model.layer not in EXPORTABLE_LAYERS:
            continue
        output_file = os.path.join(output_dir, f"{ts}_{model.name}.parquet")
        path = export_table_to_parquet(warehouse, model.name, output_file)
        if path:
            exported.append(path)
    return exported


def upload_exports(
    paths: Sequence[str],
    profile: Profile,
    s3_bucket: str,
    s3_prefix: str = "",
    s3_client=None,
) -> bool:
    """
    Upload exported files under ``<s3_prefix>/<target>/`` in the bucket.

    Returns:
        True only when every file was uploaded
    """
    s3_client = s3_client or make_s3_client(profile)
    key_prefix = "/".join(part for part in (s3_prefix.strip("/"), profile.target) if part)

    failed = [
        path for path in paths
        if not upload_file_to_s3(s3_client, path, s3_bucket, f"{key_prefix}/{os.path.basename(path)}")
    ]
    if failed:
        logger.error(f"{len(failed)} of {len(paths)} file(s) failed to upload to s3://{s3_bucket}")
    return not failed
