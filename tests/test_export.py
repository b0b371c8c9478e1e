import os

import pandas as pd
from botocore.exceptions import ClientError

from movielens_pipeline import project
from movielens_pipeline.config import Profile
from movielens_pipeline.export import export_models, export_table_to_parquet, upload_exports, upload_file_to_s3


class FakeS3Client:
    def __init__(self, fail=False):
        self.fail = fail
        self.uploads = []

    def upload_file(self, local_file, bucket, key):
        if self.fail:
            raise ClientError({"Error": {"Code": "AccessDenied", "Message": "denied"}}, "PutObject")
        self.uploads.append((local_file, bucket, key))


def make_profile(tmp_path, db_path):
    return Profile(target="dev", db_path=db_path, export_dir=str(tmp_path / "export"))


def test_exports_only_dimension_and_fact_tables(built_warehouse, tmp_path, db_path):
    exported = export_models(built_warehouse, project.MODELS, make_profile(tmp_path, db_path))

    names = sorted(os.path.basename(p).split("_", 2)[-1] for p in exported)
    assert names == sorted(f"{m.name}.parquet" for m in project.MODELS if m.layer != "staging")
    fct = [p for p in exported if p.endswith("_fct_ratings.parquet")][0]
    assert len(pd.read_parquet(fct)) == 4


def test_export_uploads_under_prefix_and_target(built_warehouse, tmp_path, db_path):
    client = FakeS3Client()
    models = project.load_graph().select(["layer:dimension"])

    profile = make_profile(tmp_path, db_path)
    exported = export_models(built_warehouse, models, profile)

    assert upload_exports(exported, profile, "movielens-marts", s3_prefix="/exports/", s3_client=client)

    assert len(client.uploads) == len(exported) == 3
    for local_file, bucket, key in client.uploads:
        assert bucket == "movielens-marts"
        assert key == f"exports/dev/{os.path.basename(local_file)}"


def test_missing_and_empty_tables_are_skipped(built_warehouse, tmp_path):
    built_warehouse.execute("DELETE FROM dim_users")
    built_warehouse.conn.commit()

    assert export_table_to_parquet(built_warehouse, "dim_users", str(tmp_path / "u.parquet")) is None
    assert export_table_to_parquet(built_warehouse, "dim_reviews", str(tmp_path / "r.parquet")) is None
    assert not os.path.exists(tmp_path / "u.parquet")


def test_upload_failure_is_reported(tmp_path):
    local = tmp_path / "x.parquet"
    local.write_bytes(b"data")

    assert upload_file_to_s3(FakeS3Client(fail=True), str(local), "bucket", "x.parquet") is False
    assert upload_file_to_s3(FakeS3Client(), str(local), "bucket", "x.parquet") is True


def test_denied_uploads_are_reported(built_warehouse, tmp_path, db_path):
    profile = make_profile(tmp_path, db_path)
    exported = export_models(built_warehouse, project.load_graph().select(["dim_users"]), profile)

    assert upload_exports(exported, profile, "movielens-marts", s3_client=FakeS3Client(fail=True)) is False
