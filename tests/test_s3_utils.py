import io
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from quizmark.config import S3Config
from quizmark.exceptions import StorageError
from quizmark.utils.s3_utils import BlobStore, is_s3_url, parse_s3_url, resolve_blob


@pytest.mark.parametrize(
    "url, expected",
    [
        ("s3://quizzes/uploads/q1.pdf", ("quizzes", "uploads/q1.pdf")),
        ("https://quizzes.s3.ap-south-1.amazonaws.com/uploads/q%201.pdf", ("quizzes", "uploads/q 1.pdf")),
        ("https://s3.us-east-1.amazonaws.com/quizzes/uploads/q1.pdf", ("quizzes", "uploads/q1.pdf")),
    ],
)
def test_parse_s3_url(url, expected):
    assert is_s3_url(url)
    assert parse_s3_url(url) == expected


def test_parse_rejects_other_urls():
    with pytest.raises(ValueError):
        parse_s3_url("https://example.com/file.pdf")


def test_resolve_bare_key_uses_default_bucket():
    assert resolve_blob("/uploads/q1.pdf", "quizzes") == ("quizzes", "uploads/q1.pdf")
    assert resolve_blob("s3://other/k.pdf", "quizzes") == ("other", "k.pdf")
    with pytest.raises(ValueError):
        resolve_blob("  ", "quizzes")


def make_store(**overrides):
    config = S3Config(region="ap-south-1", public_base_url="")
    for name, value in overrides.items():
        setattr(config, name, value)
    client = MagicMock()
    return BlobStore(config, client=client), client


def test_upload_returns_public_url():
    store, client = make_store()
    url = store.upload_bytes("graded", "sbaw/q1 pack.pdf", b"%PDF", "application/pdf")

    client.put_object.assert_called_once_with(
        Bucket="graded", Key="sbaw/q1 pack.pdf", Body=b"%PDF", ContentType="application/pdf"
    )
    assert url == "https://graded.s3.ap-south-1.amazonaws.com/sbaw/q1%20pack.pdf"


def test_public_url_with_base():
    store, _ = make_store(public_base_url="https://cdn.example/")
    assert store.public_url("results", "csv/q1.csv") == "https://cdn.example/results/csv/q1.csv"


def test_download_reads_body():
    store, client = make_store()
    client.get_object.return_value = {"Body": io.BytesIO(b"data")}
    assert store.download_bytes("quizzes", "k") == b"data"


def test_client_errors_become_storage_errors():
    store, client = make_store()
    client.get_object.side_effect = ClientError({"Error": {"Code": "NoSuchKey", "Message": "gone"}}, "GetObject")
    with pytest.raises(StorageError) as exc_info:
        store.download_bytes("quizzes", "missing.pdf")
    assert exc_info.value.details["operation"] == "download"
