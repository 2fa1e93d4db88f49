import io
import json

import boto3
import pytest
from botocore.exceptions import ClientError
from botocore.response import StreamingBody
from botocore.stub import ANY, Stubber

from trip_brain.tools.s3io import InMemoryKeyValueStore, S3KeyValueStore

BUCKET = "trip-brain-test"


def _body(payload: dict) -> StreamingBody:
    raw = json.dumps(payload).encode("utf-8")
    return StreamingBody(io.BytesIO(raw), len(raw))


@pytest.fixture
def s3():
    client = boto3.client("s3", region_name="us-east-1",
                          aws_access_key_id="testing", aws_secret_access_key="testing")
    with Stubber(client) as stubber:
        yield client, stubber
        stubber.assert_no_pending_responses()


def test_in_memory_ttl(clock):
    store = InMemoryKeyValueStore(clock)
    store.put("suggested/Paris-janou", {"at": 1}, ttl_seconds=60)
    store.put("dismissed/heat", {"at": 1})
    assert store.get("suggested/Paris-janou") == {"at": 1}
    clock.advance(60)
    assert store.get("suggested/Paris-janou") is None
    assert store.contains("dismissed/heat")
    store.delete("dismissed/heat")
    assert not store.contains("dismissed/heat")


def test_s3_put_writes_json_with_expiry(s3, clock):
    client, stubber = s3
    stubber.add_response("put_object", {}, {
        "Bucket": BUCKET,
        "Key": "companion/triggers/suggested/Paris-janou.json",
        "Body": ANY,
        "ContentType": "application/json",
    })
    store = S3KeyValueStore(bucket_name=BUCKET, client=client, clock=clock)
    store.put("suggested/Paris-janou", {"suggested_at": 1}, ttl_seconds=300)


def test_s3_get_roundtrip_and_expiry(s3, clock):
    client, stubber = s3
    key = {"Bucket": BUCKET, "Key": "companion/triggers/dismissed/heat_warning.json"}
    stubber.add_response("get_object", {"Body": _body({"value": {"dismissed_at": 5}, "expires_at": None})}, key)
    stubber.add_response("get_object", {"Body": _body({"value": {"x": 1}, "expires_at": clock() - 1})}, key)
    store = S3KeyValueStore(bucket_name=BUCKET, client=client, clock=clock)
    assert store.get("dismissed/heat_warning") == {"dismissed_at": 5}
    assert store.get("dismissed/heat_warning") is None


def test_s3_missing_key_reads_as_absent(s3, clock):
    client, stubber = s3
    stubber.add_client_error("get_object", service_error_code="NoSuchKey", http_status_code=404)
    store = S3KeyValueStore(bucket_name=BUCKET, client=client, clock=clock)
    assert not store.contains("dismissed/rain_incoming")


def test_s3_other_errors_propagate(s3, clock):
    client, stubber = s3
    stubber.add_client_error("get_object", service_error_code="AccessDenied", http_status_code=403)
    store = S3KeyValueStore(bucket_name=BUCKET, client=client, clock=clock)
    with pytest.raises(ClientError):
        store.get("dismissed/rain_incoming")


def test_s3_delete(s3, clock):
    client, stubber = s3
    stubber.add_response("delete_object", {}, {"Bucket": BUCKET, "Key": "custom/dismissed/x.json"})
    S3KeyValueStore(bucket_name=BUCKET, prefix="/custom/", client=client, clock=clock).delete("dismissed/x")


def test_s3_requires_bucket():
    with pytest.raises(RuntimeError):
        S3KeyValueStore(bucket_name="", client=object())
