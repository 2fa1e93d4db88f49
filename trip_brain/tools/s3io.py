import json
import threading
import time
from typing import Callable, Dict, Optional, Tuple

import boto3
from botocore.exceptions import ClientError

from trip_brain.tools.config import S3_BUCKET, S3_PREFIX, AWS_REGION

_MISSING_CODES = ("NoSuchKey", "404", "NotFound")


class KeyValueStore:
    """Opaque string keys with an optional TTL. Values are JSON-serialisable dicts."""

    def get(self, key: str) -> Optional[dict]:
        raise NotImplementedError

    def put(self, key: str, value: dict, ttl_seconds: Optional[float] = None) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def contains(self, key: str) -> bool:
        return self.get(key) is not None


class InMemoryKeyValueStore(KeyValueStore):
    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._data: Dict[str, Tuple[dict, Optional[float]]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[dict]:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at is not None and self._clock() >= expires_at:
                del self._data[key]
                return None
            return dict(value)

    def put(self, key: str, value: dict, ttl_seconds: Optional[float] = None) -> None:
        expires_at = self._clock() + ttl_seconds if ttl_seconds is not None else None
        with self._lock:
            self._data[key] = (dict(value), expires_at)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)


class S3KeyValueStore(KeyValueStore):
    """
    One JSON object per key under `prefix/`. Expiry is stored in the body
    (`expires_at`, unix seconds) and checked on read; an expired object reads as absent.
    """

    def __init__(self, bucket_name: str = S3_BUCKET, prefix: str = S3_PREFIX, client=None,
                 clock: Callable[[], float] = time.time):
        if not bucket_name:
            raise RuntimeError("TRIP_BRAIN_S3_BUCKET env not set")
        self.bucket_name = bucket_name
        self.prefix = prefix.strip("/")
        self._s3 = client or boto3.client("s3", region_name=AWS_REGION)
        self._clock = clock

    def _full_key(self, key: str) -> str:
        return f"{self.prefix}/{key}.json" if self.prefix else f"{key}.json"

    def get(self, key: str) -> Optional[dict]:
        try:
            obj = self._s3.get_object(Bucket=self.bucket_name, Key=self._full_key(key))
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in _MISSING_CODES:
                return None
            raise
        body = json.loads(obj["Body"].read().decode("utf-8"))
        expires_at = body.get("expires_at")
        if expires_at is not None and self._clock() >= float(expires_at):
            return None
        return body.get("value", {})

    def put(self, key: str, value: dict, ttl_seconds: Optional[float] = None) -> None:
        body = {
            "value": value,
            "expires_at": self._clock() + ttl_seconds if ttl_seconds is not None else None,
        }
        self._s3.put_object(Bucket=self.bucket_name, Key=self._full_key(key),
                            Body=json.dumps(body).encode("utf-8"), ContentType="application/json")

    def delete(self, key: str) -> None:
        self._s3.delete_object(Bucket=self.bucket_name, Key=self._full_key(key))
