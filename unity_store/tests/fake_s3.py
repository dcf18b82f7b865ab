"""fake_s3.py — In-memory stand-in for the boto3 S3 client used by the tests.

Implements only the calls the store makes and raises real botocore
``ClientError``s so the adapter's error-code matching is exercised.
"""
from __future__ import annotations

import datetime as dt
import io
import json
import threading
import time
import unittest
from typing import Any, Dict, Optional, Set
from unittest.mock import patch

from botocore.exceptions import ClientError

from unity_store import config

__all__ = ["FakeS3", "FakeS3TestCase"]


def _client_error(code: str, operation: str, message: str = "") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message or code}}, operation)


class FakeS3:
    def __init__(self, read_delay: float = 0.0):
        self.objects: Dict[str, Dict[str, Any]] = {}
        self.calls: list = []
        self.read_delay = read_delay
        self.fail_reads: Set[str] = set()
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()
        self._clock = dt.datetime(2026, 1, 1, tzinfo=dt.timezone.utc)

    def put_raw(self, key: str, body: bytes, last_modified: Optional[dt.datetime] = None) -> None:
        self.objects[key] = {
            "Body": body,
            "ContentType": "application/octet-stream",
            "LastModified": last_modified or self._tick(),
        }

    def _tick(self) -> dt.datetime:
        self._clock = self._clock + dt.timedelta(seconds=1)
        return self._clock

    def get_object(self, Bucket: str, Key: str) -> Dict[str, Any]:
        self.calls.append(("get_object", Key))
        with self._lock:
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.read_delay:
                time.sleep(self.read_delay)
            if Key in self.fail_reads:
                raise _client_error("AccessDenied", "GetObject", "Access Denied")
            obj = self.objects.get(Key)
            if obj is None:
                raise _client_error("NoSuchKey", "GetObject", "The specified key does not exist.")
            return {"Body": io.BytesIO(obj["Body"]), "ContentType": obj["ContentType"]}
        finally:
            with self._lock:
                self.in_flight -= 1

    def put_object(self, Bucket: str, Key: str, Body: bytes, ContentType: str = "") -> Dict[str, Any]:
        self.calls.append(("put_object", Key))
        if isinstance(Body, str):
            Body = Body.encode("utf-8")
        self.objects[Key] = {"Body": Body, "ContentType": ContentType, "LastModified": self._tick()}
        return {}

    def delete_object(self, Bucket: str, Key: str) -> Dict[str, Any]:
        self.calls.append(("delete_object", Key))
        self.objects.pop(Key, None)
        return {}

    def list_objects_v2(
        self,
        Bucket: str,
        Prefix: str = "",
        MaxKeys: int = 1000,
        Delimiter: Optional[str] = None,
    ) -> Dict[str, Any]:
        self.calls.append(("list_objects_v2", Prefix))
        contents = []
        common: list = []
        for key in sorted(self.objects):
            if not key.startswith(Prefix):
                continue
            rest = key[len(Prefix):]
            if Delimiter and Delimiter in rest:
                child = Prefix + rest.split(Delimiter, 1)[0] + Delimiter
                if child not in common:
                    common.append(child)
                continue
            obj = self.objects[key]
            contents.append({"Key": key, "Size": len(obj["Body"]), "LastModified": obj["LastModified"]})
        truncated = len(contents) > MaxKeys
        resp: Dict[str, Any] = {"Contents": contents[:MaxKeys], "IsTruncated": truncated, "KeyCount": min(len(contents), MaxKeys)}
        if Delimiter:
            resp["CommonPrefixes"] = [{"Prefix": p} for p in common]
        return resp


class FakeS3TestCase(unittest.TestCase):
    """Points the store adapter at a fresh ``FakeS3`` with an empty global prefix."""

    read_delay = 0.0

    def setUp(self):
        super().setUp()
        self.s3 = FakeS3(read_delay=self.read_delay)
        for patcher in (
            patch.object(config, "S3_BUCKET", "unity-test"),
            patch.object(config, "S3_PREFIX", ""),
            patch("unity_store.object_store._get_s3", return_value=self.s3),
        ):
            patcher.start()
            self.addCleanup(patcher.stop)

    def stored_json(self, key: str) -> Dict[str, Any]:
        return json.loads(self.s3.objects[key]["Body"].decode("utf-8"))
