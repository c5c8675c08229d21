"""テスト共通のフィクスチャ"""
import threading
from collections import defaultdict

import boto3
import pytest
from moto import mock_aws

from s3_redirector import ConnectionConfig, S3Redirector, Signal
from s3_redirector.utils.logger import LoggerManager

BUCKET = "b"


class SignalRecorder:
    """リダイレクタのシグナルを記録し、到着を待てるようにする"""

    def __init__(self, redirector: S3Redirector):
        self.received = defaultdict(list)
        self._cond = threading.Condition()
        for signal in Signal:
            redirector.on(signal, self._recorder(signal))

    def _recorder(self, signal):
        def record(payload):
            with self._cond:
                self.received[signal].append(payload)
                self._cond.notify_all()
        return record

    def wait_for(self, signal, timeout: float = 30):
        with self._cond:
            arrived = self._cond.wait_for(lambda: self.received[signal], timeout)
        assert arrived, f"signal {signal.value} was not emitted"
        return self.received[signal][0]


def stored_object(s3_client, key: str, bucket: str = BUCKET) -> bytes:
    return s3_client.get_object(Bucket=bucket, Key=key)["Body"].read()


def object_exists(s3_client, key: str, bucket: str = BUCKET) -> bool:
    listing = s3_client.list_objects_v2(Bucket=bucket, Prefix=key)
    return any(item["Key"] == key for item in listing.get("Contents", []))


@pytest.fixture(autouse=True)
def reset_logger():
    LoggerManager.reset()
    yield
    LoggerManager.reset()


@pytest.fixture
def aws_credentials(monkeypatch):
    """motoが本物のAWSに接続しないようダミーの認証情報を設定"""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")


@pytest.fixture
def s3_client(aws_credentials):
    with mock_aws():
        client = boto3.client("s3", region_name="us-east-1")
        client.create_bucket(Bucket=BUCKET)
        yield client


@pytest.fixture
def redirector(s3_client):
    with S3Redirector(ConnectionConfig(), s3_client=s3_client) as r:
        yield r


@pytest.fixture
def recorder(redirector):
    return SignalRecorder(redirector)
