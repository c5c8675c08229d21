"""設定クラスのテスト"""
import dataclasses
import json

import pytest

from s3_redirector.models.config import (
    BucketTarget,
    Config,
    ConnectionConfig,
    RedirectTask,
    TransferOptions,
)

MIB = 1024 * 1024


def _write_config(tmp_path, data) -> str:
    path = tmp_path / "config.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


def test_config_loading(tmp_path):
    """設定ファイルの各セクションが読み込めるか確認"""
    path = _write_config(tmp_path, {
        "logging": {"level": "DEBUG"},
        "connection": {
            "endpoint_url": "https://s3.example.com",
            "access_key_id": "key",
            "secret_access_key": "secret",
            "service_instance_id": "crn:v1:instance",
        },
        "transfer": {"queue_size": 4},
        "parallel_uploads": 3,
        "redirect_tasks": [
            {"name": "dump", "command": "pg_dump", "args": ["db"],
             "bucket": "b", "key": "k", "compress": True,
             "transfer": {"part_size": 20 * MIB}},
        ],
    })

    config = Config.from_file(path)

    assert config.logging.level == "DEBUG"
    assert config.connection.endpoint_url == "https://s3.example.com"
    assert config.connection.service_instance_id == "crn:v1:instance"
    assert config.transfer.part_size == 10 * MIB
    assert config.transfer.queue_size == 4
    assert config.parallel_uploads == 3

    task = config.redirect_tasks[0]
    assert task.args == ["db"]
    assert task.compress is True
    assert task.enabled is True
    assert task.check_exit is False


def test_empty_config_uses_defaults(tmp_path):
    config = Config.from_file(_write_config(tmp_path, {}))

    assert config.transfer == TransferOptions()
    assert config.connection == ConnectionConfig()
    assert config.redirect_tasks == []
    assert config.parallel_uploads == 2


def test_missing_config_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        Config.from_file(str(tmp_path / "nope.json"))


def test_invalid_json(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(ValueError, match="Error decoding JSON"):
        Config.from_file(str(path))


@pytest.mark.parametrize("data", [
    {"transfer": {"part_size": 1024}},
    {"transfer": {"queue_size": 0}},
    {"transfer": {"chunk": 1}},
    {"parallel_uploads": 0},
    {"connection": {"access_key_id": "only-half"}},
    {"redirect_tasks": [{"name": "t", "command": "echo", "bucket": "b"}]},
    {"redirect_tasks": [{"name": "t", "command": "echo", "bucket": "b", "key": "k",
                         "transfer": {"partSize": 20 * MIB}}]},
])
def test_invalid_values(tmp_path, data):
    """不正な値は ValueError にまとめて報告される"""
    with pytest.raises(ValueError, match="Error loading configuration"):
        Config.from_file(_write_config(tmp_path, data))


def test_transfer_defaults():
    options = TransferOptions()

    assert options.part_size == 10 * MIB
    assert options.queue_size == 10


def test_override_part_size_keeps_default_queue_size():
    options = TransferOptions().with_overrides({"part_size": 20 * MIB})

    assert options.part_size == 20 * MIB
    assert options.queue_size == 10


def test_override_queue_size_keeps_default_part_size():
    options = TransferOptions().with_overrides({"queue_size": 20})

    assert options.part_size == 10 * MIB
    assert options.queue_size == 20


def test_override_nothing():
    options = TransferOptions()

    assert options.with_overrides(None) is options
    assert options.with_overrides({}) is options


def test_override_rejects_unknown_and_invalid_fields():
    with pytest.raises(ValueError, match="Unknown transfer option"):
        TransferOptions().with_overrides({"partSize": 20 * MIB})
    with pytest.raises(ValueError, match="part_size"):
        TransferOptions().with_overrides({"part_size": 1})


def test_bucket_target_validation():
    with pytest.raises(ValueError):
        BucketTarget("", "key")
    with pytest.raises(ValueError):
        BucketTarget("bucket", "")


def test_value_types_are_immutable():
    target = BucketTarget("b", "k")
    with pytest.raises(dataclasses.FrozenInstanceError):
        target.key = "other"

    options = TransferOptions()
    with pytest.raises(dataclasses.FrozenInstanceError):
        options.part_size = 20 * MIB


def test_bucket_target_extra_args_are_read_only():
    source = {"ContentType": "text/plain"}
    target = BucketTarget("b", "k", source)

    with pytest.raises(TypeError):
        target.extra_args["ContentType"] = "application/json"

    # 元の辞書を変更しても影響しない
    source["ContentEncoding"] = "gzip"
    assert dict(target.extra_args) == {"ContentType": "text/plain"}


def test_bucket_target_is_hashable():
    target = BucketTarget("b", "k", {"ContentType": "text/plain"})

    assert hash(target) == hash(BucketTarget("b", "k"))
    assert {target: "seen"}[BucketTarget("b", "k", {"ContentType": "text/plain"})] == "seen"


def test_connection_addressing_style():
    assert ConnectionConfig(addressing_style="virtual").addressing_style == "virtual"
    with pytest.raises(ValueError, match="addressing_style"):
        ConnectionConfig(addressing_style="sideways")


def test_redirect_task_target():
    task = RedirectTask(
        name="dump", command="pg_dump", bucket="b", key="k",
        extra_args={"ContentType": "application/gzip"},
    )

    assert task.target() == BucketTarget("b", "k", {"ContentType": "application/gzip"})


def test_redirect_task_requires_string_args():
    with pytest.raises(ValueError, match="args"):
        RedirectTask(name="t", command="echo", bucket="b", key="k", args=["ok", 1])
