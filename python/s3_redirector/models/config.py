"""設定管理用のデータクラス"""
from dataclasses import dataclass, field, fields, replace
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional
import json
import os


MIB = 1024 * 1024

DEFAULT_PART_SIZE = 10 * MIB  # 10MB
DEFAULT_QUEUE_SIZE = 10
MIN_PART_SIZE = 5 * MIB  # S3の最小パートサイズ


@dataclass
class LoggingConfig:
    """ロギング設定"""
    level: str = "INFO"
    format: str = "%(asctime)s - %(levelname)s - %(message)s"
    file: Optional[str] = None


@dataclass(frozen=True)
class ConnectionConfig:
    """オブジェクトストレージへの接続設定

    認証情報を省略した場合はboto3のデフォルトの認証チェーンに任せる。
    service_instance_id は IBM Cloud Object Storage 用で、
    ibm-service-instance-id ヘッダとして全リクエストに付与される。
    """
    endpoint_url: Optional[str] = None
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    service_instance_id: Optional[str] = None
    region: Optional[str] = None
    profile: Optional[str] = None
    addressing_style: Optional[str] = None

    def __post_init__(self):
        if self.addressing_style not in (None, "auto", "path", "virtual"):
            raise ValueError(
                f"Invalid addressing_style: {self.addressing_style}. "
                "Expected one of: auto, path, virtual"
            )
        # キーペアは片方だけでは使えない
        if bool(self.access_key_id) != bool(self.secret_access_key):
            raise ValueError(
                "access_key_id and secret_access_key must be given together"
            )


@dataclass(frozen=True)
class TransferOptions:
    """マルチパート転送オプション"""
    part_size: int = DEFAULT_PART_SIZE
    queue_size: int = DEFAULT_QUEUE_SIZE
    max_io_queue: int = 100
    io_chunksize: int = 262144  # 256KB
    use_threads: bool = True
    enable_progress: bool = False

    def __post_init__(self):
        """転送オプションのバリデーション"""
        if self.part_size < MIN_PART_SIZE:
            raise ValueError(
                f"Invalid part_size: {self.part_size}. "
                f"Must be at least {MIN_PART_SIZE} bytes (5MB)"
            )
        if self.queue_size < 1:
            raise ValueError(
                f"Invalid queue_size: {self.queue_size}. Must be at least 1"
            )
        if self.io_chunksize < 1 or self.max_io_queue < 1:
            raise ValueError("io_chunksize and max_io_queue must be positive")

    def with_overrides(self, overrides: Optional[Mapping[str, Any]]) -> 'TransferOptions':
        """指定されたフィールドだけを上書きした新しいオプションを返す"""
        if not overrides:
            return self

        known = {f.name for f in fields(self)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise ValueError(f"Unknown transfer option(s): {', '.join(unknown)}")

        return replace(self, **overrides)


@dataclass(frozen=True)
class BucketTarget:
    """アップロード先のバケットとキー"""
    bucket: str
    key: str
    # ContentType, Metadata などアップロードの ExtraArgs にそのまま渡す（読み取り専用）
    extra_args: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self):
        object.__setattr__(self, "extra_args", MappingProxyType(dict(self.extra_args)))
        if not isinstance(self.bucket, str) or not self.bucket.strip():
            raise ValueError("bucket cannot be empty")
        if not isinstance(self.key, str) or not self.key:
            raise ValueError("key cannot be empty")


@dataclass
class RedirectTask:
    """コマンド出力をオブジェクトに転送する個別タスク"""
    # 必須フィールド（デフォルト値なし）を先に
    name: str
    command: str
    bucket: str
    key: str

    # オプションフィールド（デフォルト値あり）を後に
    args: List[str] = field(default_factory=list)
    description: Optional[str] = None
    enabled: bool = True
    compress: bool = False
    check_exit: bool = False
    extra_args: Dict[str, Any] = field(default_factory=dict)
    transfer: Dict[str, Any] = field(default_factory=dict)  # タスク単位の上書き

    def __post_init__(self):
        if not self.command:
            raise ValueError(f"command cannot be empty: {self.name}")
        if not all(isinstance(arg, str) for arg in self.args):
            raise ValueError(f"args must be a list of strings: {self.name}")

    def target(self) -> BucketTarget:
        return BucketTarget(self.bucket, self.key, dict(self.extra_args))


@dataclass
class Config:
    """メイン設定クラス"""
    logging: LoggingConfig
    connection: ConnectionConfig
    transfer: TransferOptions
    redirect_tasks: List[RedirectTask]
    parallel_uploads: int = 2

    @classmethod
    def from_file(cls, config_path: str) -> 'Config':
        """設定ファイルから読み込み"""
        if not os.path.exists(config_path):
            raise FileNotFoundError(f"Configuration file {config_path} not found.")

        try:
            with open(config_path, "r", encoding="utf-8") as file:
                data = json.load(file)
        except json.JSONDecodeError as e:
            raise ValueError(f"Error decoding JSON from {config_path}: {e}") from e

        try:
            return cls.from_dict(data)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Error loading configuration: {e}") from e

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Config':
        # 各セクションをパース
        logging_config = LoggingConfig(**data.get("logging", {}))
        connection = ConnectionConfig(**data.get("connection", {}))
        transfer = TransferOptions(**data.get("transfer", {}))

        redirect_tasks = [
            RedirectTask(**task) for task in data.get("redirect_tasks", [])
        ]
        # タスク単位の上書きもここで検証しておく
        for task in redirect_tasks:
            transfer.with_overrides(task.transfer)

        parallel_uploads = data.get("parallel_uploads", 2)
        if not isinstance(parallel_uploads, int) or parallel_uploads < 1:
            raise ValueError(f"Invalid parallel_uploads: {parallel_uploads}")

        return cls(
            logging=logging_config,
            connection=connection,
            transfer=transfer,
            redirect_tasks=redirect_tasks,
            parallel_uploads=parallel_uploads,
        )
