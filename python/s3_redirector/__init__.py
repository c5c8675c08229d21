"""S3 Redirector パッケージ

コマンドの標準出力を、ディスクやメモリに溜めずにS3互換ストレージへ
マルチパートアップロードする。
"""
from .models.config import (
    BucketTarget,
    Config,
    ConnectionConfig,
    LoggingConfig,
    RedirectTask,
    TransferOptions,
)
from .core import (
    CommandFailedError,
    CommandHandle,
    RedirectHandle,
    S3Redirector,
    Signal,
    TaskRunner,
    UploadResult,
)


__all__ = [
    'S3Redirector',
    'Signal',
    'BucketTarget',
    'TransferOptions',
    'ConnectionConfig',
    'LoggingConfig',
    'RedirectTask',
    'Config',
    'CommandHandle',
    'CommandFailedError',
    'RedirectHandle',
    'UploadResult',
    'TaskRunner',
]
