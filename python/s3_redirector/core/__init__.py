"""S3 Redirector コアモジュール"""
from .s3_client import S3ClientManager
from .process import ProcessRunner, CommandHandle, CommandFailedError, ExitCheckedStream
from .uploader import StreamUploader, UploadResult
from .events import Signal, SignalHub
from .redirector import S3Redirector, RedirectHandle
from .task_runner import TaskRunner

__all__ = [
    'S3ClientManager',
    'ProcessRunner',
    'CommandHandle',
    'CommandFailedError',
    'ExitCheckedStream',
    'StreamUploader',
    'UploadResult',
    'Signal',
    'SignalHub',
    'S3Redirector',
    'RedirectHandle',
    'TaskRunner',
]
