"""ストリームのアップロード実行クラス"""
import io
import threading
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from functools import partial
from typing import Any, BinaryIO, Dict, Optional, Set
from urllib.parse import quote

from boto3.s3.transfer import ProgressCallbackInvoker
from botocore.exceptions import ClientError, NoCredentialsError
from s3transfer.futures import NonThreadedExecutor
from s3transfer.manager import TransferManager
from ..models.config import BucketTarget, TransferOptions
from ..utils.compression import GzipStream
from ..utils.logger import LoggerManager
from ..utils.progress import ProgressTracker
from .transfer import TransferConfigManager


# 転送スレッドがどのアップロードのために動いているか
_current = threading.local()


def _bind_upload(token: Optional[str]) -> None:
    _current.upload_token = token


class _StopOnFailureStream(io.RawIOBase):
    """転送が失敗した後はEOFを返すストリーム

    s3transfer はシーク不可の入力をEOFまで読み切ってから失敗を通知するため、
    書き続けるコマンドの出力ではアップロードが終わらなくなる。
    """

    def __init__(self, source: BinaryIO):
        super().__init__()
        self._source = source
        self.transfer = None

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return False

    def read(self, size: int = -1) -> bytes:
        transfer = self.transfer
        if transfer is not None and transfer.done():
            return b""
        return self._source.read(size)

    def readall(self) -> bytes:
        return self.read(-1)

    def readinto(self, b) -> int:
        data = self.read(len(b))
        n = len(data)
        b[:n] = data
        return n


@dataclass(frozen=True)
class UploadResult:
    """アップロード結果"""
    location: str
    etag: str
    bucket: str
    key: str


class StreamUploader:
    """読み取り可能なストリームをマルチパートでアップロード

    アップロードごとに専用スレッドで実行し、結果は Future で返す。
    成功時は UploadResult、失敗時は元の例外がそのまま設定される。

    ETag は PutObject / CompleteMultipartUpload の応答から取得する。
    転送スレッドにアップロードごとのトークンを持たせ、応答を
    そのトークンで振り分けるので、同じキーへの同時アップロードでも混ざらない。
    """

    COMPLETING_OPERATIONS = ("PutObject", "CompleteMultipartUpload")

    def __init__(self, s3_client):
        self.s3_client = s3_client
        self.logger = LoggerManager.get_logger()
        self._responses: Dict[str, Dict[str, Any]] = {}
        self._threads: Set[threading.Thread] = set()
        self._lock = threading.Lock()
        self._closed = False

        for operation in self.COMPLETING_OPERATIONS:
            s3_client.meta.events.register(
                f"after-call.s3.{operation}", self._record_response
            )

    @property
    def closed(self) -> bool:
        return self._closed

    def upload(self, stream: BinaryIO, target: BucketTarget,
               options: Optional[TransferOptions] = None,
               compress: bool = False) -> Future:
        """ストリームのアップロードを開始

        close() 後に呼ぶと RuntimeError を送出する。
        """
        options = options or TransferOptions()
        body = GzipStream(stream) if compress else stream

        future: Future = Future()
        future.set_running_or_notify_cancel()
        worker = threading.Thread(
            target=self._run,
            args=(future, body, target, options),
            name=f"s3-redirector-upload-{target.key}",
        )

        with self._lock:
            if self._closed:
                raise RuntimeError("StreamUploader is closed")
            self._threads.add(worker)

        self.logger.debug(
            f"Starting upload to {target.bucket}/{target.key} "
            f"(part_size={options.part_size}, queue_size={options.queue_size}, "
            f"compress={compress})"
        )
        worker.start()
        return future

    def _run(self, future: Future, body: BinaryIO, target: BucketTarget,
             options: TransferOptions) -> None:
        try:
            future.set_result(self._execute_upload(body, target, options))
        except BaseException as e:
            future.set_exception(e)
        finally:
            with self._lock:
                self._threads.discard(threading.current_thread())

    def _execute_upload(self, body: BinaryIO, target: BucketTarget,
                        options: TransferOptions) -> UploadResult:
        """実際のアップロード処理"""
        progress_tracker = None
        subscribers = []
        if options.enable_progress:
            progress_tracker = ProgressTracker(f"{target.bucket}/{target.key}")
            subscribers.append(ProgressCallbackInvoker(progress_tracker))

        token = uuid.uuid4().hex
        with self._lock:
            self._responses[token] = {}

        # use_threads=False の場合はこのスレッドでAPIが呼ばれる
        _bind_upload(token)
        source = _StopOnFailureStream(body)
        try:
            with self._transfer_manager(options, token) as manager:
                transfer = manager.upload(
                    source,
                    target.bucket,
                    target.key,
                    extra_args=dict(target.extra_args),
                    subscribers=subscribers,
                )
                source.transfer = transfer
                transfer.result()

        except (NoCredentialsError, ClientError) as e:
            self.logger.error(f"S3 error uploading to {target.bucket}/{target.key}: {e}")
            raise
        except Exception as e:
            self.logger.error(f"Unexpected error uploading to {target.bucket}/{target.key}: {e}")
            raise
        finally:
            _bind_upload(None)
            with self._lock:
                response = self._responses.pop(token)

        if progress_tracker:
            progress_tracker.complete()

        result = UploadResult(
            location=response.get("Location") or self._object_location(target),
            etag=response.get("ETag"),
            bucket=target.bucket,
            key=target.key,
        )
        self.logger.info(f"Successfully uploaded stream to {target.bucket}/{target.key}")
        return result

    def _transfer_manager(self, options: TransferOptions, token: str) -> TransferManager:
        config = TransferConfigManager.create_config(options)
        if options.use_threads:
            executor_cls = partial(
                ThreadPoolExecutor, initializer=_bind_upload, initargs=(token,)
            )
        else:
            executor_cls = NonThreadedExecutor
        return TransferManager(self.s3_client, config, executor_cls=executor_cls)

    def _record_response(self, parsed, **kwargs) -> None:
        """完了応答を発行元のアップロードに紐付けて保存"""
        token = getattr(_current, "upload_token", None)
        with self._lock:
            if token in self._responses:
                self._responses[token] = parsed

    def _object_location(self, target: BucketTarget) -> str:
        endpoint = self.s3_client.meta.endpoint_url.rstrip("/")
        return f"{endpoint}/{target.bucket}/{quote(target.key)}"

    def shutdown(self, wait: bool = True) -> None:
        """新規アップロードを受け付けなくし、実行中のものを待つ"""
        with self._lock:
            self._closed = True
            threads = list(self._threads)
        if wait:
            for worker in threads:
                worker.join()
