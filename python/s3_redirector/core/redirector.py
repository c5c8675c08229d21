"""コマンド出力をオブジェクトストレージへ転送する"""
import threading
from concurrent.futures import Future
from dataclasses import dataclass
from typing import BinaryIO, Optional, Sequence

from ..models.config import BucketTarget, Config, ConnectionConfig, TransferOptions
from ..utils.logger import LoggerManager
from .events import Signal, SignalHub
from .process import CommandHandle, ExitCheckedStream, ProcessRunner
from .s3_client import S3ClientManager
from .uploader import StreamUploader


@dataclass
class RedirectHandle:
    """run_command_and_upload の戻り値

    起動に失敗した場合、アップロードは開始されず upload は None になる。
    """
    command: CommandHandle
    upload: Optional[Future]


class S3Redirector:
    """コマンドを実行し、その標準出力をそのままバケットへアップロードする

    発生するシグナル:
        command_exit        -- コマンド終了（終了コード）
        command_init_error  -- コマンド起動失敗（OSError）
        upload_finish       -- アップロード完了（UploadResult）
        upload_error        -- アップロード失敗（元の例外）
    """

    def __init__(self, connection: ConnectionConfig, s3_client=None):
        self.connection = connection
        self.logger = LoggerManager.get_logger()

        if s3_client is None:
            s3_client = S3ClientManager(connection).get_client()
        self.s3_client = s3_client

        self.signals = SignalHub()
        self.process_runner = ProcessRunner()
        self.uploader = StreamUploader(s3_client)
        # 起動中にcloseされてコマンドだけが残ることのないよう排他する
        self._lock = threading.RLock()

    @classmethod
    def from_config(cls, config: Config, s3_client=None) -> 'S3Redirector':
        return cls(config.connection, s3_client=s3_client)

    def on(self, signal: Signal, listener) -> 'S3Redirector':
        """シグナルのリスナーを登録"""
        self.signals.on(signal, listener)
        return self

    def run_command_and_upload(self, command: str, args: Sequence[str],
                               target: BucketTarget,
                               options: Optional[TransferOptions] = None,
                               compress: bool = False,
                               check_exit: bool = False) -> RedirectHandle:
        """コマンドを起動し、標準出力をアップロードする

        アップロードはプロセスの終了を待たず、出力が出始めた時点から並行して進む。
        check_exit が真なら、0以外の終了コードでアップロードを失敗させる。
        close() 後に呼ぶとコマンドを起動せずに RuntimeError を送出する。
        """
        with self._lock:
            self._ensure_open()
            handle = self.process_runner.run_and_pipe(command, args)
            self.signals.forward(handle.exit_future, Signal.COMMAND_EXIT, Signal.COMMAND_INIT_ERROR)

            if not handle.spawned:
                return RedirectHandle(handle, None)

            stream = ExitCheckedStream(handle) if check_exit else handle.stdout
            upload = self.upload_stream(stream, target, options, compress)

        # アップロード失敗後もプロセスが書き込みで止まらないようパイプを閉じる
        upload.add_done_callback(lambda _: handle.stdout.close())
        return RedirectHandle(handle, upload)

    def upload_stream(self, stream: BinaryIO, target: BucketTarget,
                      options: Optional[TransferOptions] = None,
                      compress: bool = False) -> Future:
        """任意のストリームをアップロード"""
        with self._lock:
            self._ensure_open()
            future = self.uploader.upload(stream, target, options, compress)
        self.signals.forward(future, Signal.UPLOAD_FINISH, Signal.UPLOAD_ERROR)
        return future

    def _ensure_open(self) -> None:
        if self.uploader.closed:
            raise RuntimeError("S3Redirector is closed")

    def close(self, wait: bool = True) -> None:
        """新規の実行を止め、wait が真なら実行中のアップロードを待つ"""
        with self._lock:
            self.uploader.shutdown(wait=False)
        if wait:
            self.uploader.shutdown(wait=True)

    def __enter__(self) -> 'S3Redirector':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
