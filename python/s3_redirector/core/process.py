"""子プロセスの起動と標準出力の受け渡し"""
import io
import subprocess
import threading
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import BinaryIO, Optional, Sequence, Tuple

from ..utils.logger import LoggerManager


class CommandFailedError(Exception):
    """コマンドが0以外の終了コードで終了した"""

    def __init__(self, command: str, returncode: int):
        self.command = command
        self.returncode = returncode
        super().__init__(f"Command '{command}' exited with status {returncode}")


@dataclass
class CommandHandle:
    """起動したコマンドのハンドル

    exit_future は終了時に終了コードを、起動失敗時は元の OSError を持つ。
    どちらか一方だけが必ず一度設定される。
    """
    command: str
    args: Tuple[str, ...]
    stdout: BinaryIO
    exit_future: Future
    process: Optional[subprocess.Popen] = field(default=None, repr=False)

    @property
    def spawned(self) -> bool:
        return self.process is not None

    @property
    def pid(self) -> Optional[int]:
        return self.process.pid if self.process else None

    def wait(self, timeout: Optional[float] = None) -> int:
        """終了を待って終了コードを返す（起動失敗時は OSError を送出）"""
        return self.exit_future.result(timeout)

    def terminate(self) -> None:
        if self.process is not None and self.process.poll() is None:
            self.process.terminate()


class ProcessRunner:
    """コマンドを起動して標準出力をストリームとして渡す"""

    def __init__(self):
        self.logger = LoggerManager.get_logger()

    def run_and_pipe(self, command: str, args: Sequence[str] = ()) -> CommandHandle:
        """コマンドを起動し、終了を待たずにハンドルを返す

        引数はシェルを介さずそのまま渡す。起動に失敗しても例外は送出せず、
        exit_future に例外として設定する。
        """
        args = tuple(args)
        exit_future: Future = Future()
        exit_future.set_running_or_notify_cancel()

        try:
            process = subprocess.Popen(
                [command, *args],
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
            )
        except OSError as e:
            self.logger.error(f"Failed to start command '{command}': {e}")
            exit_future.set_exception(e)
            return CommandHandle(command, args, io.BytesIO(b""), exit_future)

        self.logger.debug(f"Started command '{command}' (pid {process.pid})")

        watcher = threading.Thread(
            target=self._watch,
            args=(command, process, exit_future),
            name=f"s3-redirector-wait-{process.pid}",
            daemon=True,
        )
        watcher.start()

        return CommandHandle(command, args, process.stdout, exit_future, process)

    def _watch(self, command: str, process: subprocess.Popen, exit_future: Future) -> None:
        """プロセスの終了を待って終了コードを通知"""
        returncode = process.wait()
        self.logger.info(f"Command '{command}' exited with status {returncode}")
        exit_future.set_result(returncode)


class ExitCheckedStream(io.RawIOBase):
    """EOFでコマンドの終了コードを確認する標準出力ラッパー

    0以外で終了していれば CommandFailedError を送出するので、
    このストリームを読んでいるアップロードは失敗扱いになる。
    """

    def __init__(self, handle: CommandHandle):
        super().__init__()
        self._handle = handle
        self._source = handle.stdout

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return False

    def read(self, size: int = -1) -> bytes:
        data = self._source.read(size)
        if not data and size != 0:
            returncode = self._handle.wait()
            if returncode != 0:
                raise CommandFailedError(self._handle.command, returncode)
        return data

    def readall(self) -> bytes:
        return self.read(-1)

    def readinto(self, b) -> int:
        data = self.read(len(b))
        n = len(data)
        b[:n] = data
        return n

    def close(self) -> None:
        if not self.closed:
            self._source.close()
        super().close()
