"""コマンド・アップロードの完了通知"""
import threading
from collections import defaultdict
from concurrent.futures import CancelledError, Future
from enum import Enum
from typing import Any, Callable, DefaultDict, List

from ..utils.logger import LoggerManager


class Signal(str, Enum):
    """通知の種類"""
    COMMAND_EXIT = "command_exit"
    COMMAND_INIT_ERROR = "command_init_error"
    UPLOAD_FINISH = "upload_finish"
    UPLOAD_ERROR = "upload_error"


Listener = Callable[[Any], None]


class SignalHub:
    """シグナルごとのリスナーを管理し、Futureの結果を通知する"""

    def __init__(self):
        self.logger = LoggerManager.get_logger()
        self._listeners: DefaultDict[Signal, List[Listener]] = defaultdict(list)
        self._lock = threading.Lock()

    def on(self, signal: Signal, listener: Listener) -> None:
        """リスナーを登録"""
        with self._lock:
            self._listeners[Signal(signal)].append(listener)

    def off(self, signal: Signal, listener: Listener) -> None:
        """リスナーを解除"""
        with self._lock:
            listeners = self._listeners[Signal(signal)]
            if listener in listeners:
                listeners.remove(listener)

    def emit(self, signal: Signal, payload: Any) -> None:
        """登録済みの全リスナーを呼び出す"""
        with self._lock:
            listeners = list(self._listeners[Signal(signal)])

        for listener in listeners:
            try:
                listener(payload)
            except Exception:
                # 1つのリスナーの失敗で他への通知を止めない
                self.logger.exception(f"Listener for '{signal.value}' raised")

    def forward(self, future: Future, success: Signal, failure: Signal) -> None:
        """Futureの完了時に success か failure のどちらか一方を通知"""

        def _on_done(done: Future) -> None:
            if done.cancelled():
                self.emit(failure, CancelledError())
                return
            error = done.exception()
            if error is not None:
                self.emit(failure, error)
            else:
                self.emit(success, done.result())

        future.add_done_callback(_on_done)
