"""アップロード進捗管理"""
import time
import threading


class ProgressTracker:
    """ストリームのアップロード進捗を追跡

    ストリームは全体サイズが事前にわからないため、転送済みバイト数と
    速度だけを表示する。
    """

    def __init__(self, label: str):
        self.label = label
        self.uploaded_size = 0
        self.lock = threading.Lock()
        self.start_time = time.time()

    def __call__(self, bytes_transferred: int):
        """boto3のコールバック関数として使用"""
        with self.lock:
            self.uploaded_size += bytes_transferred
            self._display_progress()

    def _display_progress(self):
        """進捗を表示"""
        elapsed_time = time.time() - self.start_time

        if elapsed_time > 0:
            speed = self.uploaded_size / elapsed_time / 1024 / 1024  # MB/s
            print(f"\r{self.label}: {self.uploaded_size} bytes "
                  f"- {speed:.2f} MB/s - {elapsed_time:.0f}s", end="", flush=True)

    def complete(self):
        """アップロード完了"""
        elapsed_time = time.time() - self.start_time
        speed = self.uploaded_size / elapsed_time / 1024 / 1024 if elapsed_time > 0 else 0
        print(f"\r{self.label}: Complete! {self.uploaded_size} bytes "
              f"- {speed:.2f} MB/s - {elapsed_time:.1f}s")
