"""設定されたリダイレクトタスクの実行"""
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Tuple

from ..models.config import Config, RedirectTask
from ..utils.logger import LoggerManager
from .redirector import S3Redirector


class TaskRunner:
    """リダイレクトタスクを並列に実行

    同時に実行するタスク数は parallel_uploads で制限する。
    コマンドは空きができてから起動するので、起動済みのコマンドの出力は
    必ずすぐにアップロードされる。
    """

    def __init__(self, config: Config, redirector: S3Redirector):
        self.config = config
        self.redirector = redirector
        self.logger = LoggerManager.get_logger()

    def run_all_tasks(self) -> Tuple[int, int]:
        """全てのタスクを実行"""
        total_tasks = len(self.config.redirect_tasks)
        successful_tasks = 0
        failed_tasks = 0

        self.logger.info(
            f"Starting redirect tasks: {total_tasks} tasks to process "
            f"with {self.config.parallel_uploads} workers"
        )

        with ThreadPoolExecutor(max_workers=self.config.parallel_uploads) as pool:
            future_to_task = {}
            for i, task in enumerate(self.config.redirect_tasks, 1):
                if not task.enabled:
                    self.logger.info(f"Skipping disabled task: {task.name}")
                    continue
                future_to_task[pool.submit(self._run_single_task, task)] = (i, task)

            # 結果を収集
            for future in as_completed(future_to_task):
                i, task = future_to_task[future]
                try:
                    success = future.result()
                except Exception as e:
                    self.logger.error(f"Task {i}/{total_tasks}: '{task.name}' failed with error: {e}")
                    success = False

                if success:
                    successful_tasks += 1
                    self.logger.info(f"Task {i}/{total_tasks}: '{task.name}' completed successfully")
                else:
                    failed_tasks += 1
                    self.logger.error(f"Task {i}/{total_tasks}: '{task.name}' failed")

        self.logger.info(
            f"Redirect tasks completed: {successful_tasks} successful, {failed_tasks} failed"
        )
        return successful_tasks, failed_tasks

    def _run_single_task(self, task: RedirectTask) -> bool:
        """単一タスクを起動し、コマンドとアップロードの両方の完了を待つ"""
        self.logger.info(f"Starting '{task.name}'")
        options = self.config.transfer.with_overrides(task.transfer)
        handle = self.redirector.run_command_and_upload(
            task.command,
            task.args,
            task.target(),
            options,
            compress=task.compress,
            check_exit=task.check_exit,
        )

        try:
            returncode = handle.command.wait()
        except OSError as e:
            self.logger.error(f"Command for '{task.name}' could not be started: {e}")
            return False

        try:
            result = handle.upload.result()
        except Exception as e:
            self.logger.error(f"Upload for '{task.name}' failed with error: {e}")
            return False

        if returncode != 0:
            self.logger.error(
                f"Command for '{task.name}' exited with status {returncode}; "
                f"output stored at {result.location}"
            )
            return False

        self.logger.info(f"'{task.name}' stored at {result.location} (ETag {result.etag})")
        return True
