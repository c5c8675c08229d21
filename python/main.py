#!/usr/bin/env python3
"""S3 Redirector - エントリーポイント"""
import sys

from s3_redirector import Config, S3Redirector, TaskRunner
from s3_redirector.utils.logger import LoggerManager


def main(config_path: str = "config.json") -> int:
    """メイン関数"""
    try:
        config = Config.from_file(config_path)
        logger = LoggerManager.setup(config.logging)
        logger.info("S3 Redirector initialized")

        with S3Redirector.from_config(config) as redirector:
            successful, failed = TaskRunner(config, redirector).run_all_tasks()

        # 終了コードを設定
        return 0 if failed == 0 else 1

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main(*sys.argv[1:2]))
