"""S3転送設定管理"""
from boto3.s3.transfer import TransferConfig as BotoTransferConfig
from ..models.config import TransferOptions


class TransferConfigManager:
    """S3転送設定の管理"""

    @staticmethod
    def create_config(options: TransferOptions) -> BotoTransferConfig:
        """TransferOptionsからTransferConfigを作成"""
        # しきい値をパートサイズに揃え、パートサイズを超えるストリームは必ずマルチパートにする
        config = BotoTransferConfig(
            multipart_threshold=options.part_size,
            multipart_chunksize=options.part_size,
            max_concurrency=options.queue_size,
            use_threads=options.use_threads,
            max_io_queue=options.max_io_queue,
            io_chunksize=options.io_chunksize,
        )
        # シーク不可のストリームでメモリに保持するパート数の上限
        config.max_in_memory_upload_chunks = options.queue_size
        return config
