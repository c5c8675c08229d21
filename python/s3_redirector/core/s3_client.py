"""S3クライアント管理"""
import threading
import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import NoCredentialsError
from typing import Any, Dict, Optional
from ..models.config import ConnectionConfig
from ..utils.logger import LoggerManager


SERVICE_INSTANCE_HEADER = "ibm-service-instance-id"


class S3ClientManager:
    """S3クライアントの作成と管理

    クライアントは一度だけ作成し、全アップロードで共有する。
    boto3のクライアントはスレッドセーフなので同時アップロードでも排他は不要。
    """

    def __init__(self, connection: ConnectionConfig):
        self.connection = connection
        self.logger = LoggerManager.get_logger()
        self._client: Optional[boto3.client] = None
        self._lock = threading.Lock()

    def get_client(self) -> boto3.client:
        """S3クライアントを取得（必要に応じて作成）"""
        with self._lock:
            if self._client is None:
                self._client = self._create_client()
            return self._client

    def _create_client(self) -> boto3.client:
        """S3クライアントを作成"""
        try:
            if self.connection.profile:
                session = boto3.Session(profile_name=self.connection.profile)
            else:
                session = boto3.Session()

            s3_client = session.client('s3', **self._client_kwargs())

            if self.connection.service_instance_id:
                s3_client.meta.events.register(
                    'before-sign.s3', self._add_service_instance_header
                )

            self.logger.info(
                f"S3 client created for endpoint {s3_client.meta.endpoint_url}"
            )
            return s3_client

        except NoCredentialsError:
            self.logger.error("S3 credentials not available.")
            raise
        except Exception as e:
            self.logger.error(f"Error creating S3 client: {e}")
            raise

    def _client_kwargs(self) -> Dict[str, Any]:
        conn = self.connection
        kwargs: Dict[str, Any] = {}

        if conn.endpoint_url:
            kwargs['endpoint_url'] = conn.endpoint_url
        if conn.region:
            kwargs['region_name'] = conn.region
        if conn.access_key_id:
            kwargs['aws_access_key_id'] = conn.access_key_id
            kwargs['aws_secret_access_key'] = conn.secret_access_key
        if conn.addressing_style:
            kwargs['config'] = BotoConfig(
                s3={'addressing_style': conn.addressing_style}
            )
        return kwargs

    def _add_service_instance_header(self, request, **kwargs) -> None:
        """IBM COS 用のサービスインスタンスIDを付与"""
        # HTTPHeadersへの代入は追記になるため先に消す
        if SERVICE_INSTANCE_HEADER in request.headers:
            del request.headers[SERVICE_INSTANCE_HEADER]
        request.headers[SERVICE_INSTANCE_HEADER] = self.connection.service_instance_id
