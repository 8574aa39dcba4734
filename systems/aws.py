"""
AWS S3 object storage system implementation.
"""

from systems.base import ObjectStorageSystem
from configuration import S3_ENDPOINT, BUCKET_NAME
import logging

logger = logging.getLogger(__name__)


class AWSSystem(ObjectStorageSystem):
    """AWS S3 object storage system."""

    def __init__(self, credentials: dict = None, endpoint: str = None,
                 bucket_name: str = None, **kwargs):
        if credentials is None:
            credentials = {}

        super().__init__(
            endpoint=endpoint or S3_ENDPOINT,
            bucket_name=bucket_name or BUCKET_NAME,
            credentials=credentials,
            **kwargs
        )
        logger.info("Initialized AWS S3 system")
