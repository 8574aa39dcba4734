"""
Cloudflare R2 object storage system implementation.
"""

from systems.base import ObjectStorageSystem
from configuration import R2_ENDPOINT, BUCKET_NAME
import logging

logger = logging.getLogger(__name__)


class R2System(ObjectStorageSystem):
    """Cloudflare R2 object storage system."""

    def __init__(self, credentials: dict = None, endpoint: str = None,
                 bucket_name: str = None, **kwargs):
        if credentials is None:
            credentials = {}
        credentials.setdefault("region_name", "auto")

        super().__init__(
            endpoint=endpoint or R2_ENDPOINT,
            bucket_name=bucket_name or BUCKET_NAME,
            credentials=credentials,
            **kwargs
        )
        logger.info("Initialized R2 system")
