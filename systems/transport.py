"""
Transport builder: turns a BenchmarkConfig into a ready storage client.
"""

import logging

from aiobotocore.config import AioConfig

from common.errors import ClientInitError
from common.storage_factory import create_storage_system
from configuration import (
    BenchmarkConfig,
    CONNECT_TIMEOUT_SECONDS,
    KEEPALIVE_TIMEOUT_SECONDS,
    ProtocolMode,
)
from systems.base import ObjectStorageSystem

logger = logging.getLogger(__name__)


def build_transport_config(config: BenchmarkConfig) -> AioConfig:
    """Create the aiobotocore config for the configured protocol mode.

    Single-stream keeps a pool of reusable HTTP/1.1 connections capped per
    host. Multiplexed mode gives every request a fresh connection; its
    per-host cap is kept for parity but has no measurable effect.
    """
    if config.protocol is ProtocolMode.SINGLE_STREAM:
        # aiohttp keeps idle connections inside the same pool, so the idle
        # cap can never exceed the connection cap.
        if config.max_idle_conns_per_host > config.max_conns_per_host:
            logger.info(
                f"Idle connection cap {config.max_idle_conns_per_host} is bounded by "
                f"the connection cap {config.max_conns_per_host}"
            )
        connector_args = {"keepalive_timeout": KEEPALIVE_TIMEOUT_SECONDS}
    else:
        # AioConfig fills in a default keepalive_timeout, which aiohttp rejects
        # together with force_close
        connector_args = {"force_close": True, "keepalive_timeout": None}
    pool_size = config.max_conns_per_host

    transport_config = AioConfig(
        max_pool_connections=pool_size,
        connector_args=connector_args,
        connect_timeout=CONNECT_TIMEOUT_SECONDS,
        # No read timeout: long reads run to completion
        read_timeout=None,
        # Retries are owned by RetryPolicy
        retries={"total_max_attempts": 1, "mode": "standard"},
        user_agent_extra=config.user_agent,
        tcp_keepalive=True,
        s3={"addressing_style": "path"},
    )

    logger.info(
        f"Configured {config.protocol.value} transport: "
        f"max_pool_connections={pool_size}, connector_args={connector_args}"
    )
    return transport_config


def channel_count(config: BenchmarkConfig) -> int:
    if config.protocol is ProtocolMode.MULTIPLEXED:
        return config.multiplexed_pool_size
    return 1


async def build_storage_client(config: BenchmarkConfig, session=None) -> ObjectStorageSystem:
    """Build, authenticate and open the shared storage client.

    Raises ClientInitError on any failure; nothing is left open.
    """
    try:
        system = create_storage_system(
            config.storage_type,
            bucket_name=config.bucket_name,
            endpoint=config.endpoint_url,
            transport_config=build_transport_config(config),
            channel_count=channel_count(config),
            project=config.project,
            session=session,
        )
    except Exception as e:
        raise ClientInitError("while creating the client", e) from e

    await system.acquire_credentials()

    try:
        await system.open()
    except Exception as e:
        await system.close()
        raise ClientInitError("while creating the client", e) from e

    return system
