"""
Factory for creating backend instances.
"""

import logging

from ..models.config import AppConfig
from .base import AbstractBackend
from .mackerel import MackerelClient

logger = logging.getLogger(__name__)


def create_backend(config: AppConfig) -> AbstractBackend:
    """
    Create the backend client described by ``config``.

    Args:
        config: Application configuration providing the API key and the
                ``[backend]`` section

    Returns:
        AbstractBackend instance
    """
    logger.debug(f"Creating MackerelClient for {config.backend.base_url}")
    return MackerelClient(
        api_key=config.api_key,
        base_url=config.backend.base_url,
        timeout=config.backend.timeout,
    )
