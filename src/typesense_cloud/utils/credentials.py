"""Management API key resolution for the command line."""

import os

from typesense_cloud.core.config import ApiConfig
from typesense_cloud.core.exceptions import ConfigurationError
from typesense_cloud.utils.logging import get_logger

logger = get_logger(__name__)


def resolve_management_key(api_config: ApiConfig, explicit_key: str | None = None) -> str:
    """Resolve the Cloud Management API key.

    Precedence: explicit value, then the configuration file, then the
    environment variable named by ``api_config.key_env_var``.

    Args:
        api_config: API configuration
        explicit_key: Key passed on the command line, if any

    Returns:
        Non-empty API key

    Raises:
        ConfigurationError: If no non-empty key is available
    """
    for source, value in (
        ("option", explicit_key),
        ("config", api_config.key),
        ("environment", os.environ.get(api_config.key_env_var)),
    ):
        if value:
            logger.debug("management_key_resolved", source=source)
            return value

    raise ConfigurationError(
        "Missing Typesense Cloud Management API key. Pass --api-key, set api.key in "
        f"the configuration file, or use the {api_config.key_env_var} environment variable. "
        "If one is already set, ensure the value is not empty."
    )
