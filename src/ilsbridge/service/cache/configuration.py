from pydantic_settings import SettingsConfigDict

from ilsbridge.service.configuration.service_configuration import (
    ServiceConfiguration,
)
from ilsbridge.util.pydantic import RedisDsn


class CacheConfiguration(ServiceConfiguration):
    # When no URL is configured the cache lives in process memory.
    redis_url: RedisDsn | None = None
    key_prefix: str = "ilsbridge"
    model_config = SettingsConfigDict(env_prefix="ILSBRIDGE_CACHE_")

    socket_timeout: float | None = 15.0
    socket_connect_timeout: float | None = 5.0
