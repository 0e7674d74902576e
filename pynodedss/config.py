"""Signaler configuration."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, replace

from .exceptions import SignalerConfigException
from .message import DEFAULT_ICE_DATA_SEPARATOR
from .session import DEFAULT_REQUEST_TIMEOUT, DEFAULT_SERVER_ADDRESS
from .utils import to_bool

_LOGGER = logging.getLogger(__name__)

ENV_PREFIX = "NODEDSS_"
DEFAULT_POLL_INTERVAL = 0.5


@dataclass
class SignalerConfig:
    """Settings for a node-dss signaler.

    `poll_interval` and `request_timeout` are in seconds. When
    `local_peer_id` is not set, the signaler asks its identity provider at
    start-up.
    """

    server_address: str = DEFAULT_SERVER_ADDRESS
    local_peer_id: str | None = None
    remote_peer_id: str | None = None
    poll_interval: float = DEFAULT_POLL_INTERVAL
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    ice_data_separator: str = DEFAULT_ICE_DATA_SEPARATOR
    auto_log_errors: bool = True

    def validate(self) -> SignalerConfig:
        """Return a normalized copy, raising on invalid settings."""
        if not self.server_address:
            raise SignalerConfigException("A relay server address is required")
        if self.poll_interval <= 0:
            raise SignalerConfigException(
                f"Poll interval must be positive, got {self.poll_interval}"
            )
        if self.request_timeout <= 0:
            raise SignalerConfigException(
                f"Request timeout must be positive, got {self.request_timeout}"
            )
        if not self.ice_data_separator:
            raise SignalerConfigException("ICE data separator must not be empty")

        server_address = self.server_address
        if not server_address.endswith("/"):
            server_address += "/"
        return replace(self, server_address=server_address)

    @classmethod
    def from_env(
        cls, prefix: str = ENV_PREFIX, environ: Mapping[str, str] | None = None
    ) -> SignalerConfig:
        """Build a configuration from environment variables."""
        env = os.environ if environ is None else environ

        def get(name: str) -> str | None:
            return env.get(f"{prefix}{name}") or None

        config = cls()
        try:
            if (value := get("SERVER_ADDRESS")) is not None:
                config.server_address = value
            config.local_peer_id = get("LOCAL_PEER_ID")
            config.remote_peer_id = get("REMOTE_PEER_ID")
            if (value := get("POLL_INTERVAL")) is not None:
                config.poll_interval = float(value)
            if (value := get("REQUEST_TIMEOUT")) is not None:
                config.request_timeout = float(value)
            if (value := get("ICE_DATA_SEPARATOR")) is not None:
                config.ice_data_separator = value
            config.auto_log_errors = to_bool(get("AUTO_LOG_ERRORS"), default=True)
        except ValueError as err:
            raise SignalerConfigException(f"Invalid {prefix}* setting: {err}") from err

        _LOGGER.debug("Loaded signaler config from %s* environment", prefix)
        return config
