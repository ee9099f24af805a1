# Copyright 2026-present Kensho Technologies, LLC.
from dataclasses import dataclass

from ..exceptions import InvalidConfigurationError


@dataclass(frozen=True)
class DispatcherConfig:
    """Host-supplied configuration of a SubscriptionDispatcher."""

    # Whether to use the transport's live delivery when it supports it.
    push_enabled: bool = True

    # The minimum time between two deliveries in push mode. Zero disables throttling.
    min_delivery_interval_ms: int = 1000

    # The time between two fetches in poll mode.
    poll_interval_ms: int = 1000

    def __post_init__(self) -> None:
        """Validate the configuration values."""
        if self.min_delivery_interval_ms < 0:
            raise InvalidConfigurationError(
                "min_delivery_interval_ms must be non-negative, got: {}".format(
                    self.min_delivery_interval_ms
                )
            )
        if self.poll_interval_ms <= 0:
            raise InvalidConfigurationError(
                "poll_interval_ms must be positive, got: {}".format(self.poll_interval_ms)
            )

    @property
    def min_delivery_interval(self) -> float:
        """Return the minimum delivery interval in seconds."""
        return self.min_delivery_interval_ms / 1000.0

    @property
    def poll_interval(self) -> float:
        """Return the poll interval in seconds."""
        return self.poll_interval_ms / 1000.0
