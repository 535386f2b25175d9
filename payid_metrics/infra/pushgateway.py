"""Push-gateway clients for the PayID metric registries.

``AdditivePushGateway`` adds to what the gateway already holds for a grouping;
``ReplacingPushGateway`` overwrites it.
"""

from __future__ import annotations

import asyncio
from typing import Dict

from prometheus_client import CollectorRegistry, push_to_gateway, pushadd_to_gateway

DEFAULT_PUSH_TIMEOUT_SECONDS = 30


class _RegistryPushGateway:
    """Pushes one registry under a fixed job name and grouping key."""

    def __init__(
        self,
        gateway_url: str,
        registry: CollectorRegistry,
        *,
        job_name: str,
        instance: str,
        timeout: float = DEFAULT_PUSH_TIMEOUT_SECONDS,
    ):
        self.gateway_url = gateway_url.rstrip("/")
        self.registry = registry
        self.job_name = job_name
        self.instance = instance
        self.timeout = timeout

    @property
    def grouping_key(self) -> Dict[str, str]:
        return {"instance": self.instance}

    async def push(self) -> None:
        """Send the registry without blocking the event loop."""

        await asyncio.to_thread(self._send)

    def _send(self) -> None:  # pragma: no cover - overridden
        raise NotImplementedError


class AdditivePushGateway(_RegistryPushGateway):
    """POSTs samples so values from several instances accumulate on the gateway."""

    def _send(self) -> None:
        pushadd_to_gateway(
            self.gateway_url,
            job=self.job_name,
            registry=self.registry,
            grouping_key=self.grouping_key,
            timeout=self.timeout,
        )


class ReplacingPushGateway(_RegistryPushGateway):
    """PUTs samples so each push replaces everything stored for the grouping."""

    def _send(self) -> None:
        push_to_gateway(
            self.gateway_url,
            job=self.job_name,
            registry=self.registry,
            grouping_key=self.grouping_key,
            timeout=self.timeout,
        )
