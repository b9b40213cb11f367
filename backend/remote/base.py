"""
Remote sync layer contract.

This module defines the *interface only*. The sync layer's query/write API
is a black box; the coordinator depends only on its network toggle.

Key invariants:
- enable_network() and disable_network() MUST be idempotent: calling either
  while already in the target state is safe and does not raise.
- Either call MAY raise on transient failure; callers treat that as
  non-fatal.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class RemoteLayer(ABC):
    """
    Abstract interface for a remote data-synchronization layer.

    Implementations are responsible for:
    - Stopping all traffic to the remote store on disable_network()
    - Resuming traffic (and pending writes) on enable_network()

    Non-responsibilities:
    - No lifecycle decisions (when to toggle is the coordinator's job)
    - No persistent connection management
    """

    name: str = "remote"

    @abstractmethod
    async def enable_network(self) -> None:
        """
        Re-enable network usage for the remote layer.

        Contract:
        - Safe to call when already enabled.
        - Returns once the layer accepted the request.
        """
        raise NotImplementedError

    @abstractmethod
    async def disable_network(self) -> None:
        """
        Disable network usage for the remote layer.

        Contract:
        - Safe to call when already disabled.
        - After return, no new remote traffic is started until enabled.
        """
        raise NotImplementedError
