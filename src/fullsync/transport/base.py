"""Outbound transmission interface."""

from abc import ABC, abstractmethod
from typing import Any


def build_payload(ids: list[int], previous_cursor: int) -> dict[str, Any]:
    """Payload of one full-sync action: the chunk and the cursor it started below."""
    return {"ids": list(ids), "previous_cursor": previous_cursor}


class TransportSender(ABC):
    """
    Delivers full-sync actions to the remote consumer.

    ``send`` returns normally on success and raises ``TransportFailure``
    otherwise. It may block on I/O.
    """

    @abstractmethod
    def send(self, action_name: str, payload: dict[str, Any]) -> None:
        """Transmit one action."""

    def close(self) -> None:
        """Release connections held by the sender."""
