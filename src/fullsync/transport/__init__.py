"""Delivery of full-sync actions to the remote consumer."""

from .base import TransportSender, build_payload
from .http import HttpTransportSender

__all__ = ["TransportSender", "HttpTransportSender", "build_payload"]
