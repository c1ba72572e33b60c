"""Device bridge: outbound message queue, payload builders and request service."""

from .queue import OutboundMessage, OutboundQueue
from .service import FlightWeatherService

__all__ = ["FlightWeatherService", "OutboundMessage", "OutboundQueue"]
