"""
Outbound message queue for the device link.

Only one message is in flight at a time. The transport hands back a transaction id on
send; the link later reports delivery via ``acknowledge`` or ``reject``. A rejected
message goes to the back of the queue while it still has retries left, otherwise it is
dropped, so delivery is best effort.
"""
from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Deque, Dict, List, Optional

from src.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_RETRIES = 3

Payload = Dict[str, Any]
Transport = Callable[[Payload], Any]


@dataclass
class OutboundMessage:
    payload: Payload
    retries: int
    transaction_id: Any = None


class OutboundQueue:
    def __init__(self, transport: Transport, *, max_retries: int = DEFAULT_MAX_RETRIES):
        self._transport = transport
        self.max_retries = max(0, int(max_retries))
        self._lock = threading.Lock()
        self._queue: Deque[OutboundMessage] = deque()
        self._in_flight: Optional[OutboundMessage] = None

    @property
    def pending(self) -> List[Payload]:
        with self._lock:
            return [m.payload for m in self._queue]

    @property
    def in_flight(self) -> Optional[OutboundMessage]:
        with self._lock:
            return self._in_flight

    def send(self, payload: Payload) -> None:
        logger.debug("Enqueueing message to device", payload=payload)
        with self._lock:
            self._queue.append(OutboundMessage(payload=dict(payload), retries=self.max_retries))
        self._pump()

    def acknowledge(self, transaction_id: Any) -> None:
        with self._lock:
            current = self._in_flight
            if current is None:
                logger.warning("Delivery acknowledged with no message in flight", transaction_id=transaction_id)
            elif current.transaction_id != transaction_id:
                logger.warning(
                    "Delivery acknowledged for unexpected message",
                    transaction_id=transaction_id,
                    expected=current.transaction_id,
                )
            self._in_flight = None
        self._pump()

    def reject(self, transaction_id: Any, error: Optional[str] = None) -> None:
        with self._lock:
            current = self._in_flight
            logger.warning("Message delivery failed", transaction_id=transaction_id, error=error)
            if current is not None:
                if current.retries > 0:
                    current.retries -= 1
                    current.transaction_id = None
                    self._queue.append(current)
                else:
                    logger.warning("Dropping message after retries", payload=current.payload)
            self._in_flight = None
        self._pump()

    def _pump(self) -> None:
        with self._lock:
            if self._in_flight is not None or not self._queue:
                return
            message = self._queue.popleft()
            self._in_flight = message
        # The transport may acknowledge synchronously, so call it outside the lock.
        try:
            transaction_id = self._transport(message.payload)
        except Exception as exc:
            logger.error("Transport failed to send message", error=str(exc), exc_info=True)
            self.reject(None, str(exc))
            return
        with self._lock:
            if self._in_flight is message:
                message.transaction_id = transaction_id
