"""
Transport contract.

A transport receives the fully serialized message and the envelope recipients
and either delivers it or raises :class:`TransportError`. The composer never
interprets or retries transport failures.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

import structlog
from pydantic import BaseModel, Field


logger = structlog.get_logger(__name__)


class EnvelopePayload(BaseModel):
    """What a transport is handed: message bytes plus SMTP envelope."""

    message: bytes = Field(description="Serialized message, CRLF line endings when the transport wants them")
    recipients: List[str] = Field(default_factory=list, description="Envelope recipients")
    sender: Optional[str] = Field(None, description="Envelope sender (MAIL FROM)")
    transport: str = Field(description="Name of the backend used")


class Transport(ABC):
    """
    Abstract base class for delivery backends.

    Concrete backends take their options as constructor keyword arguments;
    the registry forwards them without interpreting them. Backends that speak
    SMTP on the wire set ``wants_crlf`` so the message is serialized with CRLF
    line endings; the rest receive LF.
    """

    name = "transport"
    wants_crlf = False

    def __init__(self):
        self.logger = logger.bind(transport=self.name)

    @abstractmethod
    def deliver(self, message: bytes, recipients: List[str], sender: Optional[str] = None) -> None:
        """
        Deliver one serialized message.

        Args:
            message: Complete message bytes
            recipients: Envelope recipients (may be empty for header-driven backends)
            sender: Envelope sender, if known

        Raises:
            TransportError: On any delivery failure
        """
        pass
