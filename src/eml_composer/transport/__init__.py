# Transport contract, built-in backends and the named registry

from .backends import CallbackTransport, SendmailTransport, SMTPTransport, find_sendmail
from .base import EnvelopePayload, Transport
from .delivery import collect_recipients, envelope_sender, send
from .registry import TransportRegistry, create_default_registry, default_registry

__all__ = [
    "Transport",
    "EnvelopePayload",
    "SendmailTransport",
    "SMTPTransport",
    "CallbackTransport",
    "find_sendmail",
    "TransportRegistry",
    "create_default_registry",
    "default_registry",
    "send",
    "collect_recipients",
    "envelope_sender",
]
