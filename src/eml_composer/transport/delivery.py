"""
Final hand-off of a composed message to a transport backend.
"""

from email.utils import getaddresses
from typing import Any, List, Optional, Union

import structlog

from ..composing import serializer
from ..config import Settings
from ..models.entity import Entity
from .base import EnvelopePayload, Transport
from .registry import TransportRegistry, default_registry


logger = structlog.get_logger(__name__)


def collect_recipients(entity: Entity, auto_cc: bool = True) -> List[str]:
    """
    Envelope recipients from To, plus Cc and Bcc when ``auto_cc`` is set.

    Args:
        entity: Root entity
        auto_cc: Include Cc/Bcc addresses

    Returns:
        Addresses in header order, duplicates removed
    """
    names = ["To", "Cc", "Bcc"] if auto_cc else ["To"]
    values = [value for name in names for value in entity.get_all(name)]
    recipients: List[str] = []
    for _, address in getaddresses(values):
        if address and address not in recipients:
            recipients.append(address)
    return recipients


def envelope_sender(entity: Entity) -> Optional[str]:
    """Address from Return-Path, Sender or From, in that order of preference."""
    for name in ("Return-Path", "Sender", "From"):
        values = entity.get_all(name)
        if values:
            addresses = [address for _, address in getaddresses(values) if address]
            if addresses:
                return addresses[0]
    return None


def send(
    entity: Entity,
    transport: Optional[Union[str, Transport]] = None,
    *,
    registry: Optional[TransportRegistry] = None,
    settings: Optional[Settings] = None,
    **options: Any,
) -> EnvelopePayload:
    """
    Serialize ``entity`` and deliver it.

    The backend is resolved before serialization, so an unknown name fails
    without touching attachments. Bcc is removed from the transmitted text, and
    the message uses CRLF line endings when the backend sets ``wants_crlf``.
    Transport failures are raised to the caller unchanged.

    Args:
        entity: Root entity
        transport: Backend name or instance; ``settings.default_transport`` when None
        registry: Registry to resolve names in (module default when None)
        settings: Settings overriding the entity's own
        **options: Backend constructor arguments (merged over ``settings.transport_args``
            when the default backend is used)

    Returns:
        The payload that was delivered

    Raises:
        ConfigError: For an unknown backend name or bad backend options
        UnreadablePathError: If an attachment cannot be read
        TransportError: If delivery fails
    """
    config = settings or entity.settings
    registry = registry or default_registry

    if isinstance(transport, Transport):
        backend = transport
    else:
        name = transport
        if name is None:
            name = config.default_transport
            options = {**config.transport_args, **options}
        backend = registry.create(name, **options)

    message = serializer.serialize(
        entity, settings=config, crlf=backend.wants_crlf, exclude=("bcc",)
    )
    payload = EnvelopePayload(
        message=message,
        recipients=collect_recipients(entity, config.auto_cc),
        sender=envelope_sender(entity),
        transport=backend.name,
    )

    logger.info(
        "message_sending",
        transport=payload.transport,
        recipients=len(payload.recipients),
        size_bytes=len(payload.message),
    )
    backend.deliver(payload.message, payload.recipients, payload.sender)
    logger.info("message_sent", transport=payload.transport)
    return payload
