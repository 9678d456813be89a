"""Webhook transport: signature verification and the HTTP endpoint."""

from .endpoint import Endpoint, WebhookRequest, WebhookResponse, create_app
from .verifier import HEADER_SIGNATURE, HEADER_TIMESTAMP, SignatureVerifier

__all__ = [
    "Endpoint",
    "HEADER_SIGNATURE",
    "HEADER_TIMESTAMP",
    "SignatureVerifier",
    "WebhookRequest",
    "WebhookResponse",
    "create_app",
]
