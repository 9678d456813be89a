"""Ed25519 request verification for the webhook transport.

Discord signs every webhook delivery with the application's Ed25519
key. The signed message is the raw ``X-Signature-Timestamp`` header
value followed by the raw request body; the signature arrives
hex-encoded in ``X-Signature-Ed25519``.

See https://discord.com/developers/docs/interactions/overview#setting-up-an-endpoint
"""

import binascii
from typing import Mapping, Optional, Union

from multidict import CIMultiDict
from nacl.exceptions import BadSignatureError
from nacl.signing import VerifyKey

from ..exceptions import ConfigurationError, VerificationError
from ..logging_config import discard_logger

HEADER_SIGNATURE = "X-Signature-Ed25519"
HEADER_TIMESTAMP = "X-Signature-Timestamp"


class SignatureVerifier:
    """Verifies webhook requests against the application public key.

    A verifier built without a key accepts every request. That is an
    explicit opt-out for local development; public endpoints must
    always be given a key.

    Args:
        public_key: Hex string or raw 32 bytes, or None/empty to
            disable verification.
        logger: structlog logger. Defaults to a discard logger.

    Raises:
        ConfigurationError: If the key is not valid hex or not 32 bytes.
    """

    def __init__(self, public_key: Optional[Union[str, bytes]] = None, logger=None):
        self.log = logger or discard_logger()
        self._key: Optional[VerifyKey] = None
        if not public_key:
            self.log.warning("signature_verification_disabled")
            return

        try:
            raw = bytes.fromhex(public_key) if isinstance(public_key, str) else bytes(public_key)
            self._key = VerifyKey(raw)
        except (ValueError, TypeError) as e:
            raise ConfigurationError(
                f"invalid public key: {e}", setting_name="public_key"
            ) from e

    @property
    def enabled(self) -> bool:
        return self._key is not None

    def verify(self, headers: Mapping[str, str], body: Union[bytes, str]) -> None:
        """Verify one request.

        Args:
            headers: Request headers; names are matched case-insensitively.
            body: Raw request body, exactly as received.

        Raises:
            VerificationError: If the request is not authentic.
        """
        if self._key is None:
            return

        headers = CIMultiDict(headers)

        signature = headers.get(HEADER_SIGNATURE, "")
        if not signature:
            raise VerificationError(
                f"missing header {HEADER_SIGNATURE}", reason="missing_signature"
            )
        timestamp = headers.get(HEADER_TIMESTAMP, "")
        if not timestamp:
            raise VerificationError(
                f"missing header {HEADER_TIMESTAMP}", reason="missing_timestamp"
            )

        try:
            sig = binascii.unhexlify(signature)
        except (binascii.Error, ValueError) as e:
            raise VerificationError(
                f"invalid signature: {e}", reason="malformed_signature"
            ) from e

        if isinstance(body, str):
            body = body.encode("utf-8")

        try:
            self._key.verify(timestamp.encode("utf-8") + body, sig)
        except (BadSignatureError, ValueError) as e:
            # ValueError: signature of the wrong length
            raise VerificationError("invalid signature", reason="invalid_signature") from e
