"""Custom exception hierarchy for hookwire.

Provides error classification across the webhook, session and
migration subsystems, so callers can tell retryable platform errors
from permanent ones without parsing messages.

Dispatch failures (missing handler, failed acknowledgment, handler
exceptions) are logged by the router and never surface as exceptions.
"""

from enum import Enum
from typing import Any, Optional


class ErrorCategory(str, Enum):
    """Whether an error is worth retrying, and who should act on it."""
    TRANSIENT = "transient"          # Worth retrying (rate limit, 5xx)
    PERMANENT = "permanent"          # Not worth retrying (bad request, auth)
    INFRASTRUCTURE = "infrastructure"  # Missing config, env issues


class HookwireError(Exception):
    """Base exception for all hookwire errors.

    Attributes:
        message: Human-readable error description.
        category: Error classification for retry/escalation decisions.
        module: Originating module name (e.g. "webhook.verifier").
        context: Arbitrary key-value pairs for structured logging.
    """

    def __init__(
        self,
        message: str = "",
        *,
        category: ErrorCategory = ErrorCategory.PERMANENT,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.message = message
        self.category = category
        self.module = module
        self.context = context
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        """Whether this error is worth retrying."""
        return self.category == ErrorCategory.TRANSIENT

    def __str__(self) -> str:
        parts = [self.message or self.__class__.__name__]
        if self.module:
            parts.append(f"[module={self.module}]")
        if self.context:
            ctx = ", ".join(f"{k}={v}" for k, v in self.context.items())
            parts.append(f"({ctx})")
        return " ".join(parts)

    def __repr__(self) -> str:
        cls = self.__class__.__name__
        return (
            f"{cls}({self.message!r}, category={self.category.value!r}, "
            f"module={self.module!r})"
        )


# ---------------------------------------------------------------------------
# Webhook exceptions
# ---------------------------------------------------------------------------

class VerificationError(HookwireError):
    """An inbound webhook request failed signature verification.

    Attributes:
        reason: Stable reason code: ``missing_signature``,
            ``missing_timestamp``, ``malformed_signature`` or
            ``invalid_signature``.
    """

    def __init__(
        self,
        message: str = "",
        *,
        reason: str = "invalid_signature",
        category: ErrorCategory = ErrorCategory.PERMANENT,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.reason = reason
        super().__init__(
            message, category=category, module=module or "webhook.verifier", **context
        )

    def __str__(self) -> str:
        # Returned verbatim: operators match on these strings.
        return self.message


class InteractionDecodeError(HookwireError):
    """A request body could not be decoded into an interaction."""

    def __init__(
        self,
        message: str = "",
        *,
        category: ErrorCategory = ErrorCategory.PERMANENT,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        super().__init__(
            message, category=category, module=module or "webhook.endpoint", **context
        )


# ---------------------------------------------------------------------------
# Platform API exceptions
# ---------------------------------------------------------------------------

class DiscordAPIError(HookwireError):
    """Non-success response from the Discord HTTP API.

    429 and 5xx responses are TRANSIENT, everything else PERMANENT.
    Nothing in hookwire retries; the category is a hint for callers.

    Attributes:
        status: HTTP status code.
        code: Discord JSON error code, if the body carried one.
    """

    def __init__(
        self,
        message: str = "",
        *,
        status: int = 0,
        code: Optional[int] = None,
        category: Optional[ErrorCategory] = None,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.status = status
        self.code = code
        if category is None:
            category = (
                ErrorCategory.TRANSIENT
                if status == 429 or status >= 500
                else ErrorCategory.PERMANENT
            )
        super().__init__(
            message, category=category, module=module or "session",
            status=status, **context,
        )


# ---------------------------------------------------------------------------
# Configuration exceptions
# ---------------------------------------------------------------------------

class ConfigurationError(HookwireError):
    """Invalid or missing configuration.

    Always INFRASTRUCTURE by default: an operator has to fix the
    environment before anything changes.
    """

    def __init__(
        self,
        message: str = "",
        *,
        setting_name: Optional[str] = None,
        category: ErrorCategory = ErrorCategory.INFRASTRUCTURE,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.setting_name = setting_name
        super().__init__(
            message, category=category, module=module or "config", **context
        )

    def __str__(self) -> str:
        return self.message
