"""Quote acceptance error taxonomy.

NotFound / Expired / AlreadyHandled are collapsed into one generic message
for unauthenticated callers. ValidationError carries field-level detail.
TransientError is safe to retry. FatalInconsistency requires an operator.
"""

from uuid import UUID


class QuoteAcceptanceError(Exception):
    """Base exception for quote acceptance errors."""

    pass


class QuoteUnavailableError(QuoteAcceptanceError):
    """Quote cannot be resolved from the token (shown generically)."""

    pass


class NotFoundError(QuoteUnavailableError):
    """Unknown acceptance token."""

    pass


class ExpiredError(QuoteUnavailableError):
    """Acceptance token is past token_expires_at."""

    pass


class AlreadyHandledError(QuoteUnavailableError):
    """Quote is no longer in 'sent' status."""

    pass


class ValidationError(QuoteAcceptanceError):
    """Malformed deduction identifier or missing property designation."""

    def __init__(self, errors: dict[str, str]):
        self.errors = errors
        super().__init__("; ".join(f"{field}: {msg}" for field, msg in errors.items()))


class TransientError(QuoteAcceptanceError):
    """Order materialization failed and the quote was reverted to 'sent'."""

    pass


class FatalInconsistency(QuoteAcceptanceError):
    """Compensation failed: quote left 'accepted' without a linked order."""

    def __init__(self, message: str, *, quote_id: UUID, organization_id: UUID):
        self.quote_id = quote_id
        self.organization_id = organization_id
        super().__init__(message)
