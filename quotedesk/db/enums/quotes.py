"""Quote-related enums."""

from enum import Enum


class QuoteStatus(str, Enum):
    """
    Quote lifecycle.

    draft → sent (acceptance token issued) → accepted (exactly once, via
    the public acceptance flow) | declined (internal only).
    """

    DRAFT = "draft"
    SENT = "sent"
    ACCEPTED = "accepted"
    DECLINED = "declined"

    @classmethod
    def editable(cls) -> list[str]:
        """Statuses in which line items and ROT flags may still change."""
        return [cls.DRAFT.value, cls.SENT.value]


QUOTE_STATUS_LABELS: dict[str, str] = {
    QuoteStatus.DRAFT.value: "Draft",
    QuoteStatus.SENT.value: "Sent",
    QuoteStatus.ACCEPTED.value: "Accepted",
    QuoteStatus.DECLINED.value: "Declined",
}


class RotIdentifierKind(str, Enum):
    """Who claims the ROT deduction."""

    PERSON = "person"  # Personnummer
    COMPANY = "company"  # Organisationsnummer
