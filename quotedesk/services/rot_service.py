"""ROT deduction calculator.

ROT is the Swedish labor-cost tax rebate for repairs, conversions and
extensions of a home. The deduction is taken on the labor share of the
quoted amount and capped per person and year:

    deduction = min(total * labor_share * rate, cap)

Everything here is pure. Invalid input yields False / 0 / None and never
raises; callers decide whether that blocks an acceptance.

Amounts are Decimal in whole-currency units (settings.CURRENCY). Rounding
only happens in format_amount (display).
"""

import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from quotedesk.core.config import settings
from quotedesk.db.enums import RotIdentifierKind

DEFAULT_LABOR_SHARE = Decimal(str(settings.ROT_LABOR_SHARE))
DEFAULT_DEDUCTION_RATE = Decimal(str(settings.ROT_RATE))
DEFAULT_CAP = Decimal(settings.ROT_MAX_AMOUNT)
CURRENCY = settings.CURRENCY

ZERO = Decimal("0")

_PERSON_PATTERNS = (
    re.compile(r"^[0-9]{8}-[0-9]{4}$"),  # YYYYMMDD-XXXX
    re.compile(r"^[0-9]{6}-[0-9]{4}$"),  # YYMMDD-XXXX
)
_COMPANY_PATTERN = re.compile(r"^[0-9]{6}-[0-9]{4}$")  # XXXXXX-XXXX
_NON_DIGIT_OR_HYPHEN = re.compile(r"[^0-9-]")
_NON_DIGIT = re.compile(r"[^0-9]")

ROT_EXPLANATION_TEXT = (
    "ROT is a tax deduction for repair, conversion and extension of homes. "
    "Private persons can deduct 50% of the labor cost, up to 50 000 SEK per "
    "person and year. The work must be carried out on a permanent residence "
    "or holiday home in Sweden."
)

ROT_EMAIL_TEXT = (
    "This quote qualifies for the ROT deduction. As a private person you can "
    "deduct 50% of the labor cost, up to 50 000 SEK per person and year. "
    "You will be able to enter your ROT details when you accept the quote."
)

# Simplified list, matched as substrings of the service description.
ROT_ELIGIBLE_SERVICES = (
    "taktvätt",
    "fasadtvätt",
    "fönsterputsning",
    "målning",
    "reparation",
    "underhåll",
    "roof washing",
    "facade washing",
    "window cleaning",
    "painting",
    "repair",
    "maintenance",
)


# =============================================================================
# Deduction identifier (tagged variant)
# =============================================================================


@dataclass(frozen=True)
class PersonIdentifier:
    """Personnummer of a private person claiming ROT."""

    national_id: str
    kind: RotIdentifierKind = RotIdentifierKind.PERSON


@dataclass(frozen=True)
class CompanyIdentifier:
    """Organisationsnummer of a company claiming ROT."""

    org_id: str
    kind: RotIdentifierKind = RotIdentifierKind.COMPANY


DeductionIdentifier = PersonIdentifier | CompanyIdentifier


@dataclass(frozen=True)
class RotClaim:
    """Identifier plus the property designation (fastighetsbeteckning)."""

    identifier: DeductionIdentifier
    property_designation: str

    @property
    def personal_id(self) -> str | None:
        if isinstance(self.identifier, PersonIdentifier):
            return self.identifier.national_id
        return None

    @property
    def org_id(self) -> str | None:
        if isinstance(self.identifier, CompanyIdentifier):
            return self.identifier.org_id
        return None


@dataclass(frozen=True)
class DeductionPreview:
    total: Decimal
    include_rot: bool
    rot_amount: Decimal
    net_payable: Decimal
    capped: bool
    currency: str = CURRENCY


def _coerce_kind(kind: RotIdentifierKind | str) -> RotIdentifierKind | None:
    try:
        return RotIdentifierKind(kind)
    except ValueError:
        return None


def validate_identifier(kind: RotIdentifierKind | str, value: str | None) -> bool:
    """Format-only check. No Luhn/modulus validation."""
    if not value:
        return False
    identifier_kind = _coerce_kind(kind)
    if identifier_kind is None:
        return False

    cleaned = _NON_DIGIT_OR_HYPHEN.sub("", value)
    if identifier_kind == RotIdentifierKind.PERSON:
        return any(pattern.match(cleaned) for pattern in _PERSON_PATTERNS)
    return bool(_COMPANY_PATTERN.match(cleaned))


def format_identifier(kind: RotIdentifierKind | str, raw: str) -> str:
    """
    Normalize an identifier to its hyphenated form.

    Person: 10 digits → XXXXXX-XXXX, 12 digits → XXXXXXXX-XXXX.
    Company: 10 digits → XXXXXX-XXXX.
    Any other digit count returns raw unchanged.
    """
    if not raw:
        return raw
    digits = _NON_DIGIT.sub("", raw)
    identifier_kind = _coerce_kind(kind)

    if len(digits) == 10:
        return f"{digits[:6]}-{digits[6:]}"
    if len(digits) == 12 and identifier_kind == RotIdentifierKind.PERSON:
        return f"{digits[:8]}-{digits[8:]}"
    return raw


def parse_identifier(kind: RotIdentifierKind | str, raw: str | None) -> DeductionIdentifier | None:
    """Format and validate raw input into a tagged identifier, or None."""
    identifier_kind = _coerce_kind(kind)
    if identifier_kind is None or not raw:
        return None
    formatted = format_identifier(identifier_kind, raw.strip())
    if not validate_identifier(identifier_kind, formatted):
        return None
    if identifier_kind == RotIdentifierKind.PERSON:
        return PersonIdentifier(national_id=formatted)
    return CompanyIdentifier(org_id=formatted)


def is_rot_eligible(service_type: str | None) -> bool:
    """True when the service description names ROT-eligible work."""
    if not service_type:
        return False
    lowered = service_type.lower()
    return any(service in lowered for service in ROT_ELIGIBLE_SERVICES)


def mask_identifier(value: str | None) -> str | None:
    """Mask the serial part of an identifier for logs."""
    if not value:
        return value
    return f"{value[:-4]}****" if len(value) > 4 else "****"


# =============================================================================
# Calculation
# =============================================================================


def _to_decimal(value) -> Decimal:
    """Decimal for arithmetic; NaN, infinities and garbage become 0."""
    if not isinstance(value, Decimal):
        try:
            value = Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError):
            return ZERO
    if not value.is_finite():
        return ZERO
    return value


def calculate_deduction(
    total,
    labor_share=DEFAULT_LABOR_SHARE,
    deduction_rate=DEFAULT_DEDUCTION_RATE,
    cap=DEFAULT_CAP,
) -> Decimal:
    """ROT amount for a quoted total. total <= 0 gives 0."""
    total = _to_decimal(total)
    if total <= ZERO:
        return ZERO
    deduction = total * _to_decimal(labor_share) * _to_decimal(deduction_rate)
    return min(deduction, _to_decimal(cap))


def net_payable(total, deduction_amount) -> Decimal:
    return _to_decimal(total) - _to_decimal(deduction_amount)


def preview(total, include_rot: bool = True) -> DeductionPreview:
    """Deduction preview shown before submission. Same math as acceptance."""
    total_dec = _to_decimal(total)
    if not include_rot:
        return DeductionPreview(
            total=total_dec,
            include_rot=False,
            rot_amount=ZERO,
            net_payable=total_dec,
            capped=False,
        )
    amount = calculate_deduction(total_dec)
    uncapped = max(total_dec, ZERO) * DEFAULT_LABOR_SHARE * DEFAULT_DEDUCTION_RATE
    return DeductionPreview(
        total=total_dec,
        include_rot=True,
        rot_amount=amount,
        net_payable=net_payable(total_dec, amount),
        capped=amount < uncapped,
    )


def format_amount(amount) -> str:
    """Display helper: whole currency units with space as thousands separator."""
    whole = _to_decimal(amount).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return f"{whole:,}".replace(",", " ") + f" {CURRENCY}"
