"""Phone number normalization for WhatsApp identifiers.

Brazilian numbers arrive in several spellings (with or without the 55 country
code, with or without the mobile 9 after the area code, with a JID suffix).
The gateway accepts only some of them per instance, so sends iterate the
variants produced here until one is accepted.
"""

import re
from dataclasses import dataclass, field

JID_SUFFIX = "@s.whatsapp.net"
GROUP_SUFFIX = "@g.us"
COUNTRY_CODE = "55"


@dataclass(frozen=True)
class NormalizedPhone:
    canonical: str
    variants: list[str] = field(default_factory=list)


def extract_digits(raw: str | None) -> str:
    """Digits of the identifier part, transport suffix removed."""
    local_part = (raw or "").split("@")[0]
    return re.sub(r"\D", "", local_part)


def format_phone(raw: str | None) -> str:
    """Canonical digits for a raw WhatsApp identifier (best effort, never fails)."""
    digits = extract_digits(raw)

    if digits.startswith("550"):
        digits = COUNTRY_CODE + digits[3:]

    if not digits.startswith(COUNTRY_CODE) and len(digits) in (10, 11):
        digits = COUNTRY_CODE + digits

    # 55 + DDD + 8 digits: mobile numbers lost the 9 prefix
    if digits.startswith(COUNTRY_CODE) and len(digits) == 12:
        ddd = digits[2:4]
        number = digits[4:]
        if not number.startswith("9") and int(ddd) >= 11:
            digits = f"{COUNTRY_CODE}{ddd}9{number}"

    return digits


def phone_variants(canonical: str) -> list[str]:
    """Ordered, deduplicated spellings to try on send."""
    variants: list[str] = []

    def add(value: str) -> None:
        if value and value not in variants:
            variants.append(value)

    add(canonical)
    if canonical:
        add(f"{canonical}{JID_SUFFIX}")

    if canonical.startswith(COUNTRY_CODE) and len(canonical) >= 12:
        add(canonical[2:])

    if canonical.startswith(COUNTRY_CODE) and len(canonical) == 13:
        add(canonical[:4] + canonical[5:])
    elif canonical.startswith(COUNTRY_CODE) and len(canonical) == 12:
        ddd = canonical[2:4]
        number = canonical[4:]
        if not number.startswith("9"):
            add(f"{COUNTRY_CODE}{ddd}9{number}")

    if not variants:
        variants.append(canonical)
    return variants


def normalize_phone(raw: str | None) -> NormalizedPhone:
    canonical = format_phone(raw)
    return NormalizedPhone(canonical=canonical, variants=phone_variants(canonical))


def is_group_jid(raw: str | None) -> bool:
    return GROUP_SUFFIX in (raw or "")


def mask_phone(phone: str | None) -> str:
    if not phone:
        return "***"
    return f"{phone[:6]}***"
