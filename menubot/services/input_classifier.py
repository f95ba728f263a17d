import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

SELECTION_PREFIX = "lm_"

# "1️⃣" is the digit, an optional VS16 and the combining keycap
KEYCAP_PATTERN = re.compile("([0-9#*])\ufe0f?\u20e3")
WHITESPACE = re.compile(r"\s+")


class InputKind(str, Enum):
    SELECTION = "selection"
    NUMBER = "number"
    TEXT = "text"


@dataclass(frozen=True)
class ClassifiedInput:
    kind: InputKind
    raw: str
    normalized: str
    id: Optional[str] = None
    digits: Optional[str] = None
    value: Optional[int] = None
    keywords: tuple[str, ...] = field(default_factory=tuple)


def map_keycaps(text: str) -> str:
    return KEYCAP_PATTERN.sub(r"\1", text)


def normalize_text(text: str) -> str:
    return WHITESPACE.sub(" ", text.strip().lower())


def extract_keywords(normalized: str) -> tuple[str, ...]:
    seen: list[str] = []
    for token in normalized.split(" "):
        if len(token) > 2 and token not in seen:
            seen.append(token)
    return tuple(seen)


def classify_input(text: Optional[str], selection_id: Optional[str] = None) -> ClassifiedInput:
    raw = text or ""

    if selection_id:
        selected = selection_id.strip().lower()
        return ClassifiedInput(kind=InputKind.SELECTION, raw=raw or selection_id, normalized=selected, id=selected)

    trimmed = raw.strip()
    if trimmed.lower().startswith(SELECTION_PREFIX):
        selected = trimmed.lower()
        return ClassifiedInput(kind=InputKind.SELECTION, raw=raw, normalized=selected, id=selected)

    mapped = map_keycaps(trimmed)
    if mapped and mapped.isascii() and mapped.isdigit():
        return ClassifiedInput(
            kind=InputKind.NUMBER,
            raw=raw,
            normalized=mapped,
            digits=mapped,
            value=int(mapped),
        )

    normalized = normalize_text(mapped)
    return ClassifiedInput(
        kind=InputKind.TEXT,
        raw=raw,
        normalized=normalized,
        keywords=extract_keywords(normalized),
    )
