"""
PII Detection
=============
Regional regex detection of emails, phone numbers, national IDs, card
numbers and IP addresses, plus heuristic name detection.

Results can be reported as-is, redacted with placeholders, or masked with
the format preserved.
"""

import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Iterable, Literal, Optional

PIIType = Literal["email", "phone", "ssn", "credit_card", "ip_address", "name", "custom"]
PIIRegion = Literal["US", "EU", "UK", "CA", "AU", "global"]
PIIMode = Literal["detect", "redact", "mask"]

_EMAIL = r"\b[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}\b"
_CARD = r"\b\d{4}[-\s]?\d{4}[-\s]?\d{4}[-\s]?\d{4}\b"
_IP = r"\b(?:(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.){3}(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\b"
_NANP_PHONE = r"\b(\+?1[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}\b"


def _region(phone: str, ssn: str) -> dict[str, re.Pattern]:
    return {
        "email": re.compile(_EMAIL),
        "phone": re.compile(phone),
        "ssn": re.compile(ssn),
        "credit_card": re.compile(_CARD),
        "ip_address": re.compile(_IP),
    }


REGION_PATTERNS: dict[str, dict[str, re.Pattern]] = {
    "US": _region(_NANP_PHONE, r"\b\d{3}[-\s]?\d{2}[-\s]?\d{4}\b"),
    "EU": _region(r"\b(\+?[1-9]\d{0,3}[-.\s]?)?(\(?\d{1,4}\)?[-.\s]?){1,3}\d{1,4}\b", r"\b\d{9,13}\b"),
    "UK": _region(
        r"\b(\+?44[-.\s]?)?(\(?\d{3,5}\)?[-.\s]?\d{3,4}[-.\s]?\d{3,4})\b",
        r"\b[A-Z]{2}\d{6}[A-D]\b",
    ),
    "CA": _region(_NANP_PHONE, r"\b\d{3}[-\s]?\d{3}[-\s]?\d{3}\b"),
    "AU": _region(
        r"\b(\+?61[-.\s]?)?(\(?\d{1}[-.\s]?\)?)?(\d{4}[-.\s]?\d{4})\b",
        r"\b\d{3}[-\s]?\d{3}[-\s]?\d{3}\b",
    ),
    "global": _region(
        r"\b(\+?[1-9]\d{0,3}[-.\s]?)?(\(?\d{1,4}\)?[-.\s]?){1,4}\d{1,4}\b",
        r"\b\d{3}[-\s]?\d{2,3}[-\s]?\d{3,4}\b",
    ),
}

DEFAULT_PLACEHOLDERS: dict[str, str] = {
    "email": "[EMAIL]",
    "phone": "[PHONE]",
    "ssn": "[SSN]",
    "credit_card": "[CREDIT_CARD]",
    "ip_address": "[IP_ADDRESS]",
    "name": "[NAME]",
    "custom": "[REDACTED]",
}

DEFAULT_TYPES: tuple[str, ...] = ("email", "phone", "ssn", "credit_card", "ip_address")

NAME_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(r"\b(?:Mr|Mrs|Ms|Miss|Dr|Prof|Sir|Madam|Lord|Lady)\.?\s+[A-Z][a-z]+(?:\s+[A-Z][a-z]+)?\b"),
    re.compile(r"\b[A-Z][a-z]+(?:\s+[A-Z]\.?)?\s+[A-Z][a-z]+\b"),
)
_INTRODUCED_NAME = re.compile(
    r"(?:my name is|I am|I'm|this is|signed by|from|by)\s+([A-Z][a-z]+(?:\s+[A-Z][a-z]+)?)\b",
    re.IGNORECASE,
)
_HONORIFIC_PREFIX = re.compile(r"^(Mr|Mrs|Ms|Miss|Dr|Prof)\.", re.IGNORECASE)
_CAPITALIZED = re.compile(r"^[A-Z][a-z]+$")

COMMON_NAMES = frozenset({
    "John", "Jane", "Michael", "Sarah", "David", "Emily", "Robert", "Mary",
    "James", "Jennifer", "William", "Linda", "Richard", "Patricia", "Joseph",
    "Smith", "Johnson", "Williams", "Brown", "Jones", "Garcia", "Miller",
    "Davis", "Rodriguez", "Martinez", "Anderson", "Taylor", "Thomas", "Moore",
})


@dataclass(frozen=True)
class CustomPIIPattern:
    name: str
    pattern: re.Pattern
    placeholder: Optional[str] = None
    mask: Optional[Callable[[str], str]] = None


@dataclass
class PIIDetection:
    type: PIIType
    value: str
    start: int
    end: int
    confidence: Optional[float] = None
    replacement: Optional[str] = None


@dataclass
class PIIResult:
    original: str
    processed: str
    detections: list[PIIDetection] = field(default_factory=list)

    @property
    def detected(self) -> bool:
        return bool(self.detections)

    @property
    def by_type(self) -> dict[str, int]:
        return dict(Counter(d.type for d in self.detections))


def name_confidence(value: str) -> float:
    """Heuristic 0-1 score that a capitalized phrase is a person's name."""
    parts = value.split()
    confidence = 0.5
    confidence += sum(1 for part in parts if part in COMMON_NAMES) / len(parts) * 0.3
    if _HONORIFIC_PREFIX.match(value):
        confidence += 0.2
    if all(_CAPITALIZED.match(part) for part in parts):
        confidence += 0.1
    if len(parts) == 1:
        confidence -= 0.2
    return max(0.0, min(1.0, confidence))


class PIIDetector:
    def __init__(
        self,
        region: PIIRegion = "US",
        types: Iterable[PIIType] = DEFAULT_TYPES,
        detect_names: bool = False,
        name_confidence_threshold: float = 0.6,
        preserve_format: bool = True,
        placeholders: Optional[dict[str, str]] = None,
        custom_patterns: Optional[Iterable[CustomPIIPattern]] = None,
    ):
        if region not in REGION_PATTERNS:
            raise ValueError(f"Unknown PII region: {region}")
        self.region = region
        self.types = tuple(types)
        self.detect_names = detect_names
        self.name_confidence_threshold = name_confidence_threshold
        self.preserve_format = preserve_format
        self.placeholders = {**DEFAULT_PLACEHOLDERS, **(placeholders or {})}
        self.custom_patterns = list(custom_patterns or [])

    def _candidates(self, text: str) -> list[PIIDetection]:
        found = []
        patterns = REGION_PATTERNS[self.region]
        for pii_type in self.types:
            pattern = patterns.get(pii_type)
            if pattern is None:
                continue
            for match in pattern.finditer(text):
                if match.group(0):
                    found.append(PIIDetection(pii_type, match.group(0), match.start(), match.end()))

        for custom in self.custom_patterns:
            for match in custom.pattern.finditer(text):
                if match.group(0):
                    found.append(PIIDetection("custom", match.group(0), match.start(), match.end()))

        if self.detect_names:
            found.extend(self._names(text))
        return found

    def _names(self, text: str) -> list[PIIDetection]:
        spans = [(m.group(0), m.start(), m.end()) for p in NAME_PATTERNS for m in p.finditer(text)]
        spans += [(m.group(1), m.start(1), m.end(1)) for m in _INTRODUCED_NAME.finditer(text)]
        names = []
        for value, start, end in spans:
            confidence = name_confidence(value)
            if confidence >= self.name_confidence_threshold:
                names.append(PIIDetection("name", value, start, end, confidence=confidence))
        return names

    def detect(self, text: str) -> PIIResult:
        # Overlapping matches keep the earliest, then the longest.
        candidates = sorted(self._candidates(text), key=lambda d: (d.start, -(d.end - d.start)))
        detections: list[PIIDetection] = []
        for candidate in candidates:
            if detections and candidate.start < detections[-1].end:
                continue
            detections.append(candidate)
        return PIIResult(original=text, processed=text, detections=detections)

    def redact(self, text: str) -> PIIResult:
        return self._replace(text, self._placeholder)

    def mask(self, text: str) -> PIIResult:
        return self._replace(text, self._mask)

    def process(self, text: str, mode: PIIMode = "redact") -> PIIResult:
        if mode == "detect":
            return self.detect(text)
        if mode == "redact":
            return self.redact(text)
        if mode == "mask":
            return self.mask(text)
        raise ValueError(f"Invalid PII mode: {mode}")

    def has_pii(self, text: str) -> bool:
        return self.detect(text).detected

    def _replace(self, text: str, replacement: Callable[[PIIDetection], str]) -> PIIResult:
        result = self.detect(text)
        pieces = []
        cursor = 0
        for detection in result.detections:
            detection.replacement = replacement(detection)
            pieces.append(text[cursor:detection.start])
            pieces.append(detection.replacement)
            cursor = detection.end
        pieces.append(text[cursor:])
        result.processed = "".join(pieces)
        return result

    def _placeholder(self, detection: PIIDetection) -> str:
        if detection.type == "custom":
            custom = self._custom_for(detection.value)
            if custom and custom.placeholder:
                return custom.placeholder
        return self.placeholders.get(detection.type, DEFAULT_PLACEHOLDERS["custom"])

    def _custom_for(self, value: str) -> Optional[CustomPIIPattern]:
        return next((c for c in self.custom_patterns if c.pattern.search(value)), None)

    def _mask(self, detection: PIIDetection) -> str:
        value = detection.value
        if not self.preserve_format:
            return "*" * len(value)
        if detection.type == "custom":
            custom = self._custom_for(value)
            return custom.mask(value) if custom and custom.mask else "*" * len(value)
        masker = _MASKERS.get(detection.type)
        return masker(value) if masker else "*" * len(value)


def mask_email(email: str) -> str:
    local, _, domain = email.partition("@")
    if not domain:
        return "*" * len(email)
    masked = local[0] + "*" * (len(local) - 1) if len(local) > 2 else "*" * len(local)
    return f"{masked}@{domain}"


def mask_phone(phone: str) -> str:
    digits = re.sub(r"\D", "", phone)
    if len(digits) < 4:
        return "*" * len(phone)
    masked = iter("*" * (len(digits) - 4) + digits[-4:])
    return "".join(next(masked) if char.isdigit() else char for char in phone)


def mask_ssn(ssn: str) -> str:
    digits = re.sub(r"\D", "", ssn)
    if len(digits) < 4:
        return "*" * len(ssn)
    return "***-**-" + digits[-4:]


def mask_credit_card(number: str) -> str:
    digits = re.sub(r"\D", "", number)
    if len(digits) < 4:
        return "*" * len(number)
    separator = "-" if "-" in number else " " if " " in number else ""
    if separator:
        return separator.join(["****"] * 3 + [digits[-4:]])
    return "*" * (len(digits) - 4) + digits[-4:]


def mask_ip(address: str) -> str:
    parts = address.split(".")
    if len(parts) != 4:
        return "*" * len(address)
    return f"{parts[0]}.***.***.***"


def mask_name(name: str) -> str:
    return " ".join(part[0] + "*" * (len(part) - 1) if len(part) > 1 else part for part in name.split())


_MASKERS: dict[str, Callable[[str], str]] = {
    "email": mask_email,
    "phone": mask_phone,
    "ssn": mask_ssn,
    "credit_card": mask_credit_card,
    "ip_address": mask_ip,
    "name": mask_name,
}


def validate_credit_card(number: str) -> bool:
    """Luhn checksum over the digits of a 13-19 digit card number."""
    digits = [int(d) for d in re.sub(r"\D", "", number)]
    if not 13 <= len(digits) <= 19:
        return False
    total = 0
    for i, digit in enumerate(reversed(digits)):
        if i % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return total % 10 == 0


_CARD_TYPES: tuple[tuple[str, re.Pattern], ...] = (
    ("Visa", re.compile(r"^4")),
    ("Mastercard", re.compile(r"^5[1-5]")),
    ("American Express", re.compile(r"^3[47]")),
    ("Discover", re.compile(r"^6(?:011|5)")),
    ("JCB", re.compile(r"^35")),
    ("Diners Club", re.compile(r"^30[0-5]")),
)


def detect_credit_card_type(number: str) -> Optional[str]:
    digits = re.sub(r"\D", "", number)
    return next((name for name, prefix in _CARD_TYPES if prefix.match(digits)), None)
