"""
Content Filter
==============
Blocklist scanning for profanity, harmful content and spam, with allowlist
exceptions, per-category actions and redaction.
"""

import re
from dataclasses import dataclass, field
from typing import Iterable, Literal, Optional, Union

import structlog

from rana.core.errors import ContentBlockedError, ContentTooLongError

logger = structlog.get_logger()

FilterAction = Literal["block", "redact", "warn", "log"]
FilterCategory = Literal["profanity", "violence", "adult", "hate", "self-harm", "spam", "custom"]
FilterSeverity = Literal["low", "medium", "high", "critical"]

SEVERITY_LEVELS: dict[str, int] = {"low": 1, "medium": 2, "high": 3, "critical": 4}
ACTION_PRIORITY: dict[str, int] = {"log": 0, "warn": 1, "redact": 2, "block": 3}


@dataclass(frozen=True)
class FilterPattern:
    """A string or regex tagged with a category and severity."""

    pattern: Union[str, re.Pattern]
    category: FilterCategory
    severity: FilterSeverity
    whole_word: bool = False
    case_sensitive: bool = False


@dataclass(frozen=True)
class FilterViolation:
    category: FilterCategory
    match: str
    position: int
    severity: FilterSeverity
    context: str = ""


@dataclass
class FilterResult:
    passed: bool
    action_taken: FilterAction
    filtered_content: str
    violations: list[FilterViolation] = field(default_factory=list)
    highest_severity: FilterSeverity = "low"
    categories_triggered: list[str] = field(default_factory=list)


def _builtin(pattern: str, category: FilterCategory, severity: FilterSeverity) -> FilterPattern:
    return FilterPattern(re.compile(pattern, re.IGNORECASE), category, severity)


BUILT_IN_PROFANITY = (
    _builtin(r"\b(damn|hell|crap)\b", "profanity", "low"),
    _builtin(r"\b(ass|bastard)\b", "profanity", "medium"),
    _builtin(r"\b(f[*u]ck|sh[*i]t|b[*i]tch)\b", "profanity", "high"),
)

BUILT_IN_HARMFUL = (
    _builtin(r"\b(kill|murder|assault|attack)\s+(you|them|him|her)\b", "violence", "high"),
    _builtin(r"\b(how\s+to\s+(kill|murder|harm))\b", "violence", "critical"),
    _builtin(r"\b(weapon|gun|knife|bomb)\s+(instructions|tutorial|guide)\b", "violence", "critical"),
    _builtin(
        r"\b(hate|despise)\s+(all\s+)?(blacks|whites|jews|muslims|christians|gays|women|men)\b",
        "hate",
        "critical",
    ),
    _builtin(r"\b(racial|ethnic)\s+slur\b", "hate", "high"),
    _builtin(r"\b(how\s+to\s+(commit\s+)?suicide|kill\s+myself)\b", "self-harm", "critical"),
    _builtin(r"\b(self\s+harm|cutting|hurt\s+myself)\b", "self-harm", "high"),
    _builtin(r"\b(porn|pornography|xxx|explicit\s+content)\b", "adult", "high"),
    _builtin(r"\b(sexual|nude|naked)\s+(images|photos|videos)\b", "adult", "medium"),
)

BUILT_IN_SPAM = (
    _builtin(r"\b(click\s+here|buy\s+now|limited\s+offer|act\s+now)\b", "spam", "low"),
)


def _context(content: str, index: int, radius: int = 50) -> str:
    start = max(0, index - radius)
    end = min(len(content), index + radius)
    snippet = content[start:end]
    if start > 0:
        snippet = "..." + snippet
    if end < len(content):
        snippet += "..."
    return snippet


def _is_whole_word(content: str, index: int, length: int) -> bool:
    before = content[index - 1] if index > 0 else " "
    after = content[index + length] if index + length < len(content) else " "
    return not (before.isalnum() or before == "_") and not (after.isalnum() or after == "_")


class ContentFilter:
    """
    Scans text against an ordered pattern list.

    The action is the most restrictive of the default and any matching
    category override. A critical violation always blocks.
    """

    def __init__(
        self,
        blocklist: Optional[Iterable[FilterPattern]] = None,
        allowlist: Optional[Iterable[str]] = None,
        default_action: FilterAction = "warn",
        severity_threshold: FilterSeverity = "low",
        category_actions: Optional[dict[str, FilterAction]] = None,
        enable_profanity_filter: bool = True,
        enable_harmful_content_filter: bool = True,
        enable_spam_filter: bool = True,
        redaction_text: str = "[FILTERED]",
        max_content_length: int = 100_000,
    ):
        self.blocklist = list(blocklist or [])
        self.allowlist = {word.lower() for word in allowlist or []}
        self.default_action = default_action
        self.severity_threshold = severity_threshold
        self.category_actions = dict(category_actions or {})
        self.enable_profanity_filter = enable_profanity_filter
        self.enable_harmful_content_filter = enable_harmful_content_filter
        self.enable_spam_filter = enable_spam_filter
        self.redaction_text = redaction_text
        self.max_content_length = max_content_length
        self.patterns = self._build_patterns()

    def _build_patterns(self) -> list[FilterPattern]:
        patterns = list(self.blocklist)
        if self.enable_profanity_filter:
            patterns.extend(BUILT_IN_PROFANITY)
        if self.enable_harmful_content_filter:
            patterns.extend(BUILT_IN_HARMFUL)
        if self.enable_spam_filter:
            patterns.extend(BUILT_IN_SPAM)
        return patterns

    def add_pattern(self, pattern: FilterPattern) -> None:
        self.patterns.append(pattern)

    def remove_patterns_by_category(self, category: FilterCategory) -> None:
        self.patterns = [p for p in self.patterns if p.category != category]

    def add_to_allowlist(self, word: str) -> None:
        self.allowlist.add(word.lower())

    def remove_from_allowlist(self, word: str) -> None:
        self.allowlist.discard(word.lower())

    def filter(self, content: str) -> FilterResult:
        if len(content) > self.max_content_length:
            raise ContentTooLongError(
                f"Content exceeds maximum length of {self.max_content_length} characters"
            )

        threshold = SEVERITY_LEVELS[self.severity_threshold]
        violations = [
            v for v in self._find_violations(content)
            if v.match.lower() not in self.allowlist and SEVERITY_LEVELS[v.severity] >= threshold
        ]
        action = self._determine_action(violations)
        filtered = self._redact(content, violations) if action == "redact" else content

        if violations:
            logger.info(
                "Content filter violations",
                action=action,
                categories=sorted({v.category for v in violations}),
                count=len(violations),
            )

        return FilterResult(
            passed=not violations,
            action_taken=action,
            filtered_content=filtered,
            violations=violations,
            highest_severity=max(
                (v.severity for v in violations), key=SEVERITY_LEVELS.__getitem__, default="low"
            ),
            categories_triggered=list(dict.fromkeys(v.category for v in violations)),
        )

    def is_safe(self, content: str) -> bool:
        return self.filter(content).passed

    def _find_violations(self, content: str) -> list[FilterViolation]:
        violations = []
        for pattern in self.patterns:
            for text, index in self._matches(content, pattern):
                violations.append(
                    FilterViolation(
                        category=pattern.category,
                        match=text,
                        position=index,
                        severity=pattern.severity,
                        context=_context(content, index),
                    )
                )
        return violations

    @staticmethod
    def _matches(content: str, pattern: FilterPattern) -> list[tuple[str, int]]:
        if isinstance(pattern.pattern, re.Pattern):
            return [(m.group(0), m.start()) for m in pattern.pattern.finditer(content) if m.group(0)]

        needle = pattern.pattern if pattern.case_sensitive else pattern.pattern.lower()
        haystack = content if pattern.case_sensitive else content.lower()
        found = []
        index = haystack.find(needle)
        while needle and index != -1:
            if not pattern.whole_word or _is_whole_word(content, index, len(needle)):
                found.append((content[index:index + len(needle)], index))
            index = haystack.find(needle, index + 1)
        return found

    def _determine_action(self, violations: list[FilterViolation]) -> FilterAction:
        if not violations:
            return "log"
        if any(v.severity == "critical" for v in violations):
            return "block"
        action = self.default_action
        for violation in violations:
            override = self.category_actions.get(violation.category)
            if override and ACTION_PRIORITY[override] > ACTION_PRIORITY[action]:
                action = override
        return action

    def _redact(self, content: str, violations: list[FilterViolation]) -> str:
        spans = sorted((v.position, v.position + len(v.match)) for v in violations)
        merged: list[list[int]] = []
        for start, end in spans:
            if merged and start <= merged[-1][1]:
                merged[-1][1] = max(merged[-1][1], end)
            else:
                merged.append([start, end])

        redacted = content
        for start, end in reversed(merged):
            redacted = redacted[:start] + self.redaction_text + redacted[end:]
        return redacted

    def assert_safe(self, content: str) -> None:
        """Raise ContentBlockedError when the content would be blocked."""
        result = self.filter(content)
        if result.action_taken == "block":
            raise ContentBlockedError(result.violations)


def assert_content_safe(content: str, **options) -> None:
    """Filter with a blocking default action and raise on any violation."""
    options["default_action"] = "block"
    ContentFilter(**options).assert_safe(content)
