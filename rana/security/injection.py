"""
Prompt Injection Detection
==========================
Regex pattern families, a text-shape heuristic and suspicious-token checks
combined into a single confidence score.

Sensitivity moves the detection threshold only; the patterns never change.
"""

import re
from dataclasses import dataclass, field
from typing import Iterable, Literal, Optional, Union

SensitivityLevel = Literal["low", "medium", "high"]
RiskLevel = Literal["low", "medium", "high", "critical"]

_I = re.IGNORECASE

INJECTION_PATTERNS: dict[str, tuple[re.Pattern, ...]] = {
    "direct_injection": tuple(re.compile(p, _I) for p in (
        r"ignore\s+(all\s+)?(previous|prior|above|earlier)\s+(instructions|directives|commands|rules)",
        r"disregard\s+(all\s+)?(previous|prior|above|earlier)\s+(instructions|directives|commands|rules)",
        r"forget\s+(all\s+)?(previous|prior|above|earlier)\s+(instructions|directives|commands|rules)",
        r"override\s+(all\s+)?(previous|prior|above|earlier)\s+(instructions|directives|commands|rules)",
        r"new\s+(instructions|directives|commands|rules)\s*:",
        r"instead,?\s+(do|follow|execute|perform)",
        r"from\s+now\s+on,?\s+you\s+(are|will|must|should)",
        r"you\s+are\s+now\s+(a|an|in)\s+\w+\s+mode",
    )),
    "system_leakage": tuple(re.compile(p, _I) for p in (
        r"show\s+(me\s+)?(your|the)\s+(system\s+)?(prompt|instructions|directives)",
        r"what\s+(is|are)\s+your\s+(system\s+)?(prompt|instructions|directives)",
        r"reveal\s+(your|the)\s+(system\s+)?(prompt|instructions|configuration)",
        r"print\s+(your|the)\s+(system\s+|original\s+)?(prompt|instructions|configuration)",
        r"output\s+(your|the)\s+(system\s+)?(prompt|instructions|configuration)",
        r"display\s+(your|the)\s+(system\s+)?(prompt|instructions|configuration)",
        r"repeat\s+(your|the)\s+(original\s+)?(prompt|instructions|directives)",
        r"tell\s+me\s+(your|the)\s+(initial|original)\s+(prompt|instructions)",
    )),
    "jailbreak": tuple(re.compile(p, _I) for p in (
        r"you\s+are\s+(no\s+longer|not)\s+(bound\s+by|subject\s+to|constrained\s+by)",
        r"for\s+(educational|research|academic|testing)\s+purposes\s+only",
        r"simulate\s+a\s+(jailbreak|unrestricted|uncensored)",
        r"pretend\s+you\s+(are|have)\s+no\s+(restrictions|limitations|filters)",
        r"act\s+as\s+if\s+you\s+(are|have)\s+no\s+(restrictions|limitations|rules)",
        r"DAN\s+mode",
        r"developer\s+mode",
        r"god\s+mode",
        r"evil\s+mode",
        r"opposite\s+mode",
    )),
    "role_manipulation": tuple(re.compile(p, _I) for p in (
        r"you\s+are\s+now\s+(a|an)\s+(different|new|evil|unrestricted)",
        r"pretend\s+(you\s+are|to\s+be)\s+(a|an)",
        r"roleplay\s+as\s+(a|an)",
        r"simulate\s+(being|a|an)",
        r"act\s+like\s+(a|an)",
        r"imagine\s+you\s+are\s+(a|an)",
    )),
    "obfuscation": (
        re.compile(r"base64|rot13|hex|unicode|ascii", _I),
        re.compile(r"decode\s+this", _I),
        re.compile(r"encoded\s+(message|instruction)", _I),
        re.compile(r"\\x[0-9a-f]{2}", _I),
        re.compile(r"&#\d+;"),
        re.compile(r"\\u[0-9a-f]{4}", _I),
    ),
    "delimiter_injection": tuple(re.compile(p, _I) for p in (
        r"---\s*end\s+of\s+(instructions|prompt|context)",
        r"\[/?(system|user|assistant|instruction)\]",
        r"</?(?:system|user|assistant|instruction)>",
        r"```\s*(system|end|exit|break)",
    )),
    "context_manipulation": tuple(re.compile(p, _I) for p in (
        r"in\s+a\s+(hypothetical|alternate|fictional)\s+(world|scenario|universe)",
        r"let's\s+play\s+a\s+game\s+where",
        r"for\s+the\s+purposes\s+of\s+this\s+(conversation|exercise)",
        r"suspend\s+(your|all)\s+(ethics|guidelines|rules)",
    )),
}

CATEGORY_WEIGHTS: dict[str, float] = {
    "direct_injection": 0.75,
    "system_leakage": 0.75,
    "jailbreak": 0.75,
    "role_manipulation": 0.50,
    "obfuscation": 0.45,
    "delimiter_injection": 0.55,
    "context_manipulation": 0.45,
}
CUSTOM_WEIGHT = 0.55

SUSPICIOUS_TOKENS: tuple[str, ...] = (
    "ignore", "disregard", "forget", "override", "bypass",
    "jailbreak", "unrestricted", "uncensored",
    "system prompt", "system message", "system instructions",
    "original prompt", "initial prompt",
    "DAN mode", "developer mode", "god mode", "evil mode",
    "opposite mode", "unrestricted mode",
    "base64", "rot13", "decode", "encoded",
    "---END---", "[SYSTEM]", "</system>", "```system",
)

IMPERATIVE_VERBS: tuple[str, ...] = (
    "ignore", "disregard", "forget", "override", "bypass",
    "reveal", "show", "display", "print", "output",
    "pretend", "act", "simulate", "roleplay",
)

SENSITIVITY_THRESHOLDS: dict[str, float] = {"low": 0.45, "medium": 0.25, "high": 0.12}

_CAPS_WORD = re.compile(r"\b[A-Z]{2,}\b")
_DELIMITER = re.compile(r"---+|===+|\*\*\*+|```")
_TAG = re.compile(r"</?[a-z]+>", _I)
_BRACKETED = re.compile(r"\[(system|user|assistant|instruction|end)\]", _I)


@dataclass(frozen=True)
class InjectionDetectionResult:
    detected: bool
    confidence: float
    patterns_matched: list[str]
    risk_level: RiskLevel
    heuristic_score: float
    suspicious_tokens: list[str] = field(default_factory=list)


class PromptInjectionDetector:
    def __init__(
        self,
        sensitivity: SensitivityLevel = "medium",
        custom_patterns: Optional[Iterable[Union[str, re.Pattern]]] = None,
        enable_pattern_matching: bool = True,
        enable_heuristic_scoring: bool = True,
        enable_token_detection: bool = True,
    ):
        if sensitivity not in SENSITIVITY_THRESHOLDS:
            raise ValueError(f"Unknown sensitivity: {sensitivity}")
        self.sensitivity = sensitivity
        self.custom_patterns: list[re.Pattern] = []
        for pattern in custom_patterns or []:
            self.add_custom_pattern(pattern)
        self.enable_pattern_matching = enable_pattern_matching
        self.enable_heuristic_scoring = enable_heuristic_scoring
        self.enable_token_detection = enable_token_detection

    def add_custom_pattern(self, pattern: Union[str, re.Pattern]) -> None:
        self.custom_patterns.append(re.compile(pattern, _I) if isinstance(pattern, str) else pattern)

    def set_sensitivity(self, sensitivity: SensitivityLevel) -> None:
        if sensitivity not in SENSITIVITY_THRESHOLDS:
            raise ValueError(f"Unknown sensitivity: {sensitivity}")
        self.sensitivity = sensitivity

    def detect(self, text: str) -> InjectionDetectionResult:
        patterns: list[str] = []
        pattern_score = 0.0
        heuristic = 0.0
        tokens: list[str] = []

        if self.enable_pattern_matching:
            patterns, pattern_score = self._match_patterns(text)
        if self.enable_heuristic_scoring:
            heuristic = heuristic_score(text)
        if self.enable_token_detection:
            tokens = suspicious_tokens(text)

        confidence = pattern_score * 0.7 + (heuristic / 100) * 0.2 + min(len(tokens) / 5, 1) * 0.1

        return InjectionDetectionResult(
            detected=confidence >= SENSITIVITY_THRESHOLDS[self.sensitivity],
            confidence=min(confidence, 1.0),
            patterns_matched=patterns,
            risk_level=self._risk_level(confidence, patterns),
            heuristic_score=heuristic,
            suspicious_tokens=tokens,
        )

    def _match_patterns(self, text: str) -> tuple[list[str], float]:
        matched: list[str] = []
        score = 0.0
        for category, family in INJECTION_PATTERNS.items():
            for pattern in family:
                if pattern.search(text):
                    score += CATEGORY_WEIGHTS[category]
                    if category not in matched:
                        matched.append(category)
        for pattern in self.custom_patterns:
            if pattern.search(text):
                score += CUSTOM_WEIGHT
                if "custom" not in matched:
                    matched.append("custom")
        return matched, min(score, 1.0)

    @staticmethod
    def _risk_level(confidence: float, patterns: list[str]) -> RiskLevel:
        families = {p for p in patterns if p != "custom"}
        if len(families) >= 2 or (confidence >= 0.7 and len(patterns) >= 3) or confidence >= 0.85:
            return "critical"
        if confidence >= 0.5 or len(patterns) >= 3:
            return "high"
        if confidence >= 0.4 or patterns:
            return "medium"
        return "low"


def heuristic_score(text: str) -> float:
    """0-100 score from imperative density, punctuation, shouting, delimiters and tags."""
    lower = text.lower()
    score = min(sum(1 for verb in IMPERATIVE_VERBS if verb in lower) * 10, 30)
    score += min((text.count("!") + text.count("?")) * 2, 15)
    score += min(len(_CAPS_WORD.findall(text)) * 5, 15)
    score += min(len(_DELIMITER.findall(text)) * 5, 15)
    score += min(len(_TAG.findall(text)) * 3, 10)
    score += min(len(_BRACKETED.findall(text)) * 8, 15)
    return float(min(score, 100))


def suspicious_tokens(text: str) -> list[str]:
    lower = text.lower()
    return [token for token in SUSPICIOUS_TOKENS if token.lower() in lower]


def detect_injection(text: str, sensitivity: SensitivityLevel = "medium") -> InjectionDetectionResult:
    return PromptInjectionDetector(sensitivity=sensitivity).detect(text)
