"""
Security
========
Prompt injection detection, content filtering, PII handling and source
scanning.
"""

from rana.security.content_filter import (
    ContentFilter,
    FilterPattern,
    FilterResult,
    FilterViolation,
    assert_content_safe,
)
from rana.security.injection import (
    InjectionDetectionResult,
    PromptInjectionDetector,
    detect_injection,
)
from rana.security.pii import (
    CustomPIIPattern,
    PIIDetection,
    PIIDetector,
    PIIResult,
    detect_credit_card_type,
    validate_credit_card,
)
from rana.security.scanner import Finding, ScanReport, scan_path, scan_text

__all__ = [
    "ContentFilter",
    "CustomPIIPattern",
    "FilterPattern",
    "FilterResult",
    "FilterViolation",
    "Finding",
    "InjectionDetectionResult",
    "PIIDetection",
    "PIIDetector",
    "PIIResult",
    "PromptInjectionDetector",
    "ScanReport",
    "assert_content_safe",
    "detect_credit_card_type",
    "detect_injection",
    "scan_path",
    "scan_text",
    "validate_credit_card",
]
