"""
Security Endpoints
==================
Run text through the injection detector, content filter and PII detector.
"""

import structlog
from fastapi import APIRouter

from rana.api.deps import http_error
from rana.core.errors import ContentTooLongError
from rana.schemas.api import (
    ContentReport,
    InjectionReport,
    PIIReport,
    ScanTextRequest,
    ScanTextResponse,
)
from rana.security import ContentFilter, PIIDetector, PromptInjectionDetector

router = APIRouter()
logger = structlog.get_logger()


@router.post(
    "/scan-text",
    response_model=ScanTextResponse,
    summary="Scan text",
    description="Check text for prompt injection, unsafe content and PII",
)
async def scan_text(body: ScanTextRequest) -> ScanTextResponse:
    injection = PromptInjectionDetector(sensitivity=body.sensitivity).detect(body.text)
    try:
        content = ContentFilter(default_action="warn").filter(body.text)
    except ContentTooLongError as e:
        raise http_error(e) from e
    pii = PIIDetector().process(body.text, body.pii_mode)

    if injection.detected:
        logger.warning("Prompt injection detected", risk=injection.risk_level, patterns=injection.patterns_matched)

    return ScanTextResponse(
        safe=not injection.detected and content.passed,
        injection=InjectionReport(
            detected=injection.detected,
            confidence=round(injection.confidence, 4),
            risk_level=injection.risk_level,
            patterns_matched=injection.patterns_matched,
        ),
        content=ContentReport(
            passed=content.passed,
            action_taken=content.action_taken,
            categories=content.categories_triggered,
            filtered_content=content.filtered_content,
        ),
        pii=PIIReport(detected=pii.detected, by_type=pii.by_type, processed=pii.processed),
    )
