"""
Source Scanner
==============
Line-by-line scan of a source tree for leaked secrets and hard-coded PII.
"""

import fnmatch
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, Literal, Optional, Union

import structlog

logger = structlog.get_logger()

Severity = Literal["low", "medium", "high", "critical"]
FindingType = Literal["secret", "pii"]
SEVERITY_ORDER: tuple[str, ...] = ("low", "medium", "high", "critical")


@dataclass(frozen=True)
class ScanPattern:
    name: str
    pattern: re.Pattern
    severity: Severity


@dataclass(frozen=True)
class Finding:
    file: str
    line: int
    type: FindingType
    severity: Severity
    description: str
    match: str


SECRET_PATTERNS: tuple[ScanPattern, ...] = (
    ScanPattern("AWS Access Key", re.compile(r"\b(AKIA|ABIA|ACCA|ASIA)[A-Z0-9]{16}\b"), "critical"),
    ScanPattern(
        "AWS Secret Key",
        re.compile(r"aws[_-]?secret[_-]?access[_-]?key['\":\s]*['\"]?([A-Za-z0-9/+=]{40})['\"]?", re.I),
        "critical",
    ),
    ScanPattern("Private Key", re.compile(r"-----BEGIN\s+(RSA\s+)?PRIVATE\s+KEY-----"), "critical"),
    ScanPattern(
        "API Key", re.compile(r"\b(api[_-]?key|apikey)['\":\s]*['\"]?([A-Za-z0-9_-]{20,})['\"]?", re.I), "high"
    ),
    ScanPattern("Bearer Token", re.compile(r"bearer\s+[A-Za-z0-9_-]{20,}", re.I), "high"),
    ScanPattern(
        "Password in Code", re.compile(r"(password|passwd|pwd)['\":\s]*['\"]([^'\"]{4,})['\"](?!\s*:)", re.I), "high"
    ),
    ScanPattern(
        "Database URL", re.compile(r"(postgres|mysql|mongodb|redis)://[^'\":\s]+:[^'\"@\s]+@", re.I), "critical"
    ),
    ScanPattern("GitHub Token", re.compile(r"\bgh[pousr]_[A-Za-z0-9]{36}\b"), "critical"),
    ScanPattern("Slack Token", re.compile(r"xox[baprs]-[A-Za-z0-9-]{10,}"), "high"),
    ScanPattern("Stripe Key", re.compile(r"\b(sk_live_[A-Za-z0-9]{24,}|rk_live_[A-Za-z0-9]{24,})\b"), "critical"),
)

PII_PATTERNS: tuple[ScanPattern, ...] = (
    ScanPattern("Email Address", re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"), "medium"),
    ScanPattern("SSN", re.compile(r"\b\d{3}[-\s]?\d{2}[-\s]?\d{4}\b"), "critical"),
    ScanPattern("Credit Card", re.compile(r"\b\d{4}[-\s]?\d{4}[-\s]?\d{4}[-\s]?\d{4}\b"), "critical"),
    ScanPattern("Phone Number", re.compile(r"\b(\+1[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}\b"), "medium"),
)

SKIP_DIRS = frozenset({"node_modules", ".git", "dist", "build", "__pycache__", ".venv"})
SKIP_FILES: tuple[str, ...] = (
    "*.min.js", "*.map", "package-lock.json", "pnpm-lock.yaml", "yarn.lock", "poetry.lock",
    "*.png", "*.jpg", "*.gif", "*.ico", "*.woff*", "*.ttf",
)
PLACEHOLDER_MARKERS: tuple[str, ...] = ("example", "test", "fake")


def _truncate(value: str, length: int) -> str:
    return value[:length] + "..."


def _is_test_path(path: str) -> bool:
    return "test" in path or "spec" in path


def severity_at_least(severity: str, minimum: str) -> bool:
    return SEVERITY_ORDER.index(severity) >= SEVERITY_ORDER.index(minimum)


def scan_text(text: str, file: str = "<text>", include_pii: bool = True) -> list[Finding]:
    """
    Scan text line by line. PII is skipped for test paths and for matches
    that look like placeholder data.
    """
    findings = []
    check_pii = include_pii and not _is_test_path(file)
    for number, line in enumerate(text.splitlines(), start=1):
        for spec in SECRET_PATTERNS:
            for match in spec.pattern.finditer(line):
                findings.append(
                    Finding(file, number, "secret", spec.severity, f"Potential {spec.name} detected",
                            _truncate(match.group(0), 20))
                )
        if not check_pii:
            continue
        for spec in PII_PATTERNS:
            for match in spec.pattern.finditer(line):
                value = match.group(0)
                if any(marker in value for marker in PLACEHOLDER_MARKERS):
                    continue
                findings.append(
                    Finding(file, number, "pii", spec.severity, f"Potential {spec.name} in code",
                            _truncate(value, 15))
                )
    return findings


def iter_files(root: Path) -> Iterator[Path]:
    if root.is_file():
        yield root
        return
    for path in sorted(root.rglob("*")):
        if not path.is_file():
            continue
        if SKIP_DIRS.intersection(path.relative_to(root).parts[:-1]):
            continue
        if any(fnmatch.fnmatch(path.name, pattern) for pattern in SKIP_FILES):
            continue
        yield path


@dataclass
class ScanReport:
    files_scanned: int
    findings: list[Finding]

    def by_severity(self, severity: Severity) -> list[Finding]:
        return [f for f in self.findings if f.severity == severity]

    @property
    def failed(self) -> bool:
        """Critical or high findings fail a scan."""
        return any(severity_at_least(f.severity, "high") for f in self.findings)


def scan_path(
    root: Union[str, Path],
    min_severity: Severity = "medium",
    types: Optional[Iterable[FindingType]] = None,
) -> ScanReport:
    root = Path(root)
    if not root.exists():
        raise FileNotFoundError(f"Path not found: {root}")

    wanted = set(types or ("secret", "pii"))
    files = 0
    findings: list[Finding] = []
    for path in iter_files(root):
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.debug("Skipping unreadable file", path=str(path), error=str(e))
            continue
        files += 1
        display = str(path.relative_to(root)) if path != root else path.name
        findings.extend(
            f for f in scan_text(text, file=display, include_pii="pii" in wanted)
            if f.type in wanted and severity_at_least(f.severity, min_severity)
        )

    logger.info("Security scan complete", root=str(root), files=files, findings=len(findings))
    return ScanReport(files_scanned=files, findings=findings)
