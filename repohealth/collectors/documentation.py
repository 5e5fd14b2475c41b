"""Documentation collector: README sections, badges, and content quality."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Pattern, Tuple

from ..errors import NotFound
from ..models import DOCUMENTATION, AssessmentRequest, Priority, Recommendation, SignalResult
from .base import Collector

README_CANDIDATES = ("README.md", "readme.md", "README.rst", "README.txt", "README")

MIN_LENGTH = 200
GOOD_LENGTH = 1000
EXCELLENT_LENGTH = 3000


@dataclass(frozen=True)
class SectionRule:
    """A canonical README section and the patterns that detect it."""

    name: str
    patterns: Tuple[Pattern[str], ...]
    weight: int
    description: str


def _rule(name: str, weight: int, description: str, *patterns: str, flags: int = re.IGNORECASE | re.MULTILINE) -> SectionRule:
    return SectionRule(
        name=name,
        patterns=tuple(re.compile(pattern, flags) for pattern in patterns),
        weight=weight,
        description=description,
    )


SECTION_RULES: Tuple[SectionRule, ...] = (
    _rule("title", 10, "Project title", r"^#\s+\S.*$", r"^\S.*\n={3,}\s*$"),
    _rule(
        "description",
        15,
        "Project description",
        r"^#{1,3}\s*(description|about|overview)",
        r"^[^#\n\s`|!\[<-].{49,}",
    ),
    _rule(
        "installation",
        20,
        "Installation instructions",
        r"^#{1,3}\s*(install|installation|setup|getting started)",
        r"npm install|yarn add|pip install|go get|composer install|cargo add",
    ),
    _rule(
        "usage",
        20,
        "Usage examples",
        r"^#{1,3}\s*(usage|examples?|how to|quick ?start)",
        r"```[\s\S]*?```",
    ),
    _rule(
        "api",
        10,
        "API documentation",
        r"^#{1,3}\s*(api|reference|documentation)",
        r"^#{1,3}\s*methods?\b",
    ),
    _rule("contributing", 8, "Contribution guidelines", r"^#{1,3}\s*contribut", r"CONTRIBUTING\.md"),
    _rule("license", 7, "License information", r"^#{1,3}\s*licen[cs]e", r"\bLICENSE\b|\bMIT\b|\bApache\b|\bGPL\b"),
    _rule("changelog", 5, "Changelog", r"^#{1,3}\s*(changelog|changes|release)", r"CHANGELOG\.md"),
    _rule("acknowledgments", 5, "Acknowledgments", r"^#{1,3}\s*(acknowledge?ments?|credits?|thanks)"),
)

BADGE_RULES: Tuple[Tuple[str, Tuple[Pattern[str], ...]], ...] = tuple(
    (name, tuple(re.compile(pattern, re.IGNORECASE) for pattern in patterns))
    for name, patterns in (
        ("build", (r"!\[[^\]]*build[^\]]*\]", r"!\[[^\]]*\bci\b[^\]]*\]", r"!\[[^\]]*workflow[^\]]*\]")),
        ("coverage", (r"!\[[^\]]*coverage[^\]]*\]", r"!\[[^\]]*codecov[^\]]*\]")),
        ("version", (r"!\[[^\]]*version[^\]]*\]", r"!\[[^\]]*\bnpm\b[^\]]*\]", r"!\[[^\]]*pypi[^\]]*\]")),
        ("license", (r"!\[[^\]]*license[^\]]*\]",)),
        ("downloads", (r"!\[[^\]]*download[^\]]*\]",)),
        ("dependencies", (r"!\[[^\]]*dependencies[^\]]*\]", r"!\[[^\]]*\bdeps\b[^\]]*\]")),
    )
)

_CODE_BLOCK = re.compile(r"```[\s\S]*?```")
_LINK = re.compile(r"(?<!!)\[[^\]]*\]\([^)]*\)")
_IMAGE = re.compile(r"!\[[^\]]*\]\([^)]*\)")
_TABLE_ROW = re.compile(r"^\s*\|.*\|\s*$", re.MULTILINE)
_HEADER = re.compile(r"^#{1,6}\s", re.MULTILINE)
_CRITICAL_SECTIONS = ("description", "installation", "usage")


def section_score(content: str) -> Tuple[float, List[str], List[str]]:
    """Return (weighted completeness 0-100, found names, missing names)."""
    total = sum(rule.weight for rule in SECTION_RULES)
    earned = 0
    found: List[str] = []
    missing: List[str] = []
    for rule in SECTION_RULES:
        if any(pattern.search(content) for pattern in rule.patterns):
            earned += rule.weight
            found.append(rule.name)
        else:
            missing.append(rule.name)
    return earned / total * 100, found, missing


def badge_score(content: str) -> Tuple[float, List[str]]:
    found = [
        name for name, patterns in BADGE_RULES if any(p.search(content) for p in patterns)
    ]
    return len(found) * 10 / (len(BADGE_RULES) * 10) * 100, found


def quality_score(content: str) -> Tuple[float, Dict[str, Any]]:
    length = len(content)
    if length >= EXCELLENT_LENGTH:
        length_score = 100.0
    elif length >= GOOD_LENGTH:
        length_score = 80.0
    elif length >= MIN_LENGTH:
        length_score = 60.0
    else:
        length_score = max(20.0, length / MIN_LENGTH * 60)

    code_blocks = len(_CODE_BLOCK.findall(content))
    links = len(_LINK.findall(content))
    images = len(_IMAGE.findall(content))
    tables = len(_TABLE_ROW.findall(content)) // 3

    code_block_score = min(100, code_blocks * 5 * 4)
    link_score = min(100, links * 2 * 10)
    image_score = min(100, images * 3 * 8)
    table_score = min(100, tables * 5 * 4)

    score = (
        length_score * 0.4
        + code_block_score * 0.2
        + link_score * 0.2
        + image_score * 0.1
        + table_score * 0.1
    )
    details = {
        "length_score": length_score,
        "code_blocks": code_blocks,
        "links": links,
        "images": images,
        "tables": tables,
        "has_table_of_contents": bool(re.search(r"table of contents|\btoc\b", content, re.IGNORECASE)),
        "has_code_highlighting": bool(re.search(r"```\w+", content)),
        "headers": len(_HEADER.findall(content)),
    }
    return round(score), details


class DocumentationCollector(Collector):
    """Scores the repository's top-level narrative document."""

    name = DOCUMENTATION

    def _collect(self, request: AssessmentRequest) -> SignalResult:
        filename, content = self._fetch_readme(request)
        return self.analyze(content, filename=filename)

    def analyze(self, content: str, *, filename: str = "README.md") -> SignalResult:
        sections, found, missing = section_score(content)
        badges, badge_names = badge_score(content)
        quality, quality_details = quality_score(content)
        score = sections * 0.6 + badges * 0.2 + quality * 0.2

        metrics: Dict[str, Any] = {
            "exists": True,
            "filename": filename,
            "length": len(content),
            "section_score": round(sections, 2),
            "sections_found": found,
            "sections_missing": missing,
            "badge_score": round(badges, 2),
            "badges": badge_names,
            "quality_score": quality,
            "quality": quality_details,
        }
        return SignalResult.collected(
            self.name,
            score=score,
            confidence=0.9,
            metrics=metrics,
            recommendations=_recommendations(
                missing=missing,
                length=len(content),
                code_blocks=quality_details["code_blocks"],
                badges=len(badge_names),
                images=quality_details["images"],
            ),
        )

    def _fetch_readme(self, request: AssessmentRequest) -> Tuple[str, str]:
        last_error: Optional[NotFound] = None
        for candidate in README_CANDIDATES:
            try:
                content = self.context.github.file_text(request.owner, request.repo, candidate)
            except NotFound as exc:
                last_error = exc
                continue
            if content.strip():
                return candidate, content
        raise NotFound(
            f"No README found for {request.slug}"
            + (f" (last error: {last_error})" if last_error else "")
        )

    def _on_missing(self, request: AssessmentRequest, exc: NotFound) -> SignalResult:
        return SignalResult.failed(
            self.name,
            reason=f"No documentation file found in {request.slug}",
            score=0.0,
            metrics={
                "exists": False,
                "length": 0,
                "sections_found": [],
                "sections_missing": [rule.name for rule in SECTION_RULES],
                "badges": [],
            },
            recommendations=[
                Recommendation(
                    category="documentation",
                    priority=Priority.CRITICAL,
                    message="Create project documentation",
                    suggested_action="Add a README.md with a project description, installation steps, and usage examples",
                )
            ],
        )


def _recommendations(
    *, missing: List[str], length: int, code_blocks: int, badges: int, images: int
) -> List[Recommendation]:
    recs: List[Recommendation] = []
    critical_missing = [name for name in _CRITICAL_SECTIONS if name in missing]
    if critical_missing:
        recs.append(
            Recommendation(
                category="documentation",
                priority=Priority.CRITICAL,
                message=f"Add missing critical sections: {', '.join(critical_missing)}",
                suggested_action="Document what the project does, how to install it, and how to use it",
            )
        )
    if length < MIN_LENGTH:
        recs.append(
            Recommendation(
                category="documentation",
                priority=Priority.HIGH,
                message="README is too short",
                suggested_action="Add more detailed descriptions and examples",
            )
        )
    if code_blocks < 2:
        recs.append(
            Recommendation(
                category="documentation",
                priority=Priority.MEDIUM,
                message="Add code examples to demonstrate usage",
                suggested_action="Include fenced code blocks for installation and common tasks",
            )
        )
    if badges == 0:
        recs.append(
            Recommendation(
                category="documentation",
                priority=Priority.LOW,
                message="No status badges found",
                suggested_action="Consider adding badges for build status, version, and license",
            )
        )
    if images == 0:
        recs.append(
            Recommendation(
                category="documentation",
                priority=Priority.LOW,
                message="No screenshots or diagrams",
                suggested_action="Add screenshots or diagrams to make the README more engaging",
            )
        )
    if "api" in missing and code_blocks > 0:
        recs.append(
            Recommendation(
                category="documentation",
                priority=Priority.LOW,
                message="Consider adding an API documentation section",
                suggested_action="Describe the public API or link to reference documentation",
            )
        )
    return recs


__all__ = [
    "BADGE_RULES",
    "DocumentationCollector",
    "README_CANDIDATES",
    "SECTION_RULES",
    "SectionRule",
    "badge_score",
    "quality_score",
    "section_score",
]
