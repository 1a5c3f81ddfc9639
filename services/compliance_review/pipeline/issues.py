"""
Compliance Issue Models
=======================

Issues carry four required core fields (category, severity, title,
description) plus optional location, regulation, highlight and citation
fields. Model output is loosely typed, so it is coerced on ingestion
through ``Issue.from_model_payload`` rather than trusted.

Version: 0.1.0
"""

import re
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from shared.logging import get_logger

logger = get_logger(__name__)


class IssueSeverity(str, Enum):
    """Issue severity, which alone decides the verdict contribution."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class IssueSource(str, Enum):
    """Which pipeline stage produced an issue."""

    RULE = "rule"
    MODEL = "model"


SEVERITY_RANK: dict[IssueSeverity, int] = {
    IssueSeverity.ERROR: 0,
    IssueSeverity.WARNING: 1,
    IssueSeverity.INFO: 2,
}

SEVERITY_SYNONYMS: dict[str, IssueSeverity] = {
    "error": IssueSeverity.ERROR,
    "critical": IssueSeverity.ERROR,
    "high": IssueSeverity.ERROR,
    "major": IssueSeverity.ERROR,
    "warning": IssueSeverity.WARNING,
    "warn": IssueSeverity.WARNING,
    "medium": IssueSeverity.WARNING,
    "moderate": IssueSeverity.WARNING,
    "info": IssueSeverity.INFO,
    "information": IssueSeverity.INFO,
    "informational": IssueSeverity.INFO,
    "low": IssueSeverity.INFO,
    "minor": IssueSeverity.INFO,
}

HIGHLIGHT_MAX_CHARS = 200

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def coerce_severity(value: Any) -> IssueSeverity:
    """Map free-form severity labels onto the three severities, defaulting to warning."""
    if isinstance(value, IssueSeverity):
        return value
    return SEVERITY_SYNONYMS.get(str(value or "").strip().lower(), IssueSeverity.WARNING)


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, (list, dict)):
        return None
    text = str(value).strip()
    return text or None


class Citation(BaseModel):
    """Reference from an issue to a regulation passage."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    doc_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("doc_id", "source_id", "regulation_id", "id"),
    )
    title: str | None = None
    category: str | None = None
    version: str | None = None
    effective_date: str | None = None
    status: str | None = None
    section_path: str | None = None
    snippet: str | None = None

    # Self-reported by the model, used for ordering only
    score: float | None = None

    @field_validator(
        "doc_id",
        "title",
        "category",
        "version",
        "effective_date",
        "status",
        "section_path",
        "snippet",
        mode="before",
    )
    @classmethod
    def _text(cls, v: Any) -> str | None:
        return _optional_text(v)

    @field_validator("score", mode="before")
    @classmethod
    def _clamp_score(cls, v: Any) -> float | None:
        try:
            score = float(v)
        except (TypeError, ValueError):
            return None
        if score != score:  # NaN
            return None
        return min(max(score, 0.0), 1.0)


class Issue(BaseModel):
    """A single compliance finding."""

    model_config = ConfigDict(extra="ignore", use_enum_values=False)

    category: str
    severity: IssueSeverity
    title: str
    description: str

    location: str | None = None
    suggestion: str | None = None

    # Regulation the finding is grounded in
    regulation: str | None = None
    regulation_id: str | None = None
    regulation_title: str | None = None
    regulation_category: str | None = None
    regulation_version: str | None = None
    regulation_effective_date: str | None = None
    regulation_status: str | None = None

    # Verbatim evidence pair
    submission_highlight: str | None = None
    regulation_highlight: str | None = None

    citations: list[Citation] = Field(default_factory=list)
    notes: str | None = None
    issue_code: str | None = None

    source: IssueSource = IssueSource.MODEL
    has_text_content: bool = True
    no_text_reason: str | None = None

    @field_validator("severity", mode="before")
    @classmethod
    def _severity(cls, v: Any) -> IssueSeverity:
        return coerce_severity(v)

    @field_validator(
        "location",
        "suggestion",
        "regulation",
        "regulation_id",
        "regulation_title",
        "regulation_category",
        "regulation_version",
        "regulation_effective_date",
        "regulation_status",
        "notes",
        "issue_code",
        mode="before",
    )
    @classmethod
    def _text(cls, v: Any) -> str | None:
        return _optional_text(v)

    @field_validator("submission_highlight", "regulation_highlight", mode="before")
    @classmethod
    def _highlight(cls, v: Any) -> str | None:
        text = _optional_text(v)
        if text and len(text) > HIGHLIGHT_MAX_CHARS:
            return text[:HIGHLIGHT_MAX_CHARS]
        return text

    @field_validator("citations", mode="before")
    @classmethod
    def _citations(cls, v: Any) -> list[Any]:
        if not isinstance(v, list):
            return []
        return [c for c in v if isinstance(c, (dict, Citation))]

    @property
    def rank(self) -> int:
        return SEVERITY_RANK[self.severity]

    def sorted_citations(self) -> list[Citation]:
        """Citations ordered by descending self-reported score."""
        return sorted(self.citations, key=lambda c: -(c.score or 0.0))

    @classmethod
    def from_model_payload(cls, payload: Any) -> "Issue | None":
        """
        Coerce one element of a model-produced JSON array.

        Keys may be camelCase. A missing title or description is filled
        from the other; an entry with neither is dropped.

        Returns:
            Issue, or None if the payload is unusable
        """
        if not isinstance(payload, dict):
            logger.warning("issue_payload_not_object", payload_type=type(payload).__name__)
            return None

        data = {_CAMEL_BOUNDARY.sub("_", str(k)).lower(): v for k, v in payload.items()}

        title = _optional_text(data.get("title"))
        description = _optional_text(data.get("description"))
        if not title and not description:
            logger.warning("issue_payload_dropped", reason="missing title and description")
            return None

        data["title"] = title or description[:120]  # type: ignore[index]
        data["description"] = description or title
        data["category"] = _optional_text(data.get("category")) or "General"
        data["severity"] = data.get("severity")
        data["source"] = IssueSource.MODEL

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            logger.warning("issue_payload_invalid", error=str(e))
            return None
