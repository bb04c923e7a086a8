"""
Single source of truth for the data models of the copyright checker.

Catalog records, detection results and revision outcomes are defined here
as Pydantic models and reused by the core, the HTTP adapter and the tests.
"""

from enum import Enum
from typing import Annotated, Any, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field


# --- Enumerations ---

class PatternType(str, Enum):
    """How a catalog pattern is matched against a prompt."""
    EXACT = "exact"
    FUZZY = "fuzzy"
    REGEX = "regex"  # reserved, never matched


class Severity(str, Enum):
    """Severity tier of a pattern. Only SEVERE blocks a prompt."""
    SEVERE = "severe"
    MODERATE = "moderate"
    MINOR = "minor"

    @property
    def rank(self) -> int:
        """Sort key: severe (0) before moderate (1) before minor (2)."""
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.SEVERE: 0,
    Severity.MODERATE: 1,
    Severity.MINOR: 2,
}


class Category(str, Enum):
    """Kind of intellectual property a pattern protects."""
    CHARACTER = "character"
    BRAND = "brand"
    TRADEMARK = "trademark"
    ARTWORK = "artwork"
    STYLE = "style"


class RevisionMethod(str, Enum):
    """Which strategy produced a revised prompt."""
    GENERATIVE = "llm"
    RULE_BASED = "rule-based"


class CheckStatus(str, Enum):
    """Machine-readable outcome of a check."""
    OK = "ok"
    RATE_LIMITED = "rate_limited"
    INVALID_INPUT = "invalid_input"
    CATALOG_UNAVAILABLE = "catalog_unavailable"


# --- Catalog ---

class Pattern(BaseModel):
    """
    A catalog entry describing one term to detect and how to explain/replace it.

    Attributes:
        id: Catalog identifier, when the store provides one.
        pattern: Literal text (exact) or indexed text (fuzzy).
        pattern_type: Matching strategy.
        severity: Severity tier.
        category: Protected IP category.
        explanation: Why the term is a problem.
        replacement_suggestion: Generic alternative, if any.
        active: Inactive patterns are never returned by a catalog accessor.
    """

    model_config = ConfigDict(frozen=True)

    id: Optional[str] = Field(default=None, description="Catalog identifier.")
    pattern: str = Field(..., min_length=1, description="Literal or indexed pattern text.")
    pattern_type: PatternType = Field(..., description="Matching strategy.")
    severity: Severity = Field(..., description="Severity tier.")
    category: Category = Field(..., description="Protected IP category.")
    explanation: str = Field(..., description="Human-readable explanation.")
    replacement_suggestion: Optional[str] = Field(
        default=None, description="Suggested generic replacement text."
    )
    active: bool = Field(default=True, description="Whether the pattern is in use.")

    @classmethod
    def from_row(cls, row: Mapping[str, Any], pattern_type: Optional[PatternType] = None) -> "Pattern":
        """
        Build a Pattern from a catalog row.

        Rows fetched with a strategy filter may omit `pattern_type` and
        `active`; the caller supplies the strategy it filtered on.
        """
        data = dict(row)
        if pattern_type is not None and not data.get("pattern_type"):
            data["pattern_type"] = pattern_type
        if data.get("id") is not None:
            data["id"] = str(data["id"])
        if data.get("active") is None:
            data["active"] = True
        return cls.model_validate(data)


# --- Detection results ---

class TextSpan(BaseModel):
    """Character span inside a prompt (end exclusive)."""
    start: int = Field(..., ge=0)
    end: int = Field(..., ge=0)


class Violation(BaseModel):
    """
    One detected pattern in a prompt.

    `pattern` is the catalog literal, never the user's casing. Two violations
    are the same violation when their `pattern` strings are equal.
    """

    pattern: str = Field(..., description="Matched catalog literal.")
    severity: Severity
    category: Category
    explanation: str
    suggestion: Optional[str] = Field(default=None, description="Suggested replacement.")
    position: Optional[TextSpan] = Field(default=None, description="First occurrence in the prompt.")

    @classmethod
    def from_pattern(cls, pattern: Pattern, position: Optional[TextSpan] = None) -> "Violation":
        return cls(
            pattern=pattern.pattern,
            severity=pattern.severity,
            category=pattern.category,
            explanation=pattern.explanation,
            suggestion=pattern.replacement_suggestion,
            position=position,
        )


# --- Revision outcomes ---

class NotAttempted(BaseModel):
    """No violations, so no revision was tried."""
    status: Literal["not_attempted"] = "not_attempted"


class Revised(BaseModel):
    """A revised prompt and the method that produced it."""
    status: Literal["revised"] = "revised"
    text: str
    method: RevisionMethod
    advisory: Optional[str] = Field(
        default=None, description="Set when the generative rewrite was downgraded."
    )


class RevisionFailed(BaseModel):
    """Revision could not produce any text."""
    status: Literal["failed"] = "failed"
    reason: str


RevisionOutcome = Annotated[
    Union[NotAttempted, Revised, RevisionFailed],
    Field(discriminator="status"),
]


class CheckResult(BaseModel):
    """
    Aggregate outcome of one prompt check.

    Attributes:
        succeeded: False only for rate limiting, invalid input or an
            unavailable catalog.
        status: Machine-readable outcome.
        violations: Deduplicated violations, severe first.
        has_blocking: True iff a severe violation is present.
        has_severe / has_moderate / has_minor: Presence per tier.
        message: User-facing summary.
        checked_at: ISO-8601 timestamp.
        revision: Outcome of the automatic revision.
        advisories: Non-fatal notices about degraded sub-features.
    """

    succeeded: bool
    status: CheckStatus = CheckStatus.OK
    violations: List[Violation] = Field(default_factory=list)
    has_blocking: bool = False
    has_severe: bool = False
    has_moderate: bool = False
    has_minor: bool = False
    message: str
    checked_at: str
    revision: RevisionOutcome = Field(default_factory=NotAttempted)
    advisories: List[str] = Field(default_factory=list)

    @computed_field
    @property
    def revised_prompt(self) -> Optional[str]:
        if isinstance(self.revision, Revised):
            return self.revision.text
        return None

    @computed_field
    @property
    def revision_method(self) -> str:
        """`llm`, `rule-based` or `none`."""
        if isinstance(self.revision, Revised):
            return self.revision.method.value
        return "none"

    @computed_field
    @property
    def revision_error(self) -> Optional[str]:
        if isinstance(self.revision, RevisionFailed):
            return self.revision.reason
        if isinstance(self.revision, Revised):
            return self.revision.advisory
        return None


# --- Requests ---

class CheckPromptRequest(BaseModel):
    """Request to check a prompt."""
    prompt: Optional[str] = Field(default=None, description="Prompt text to screen.")
    include_minor: bool = Field(default=True, description="Report minor violations.")
    include_positions: bool = Field(default=False, description="Compute text positions.")
