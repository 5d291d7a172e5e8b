"""Per-language outcomes and the aggregate report of a sync run."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class SyncStatus(str, Enum):
    """Result of processing one language."""

    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    """Nothing to do for this language, e.g. its XLIFF file is missing"""

    FAILED = "failed"
    NOT_ATTEMPTED = "not_attempted"
    """The run aborted before reaching this language"""


@dataclass
class SyncOutcome:
    """Outcome of one language in a sync run."""

    language: str
    status: SyncStatus
    reason: Optional[str] = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"language": self.language, "status": self.status.value}
        if self.reason:
            data["reason"] = self.reason
        if self.details:
            data["details"] = self.details
        return data


@dataclass
class SyncReport:
    """Aggregate result of an upload or download run.

    Outcomes are kept in processing order. A run with skipped languages
    still succeeds; only a terminal ``error`` fails it.
    """

    direction: str
    outcomes: list[SyncOutcome] = field(default_factory=list)
    error: Optional[Exception] = None
    source_language: Optional[str] = None
    added_remotely: list[str] = field(default_factory=list)
    """Languages created in POEditor during this run"""

    new_local_languages: list[str] = field(default_factory=list)
    """Languages that did not exist in the Xcode project before the import"""

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def add(
        self,
        language: str,
        status: SyncStatus,
        reason: Optional[str] = None,
        **details: Any,
    ) -> SyncOutcome:
        """Record (or replace) the outcome for a language."""
        outcome = SyncOutcome(language, status, reason, dict(details))
        for index, existing in enumerate(self.outcomes):
            if existing.language == language:
                outcome.details = {**existing.details, **outcome.details}
                self.outcomes[index] = outcome
                return outcome
        self.outcomes.append(outcome)
        return outcome

    def get(self, language: str) -> Optional[SyncOutcome]:
        for outcome in self.outcomes:
            if outcome.language == language:
                return outcome
        return None

    def abort(self, error: Exception, remaining: list[str]) -> None:
        """Record a terminal error and mark the remaining languages."""
        self.error = error
        for language in remaining:
            self.add(language, SyncStatus.NOT_ATTEMPTED)

    def languages_with(self, status: SyncStatus) -> list[str]:
        return [o.language for o in self.outcomes if o.status == status]

    def count(self, status: SyncStatus) -> int:
        return len(self.languages_with(status))

    @property
    def succeeded_count(self) -> int:
        return self.count(SyncStatus.SUCCEEDED)

    @property
    def skipped_count(self) -> int:
        return self.count(SyncStatus.SKIPPED)

    @property
    def failed_count(self) -> int:
        return self.count(SyncStatus.FAILED)

    @property
    def not_attempted_count(self) -> int:
        return self.count(SyncStatus.NOT_ATTEMPTED)

    def to_dict(self) -> dict[str, Any]:
        """Convert report to a dictionary for JSON output."""
        return {
            "direction": self.direction,
            "success": self.succeeded,
            "error": str(self.error) if self.error else None,
            "source_language": self.source_language,
            "succeeded": self.succeeded_count,
            "skipped": self.skipped_count,
            "failed": self.failed_count,
            "not_attempted": self.not_attempted_count,
            "added_remotely": self.added_remotely,
            "new_local_languages": self.new_local_languages,
            "languages": [o.to_dict() for o in self.outcomes],
        }
