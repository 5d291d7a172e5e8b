"""Data models for POEditor API responses."""

from dataclasses import dataclass, field
from typing import Any, Optional

from .exceptions import POEditorInvalidResponseError


@dataclass
class APIResponse:
    """The status envelope POEditor wraps around every response.

    Example body::

        {
          "response": {"status": "success", "code": "200", "message": "OK"},
          "result": {...}
        }
    """

    status: str
    code: str
    message: str
    result: dict[str, Any] = field(default_factory=dict)

    @property
    def is_success(self) -> bool:
        return self.status == "success"

    @property
    def is_already_exists(self) -> bool:
        """True for the idempotent "language already added" failure."""
        return self.status == "fail" and "already" in self.message.lower()

    @classmethod
    def from_dict(cls, data: Any) -> "APIResponse":
        """Parse a decoded JSON body.

        Raises:
            POEditorInvalidResponseError: If the envelope is malformed
        """
        if not isinstance(data, dict):
            raise POEditorInvalidResponseError("Invalid POEditor API response format")

        response = data.get("response")
        if not isinstance(response, dict):
            raise POEditorInvalidResponseError("Invalid POEditor API response format")

        status = response.get("status")
        code = response.get("code")
        message = response.get("message")
        if not isinstance(status, str) or code is None or message is None:
            raise POEditorInvalidResponseError("Invalid POEditor API response format")

        result = data.get("result")
        return cls(
            status=status,
            code=str(code),
            message=str(message),
            result=result if isinstance(result, dict) else {},
        )


@dataclass
class RemoteLanguage:
    """A language of the POEditor project."""

    name: str
    code: str
    translations: int
    """Number of translated terms"""

    percentage: float
    """Translation completeness (0-100)"""

    updated: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> Optional["RemoteLanguage"]:
        """Create a RemoteLanguage, or None if required fields are missing."""
        if not isinstance(data, dict):
            return None

        code = data.get("code")
        name = data.get("name")
        translations = data.get("translations")
        percentage = data.get("percentage")
        if not isinstance(code, str) or not isinstance(name, str):
            return None
        if isinstance(translations, bool) or not isinstance(translations, int):
            return None
        if isinstance(percentage, bool) or not isinstance(percentage, (int, float)):
            return None

        return cls(
            name=name,
            code=code,
            translations=translations,
            percentage=float(percentage),
            updated=data.get("updated"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "code": self.code,
            "translations": self.translations,
            "percentage": self.percentage,
            "updated": self.updated,
        }


@dataclass
class UploadResult:
    """Statistics POEditor reports after an upload."""

    terms_parsed: int = 0
    terms_added: int = 0
    terms_deleted: int = 0
    translations_parsed: int = 0
    translations_added: int = 0
    translations_updated: int = 0

    @classmethod
    def from_dict(cls, result: dict[str, Any]) -> "UploadResult":
        terms = result.get("terms") or {}
        translations = result.get("translations") or {}
        return cls(
            terms_parsed=int(terms.get("parsed", 0) or 0),
            terms_added=int(terms.get("added", 0) or 0),
            terms_deleted=int(terms.get("deleted", 0) or 0),
            translations_parsed=int(translations.get("parsed", 0) or 0),
            translations_added=int(translations.get("added", 0) or 0),
            translations_updated=int(translations.get("updated", 0) or 0),
        )

    def to_dict(self) -> dict[str, int]:
        return {
            "terms_parsed": self.terms_parsed,
            "terms_added": self.terms_added,
            "terms_deleted": self.terms_deleted,
            "translations_parsed": self.translations_parsed,
            "translations_added": self.translations_added,
            "translations_updated": self.translations_updated,
        }
