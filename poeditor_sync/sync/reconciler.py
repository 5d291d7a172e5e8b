"""Language reconciliation between the Xcode project and POEditor.

Everything here is pure: the functions take language codes and return the
sets a sync run should act on. Codes are compared by exact string equality.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Optional

from ..exceptions import POEditorConfigError
from ..models import RemoteLanguage


@dataclass
class TargetSelection:
    """Languages a sync run will act on."""

    targets: list[str] = field(default_factory=list)
    """Ordered, deduplicated target languages"""

    newly_discovered: list[str] = field(default_factory=list)
    """Requested languages known locally but missing remotely.

    The caller must add these to POEditor before processing targets.
    """


def compute_missing(
    local: Iterable[str], remote: Iterable[str]
) -> tuple[list[str], list[str]]:
    """Compute the languages missing on each side.

    Args:
        local: Languages of the Xcode project
        remote: Languages of the POEditor project

    Returns:
        Tuple of (missing_remotely, missing_locally), each sorted

    Examples:
        >>> compute_missing(["en", "de"], ["en", "fr"])
        (['de'], ['fr'])
    """
    local_set = set(local)
    remote_set = set(remote)
    return sorted(local_set - remote_set), sorted(remote_set - local_set)


def detect_source_language(languages: Sequence[RemoteLanguage]) -> RemoteLanguage:
    """Pick the language with the most translated terms.

    Ties resolve to the first language in provider order.

    Raises:
        POEditorConfigError: If the POEditor project has no languages
    """
    if not languages:
        raise POEditorConfigError("No languages found in POEditor project")

    best = languages[0]
    for language in languages[1:]:
        if language.translations > best.translations:
            best = language
    return best


def _dedupe(codes: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(codes))


def _join(codes: Iterable[str]) -> str:
    return ", ".join(sorted(codes)) or "(none)"


def select_targets(
    base: Sequence[str],
    requested: Sequence[str] = (),
    source_language: Optional[str] = None,
    local: Optional[Sequence[str]] = None,
) -> TargetSelection:
    """Apply a language filter to the direction-specific base set.

    Args:
        base: Languages the run would act on without a filter. For downloads
            these are the POEditor languages, for uploads the project languages.
        requested: Optional filter; empty means all of ``base``
        source_language: Reference language, never part of the targets
        local: Project languages. When given, requested languages that are
            only known locally become ``newly_discovered`` instead of invalid.

    Returns:
        The selected targets

    Raises:
        POEditorConfigError: If a requested language is unknown on both sides
            or nothing is left to process
    """
    candidates = _dedupe(code for code in base if code != source_language)

    if not requested:
        return TargetSelection(targets=candidates)

    wanted = _dedupe(code for code in requested if code != source_language)
    available = set(candidates)
    local_set = set(local) if local is not None else set()

    newly_discovered: list[str] = []
    invalid: list[str] = []
    for code in wanted:
        if code in available:
            continue
        if local is not None and code in local_set:
            newly_discovered.append(code)
        else:
            invalid.append(code)

    if invalid:
        message = (
            "The following requested languages are not available: "
            f"{', '.join(sorted(invalid))}. "
        )
        if local is None:
            message += f"Available languages: {_join(available)}"
        else:
            message += (
                f"Available in POEditor: {_join(available)}, "
                f"Available in Xcode: {_join(local_set)}"
            )
        raise POEditorConfigError(message)

    wanted_set = set(wanted)
    targets = [code for code in candidates if code in wanted_set]
    targets.extend(newly_discovered)

    if not targets:
        raise POEditorConfigError(
            f"No valid languages to process. Available languages: {_join(available)}"
        )

    return TargetSelection(targets=targets, newly_discovered=newly_discovered)
