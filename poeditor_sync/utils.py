"""Utility functions and constants for poeditor-sync."""

# =============================================================================
# Constants for the POEditor API
# =============================================================================

DEFAULT_API_URL: str = "https://api.poeditor.com/v2"

# HTTP request timeout
DEFAULT_TIMEOUT: float = 30.0  # seconds

# Retry configuration for transient errors
DEFAULT_MAX_RETRIES: int = 3
DEFAULT_RETRY_DELAY: float = 2.0  # seconds

# Upper bound for a single xcodebuild run
DEFAULT_XCODEBUILD_TIMEOUT: float = 30 * 60.0  # seconds

# Accepted values for the "updating" upload parameter
UPDATING_MODES: tuple[str, ...] = ("terms", "terms_translations", "translations")
DEFAULT_UPDATING_MODE: str = "terms_translations"

# Accepted values for the "filters" export parameter
EXPORT_FILTERS: tuple[str, ...] = (
    "translated",
    "untranslated",
    "fuzzy",
    "not_fuzzy",
    "automatic",
    "not_automatic",
    "proofread",
    "not_proofread",
)

# =============================================================================
# Rate limiting
# =============================================================================

# Delay between adding languages to POEditor
LANGUAGE_ADD_DELAY: float = 2.0  # seconds

# Delay between downloading translations
DOWNLOAD_DELAY: float = 2.0  # seconds

# POEditor allows one upload per 20 seconds
UPLOAD_DELAY: float = 20.0  # seconds

# =============================================================================
# File paths and names
# =============================================================================

CONFIG_FILE_NAME: str = ".poeditor.yml"
DOWNLOAD_DIRECTORY_PREFIX: str = "poeditor_downloads_"
EXPORT_DIRECTORY_PREFIX: str = "poeditor_export_"
XLIFF_EXTENSION: str = ".xliff"
XLIFF_MIME_TYPE: str = "application/x-xliff+xml"
LOCALIZED_CONTENTS_PATH: str = "Localized Contents"

# Codes found in .xcstrings files that are not real languages
PSEUDO_LANGUAGES: frozenset[str] = frozenset({"Base", "mul"})

SECTION_SEPARATOR_LENGTH: int = 60


# =============================================================================
# Formatting utilities
# =============================================================================


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 KB", "256 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    else:
        return f"{size_bytes / 1024 / 1024:.1f} MB"


def sort_languages(languages: list[str]) -> list[str]:
    """Sort language codes alphabetically with "en" first.

    Examples:
        >>> sort_languages(["uk", "de", "en"])
        ['en', 'de', 'uk']
    """
    return sorted(languages, key=lambda code: (code != "en", code))


def count_trans_units(content: str) -> int:
    """Count the <trans-unit> elements of an XLIFF document.

    Examples:
        >>> count_trans_units('<trans-unit id="a"/><trans-unit id="b"/>')
        2
    """
    return content.count("<trans-unit")
