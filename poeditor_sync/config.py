"""Configuration loading for poeditor-sync.

The configuration lives in a YAML file (``.poeditor.yml`` in the current
directory by default)::

    api_token: "..."
    project_id: "12345"
    project_path: MyApp.xcodeproj
    languages: [en, de]
    upload:
      updating: terms_translations
      overwrite: false
      sync_terms: false
    download:
      filters: [translated]

The API token can also be provided with the ``POEDITOR_API_TOKEN``
environment variable, which takes precedence over the file.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from .exceptions import POEditorConfigError
from .utils import (
    CONFIG_FILE_NAME,
    DEFAULT_API_URL,
    DEFAULT_MAX_RETRIES,
    DEFAULT_TIMEOUT,
    DEFAULT_UPDATING_MODE,
    DEFAULT_XCODEBUILD_TIMEOUT,
    DOWNLOAD_DELAY,
    EXPORT_FILTERS,
    LANGUAGE_ADD_DELAY,
    UPDATING_MODES,
    UPLOAD_DELAY,
)

logger = logging.getLogger(__name__)

API_TOKEN_ENV = "POEDITOR_API_TOKEN"
CONFIG_PATH_ENV = "POEDITOR_CONFIG"


@dataclass(frozen=True)
class UploadConfig:
    """Options for the upload direction."""

    updating: str = DEFAULT_UPDATING_MODE
    """What POEditor should update: terms, terms_translations or translations"""

    overwrite: bool = False
    """Overwrite existing translations"""

    sync_terms: bool = False
    """Delete terms that are not in the uploaded file"""


@dataclass(frozen=True)
class DownloadConfig:
    """Options for the download direction."""

    filters: tuple[str, ...] = ()
    """POEditor export filters (e.g. translated, proofread)"""


@dataclass(frozen=True)
class RateLimitConfig:
    """Minimum interval in seconds between calls of the same kind."""

    add_language: float = LANGUAGE_ADD_DELAY
    download: float = DOWNLOAD_DELAY
    upload: float = UPLOAD_DELAY


@dataclass(frozen=True)
class POEditorConfig:
    """Immutable configuration for one poeditor-sync run."""

    api_token: str
    project_id: str
    project_path: str
    workspace_path: Optional[str] = None
    languages: tuple[str, ...] = ()
    source_language: Optional[str] = None
    verbose: bool = False
    api_url: str = DEFAULT_API_URL
    timeout: float = DEFAULT_TIMEOUT
    xcodebuild_timeout: Optional[float] = DEFAULT_XCODEBUILD_TIMEOUT
    max_retries: int = DEFAULT_MAX_RETRIES
    upload: UploadConfig = field(default_factory=UploadConfig)
    download: DownloadConfig = field(default_factory=DownloadConfig)
    rate_limits: RateLimitConfig = field(default_factory=RateLimitConfig)

    @property
    def is_workspace(self) -> bool:
        """True when the project path points at an Xcode workspace."""
        return self.workspace_path is not None or self.project_path.endswith(
            ".xcworkspace"
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "POEditorConfig":
        """Create a configuration from parsed YAML data.

        Raises:
            POEditorConfigError: If required keys are missing or values are invalid
        """
        if not isinstance(data, dict):
            raise POEditorConfigError("Configuration must be a YAML mapping")

        api_token = _require_str(data, "api_token")
        project_id = _require_str(data, "project_id")

        # workspace_path takes precedence over project_path
        workspace_path = _optional_str(data, "workspace_path")
        if workspace_path:
            project_path = workspace_path
        else:
            project_path = _require_str(data, "project_path")

        source_language = _optional_str(data, "source_language")

        return cls(
            api_token=api_token,
            project_id=project_id,
            project_path=project_path,
            workspace_path=workspace_path,
            languages=_str_list(data.get("languages"), "languages"),
            source_language=source_language,
            verbose=bool(data.get("verbose", False)),
            api_url=_optional_str(data, "api_url") or DEFAULT_API_URL,
            timeout=_number(data.get("timeout", DEFAULT_TIMEOUT), "timeout"),
            xcodebuild_timeout=_optional_number(
                data.get("xcodebuild_timeout", DEFAULT_XCODEBUILD_TIMEOUT),
                "xcodebuild_timeout",
            ),
            max_retries=int(
                _number(data.get("max_retries", DEFAULT_MAX_RETRIES), "max_retries")
            ),
            upload=_parse_upload(data.get("upload")),
            download=_parse_download(data.get("download")),
            rate_limits=_parse_rate_limits(data.get("rate_limits")),
        )


def _require_str(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None or str(value).strip() == "":
        raise POEditorConfigError(f"Missing required configuration key: {key}")
    # project ids are often written unquoted in YAML
    return str(value)


def _optional_str(data: dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value is None:
        return None
    return str(value)


def _str_list(value: Any, key: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, list):
        raise POEditorConfigError(f"'{key}' must be a list")
    # YAML 1.1 reads an unquoted "no" (Norwegian) as False
    if any(isinstance(item, bool) for item in value):
        raise POEditorConfigError(f"'{key}' contains a boolean; quote language codes")
    return tuple(str(item) for item in value)


def _number(value: Any, key: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise POEditorConfigError(f"'{key}' must be a number, got {value!r}")
    if value < 0:
        raise POEditorConfigError(f"'{key}' must not be negative")
    return float(value)


def _optional_number(value: Any, key: str) -> Optional[float]:
    if value is None:
        return None
    return _number(value, key)


def _parse_upload(data: Any) -> UploadConfig:
    if data is None:
        return UploadConfig()
    if not isinstance(data, dict):
        raise POEditorConfigError("'upload' must be a mapping")

    updating = data.get("updating") or DEFAULT_UPDATING_MODE
    if updating not in UPDATING_MODES:
        raise POEditorConfigError(
            f"Invalid upload.updating value '{updating}'. "
            f"Expected one of: {', '.join(UPDATING_MODES)}"
        )

    return UploadConfig(
        updating=updating,
        overwrite=bool(data.get("overwrite", False)),
        sync_terms=bool(data.get("sync_terms", False)),
    )


def _parse_download(data: Any) -> DownloadConfig:
    if data is None:
        return DownloadConfig()
    if not isinstance(data, dict):
        raise POEditorConfigError("'download' must be a mapping")

    filters = _str_list(data.get("filters"), "download.filters")
    invalid = [f for f in filters if f not in EXPORT_FILTERS]
    if invalid:
        raise POEditorConfigError(
            f"Invalid download filters: {', '.join(invalid)}. "
            f"Expected any of: {', '.join(EXPORT_FILTERS)}"
        )
    return DownloadConfig(filters=filters)


def _parse_rate_limits(data: Any) -> RateLimitConfig:
    if data is None:
        return RateLimitConfig()
    if not isinstance(data, dict):
        raise POEditorConfigError("'rate_limits' must be a mapping")

    defaults = RateLimitConfig()
    return RateLimitConfig(
        add_language=_number(
            data.get("add_language", defaults.add_language), "rate_limits.add_language"
        ),
        download=_number(
            data.get("download", defaults.download), "rate_limits.download"
        ),
        upload=_number(data.get("upload", defaults.upload), "rate_limits.upload"),
    )


def get_config_path(path: Optional[Union[str, Path]] = None) -> Path:
    """Resolve the configuration file path.

    Args:
        path: Explicit path; falls back to $POEDITOR_CONFIG, then ./.poeditor.yml

    Returns:
        Path to the configuration file
    """
    if path:
        return Path(path)
    env_path = os.environ.get(CONFIG_PATH_ENV)
    if env_path:
        return Path(env_path)
    return Path.cwd() / CONFIG_FILE_NAME


def load_config(
    path: Optional[Union[str, Path]] = None,
    api_token: Optional[str] = None,
) -> POEditorConfig:
    """Load and validate the YAML configuration.

    Args:
        path: Optional configuration file path
        api_token: Optional API token overriding the file and environment

    Returns:
        Parsed configuration

    Raises:
        POEditorConfigError: If the file is missing, unreadable or invalid
    """
    config_path = get_config_path(path)
    if not config_path.is_file():
        raise POEditorConfigError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise POEditorConfigError(f"Invalid YAML in {config_path}: {e}") from e
    except OSError as e:
        raise POEditorConfigError(f"Cannot read {config_path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise POEditorConfigError(f"{config_path} must contain a YAML mapping")

    token = api_token or os.environ.get(API_TOKEN_ENV)
    if token:
        data = {**data, "api_token": token}

    logger.debug(f"Loaded configuration from {config_path}")
    return POEditorConfig.from_dict(data)
