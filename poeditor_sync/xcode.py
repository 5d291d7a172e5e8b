"""Xcode project access through xcodebuild."""

import json
import logging
import subprocess
import time
from pathlib import Path
from typing import Optional, Union

from .exceptions import ArtifactMissingError, POEditorConfigError, XcodeBuildError
from .utils import (
    LOCALIZED_CONTENTS_PATH,
    PSEUDO_LANGUAGES,
    XLIFF_EXTENSION,
    count_trans_units,
    sort_languages,
)

logger = logging.getLogger(__name__)

XCODEBUILD = "/usr/bin/xcodebuild"


def run_command(
    args: list[str],
    timeout: Optional[float] = None,
    verbose: bool = False,
) -> str:
    """Run an external command and return its combined output.

    Args:
        args: Command and arguments
        timeout: Optional timeout in seconds
        verbose: Echo the command output as debug log lines

    Returns:
        Combined stdout and stderr

    Raises:
        XcodeBuildError: If the command cannot be started, times out or
            exits with a non-zero status
    """
    logger.debug(f"Running command: {' '.join(args)}")
    start_time = time.monotonic()

    try:
        result = subprocess.run(
            args,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError as e:
        raise XcodeBuildError(f"{args[0]} not found: {e}") from e
    except subprocess.TimeoutExpired as e:
        output = _decode(e.stdout) + _decode(e.stderr)
        raise XcodeBuildError(
            f"{args[0]} timed out after {timeout:.0f}s", output=output
        ) from e

    output = (result.stdout or "") + (result.stderr or "")
    logger.debug(f"Completed in {time.monotonic() - start_time:.1f}s")
    if verbose and output:
        for line in output.splitlines():
            logger.debug(f"  {line}")

    if result.returncode != 0:
        raise XcodeBuildError(
            f"{args[0]} failed with status {result.returncode}: {output}",
            output=output,
            returncode=result.returncode,
        )
    return output


def _decode(data: Union[bytes, str, None]) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


class XcodeService:
    """Detects, exports and imports localizations of an Xcode project."""

    def __init__(
        self,
        project_path: str,
        is_workspace: bool = False,
        timeout: Optional[float] = None,
        verbose: bool = False,
        xcodebuild: str = XCODEBUILD,
    ):
        """Initialize the Xcode service.

        Args:
            project_path: Path to the .xcodeproj or .xcworkspace
            is_workspace: Pass the path with -workspace instead of -project
            timeout: Timeout in seconds for each xcodebuild run
            verbose: Log xcodebuild output
            xcodebuild: Path to the xcodebuild executable
        """
        self.project_path = project_path
        self.is_workspace = is_workspace
        self.timeout = timeout
        self.verbose = verbose
        self.xcodebuild = xcodebuild

    @classmethod
    def from_config(cls, config, verbose: bool = False) -> "XcodeService":
        """Create a service from a POEditorConfig.

        Args:
            config: Run configuration
            verbose: Log xcodebuild output even if the config does not ask for it
        """
        return cls(
            project_path=config.project_path,
            is_workspace=config.is_workspace,
            timeout=config.xcodebuild_timeout,
            verbose=config.verbose or verbose,
        )

    @property
    def project_dir(self) -> Path:
        return Path(self.project_path).parent

    def _project_arguments(self) -> list[str]:
        flag = "-workspace" if self.is_workspace else "-project"
        return [flag, self.project_path]

    # =========================
    # Language detection
    # =========================

    def detect_languages(self) -> list[str]:
        """Detect the languages of the project.

        Uses .xcstrings string catalogs when present and falls back to
        .lproj directories.

        Returns:
            Language codes sorted with "en" first

        Raises:
            POEditorConfigError: If no localized resources are found
        """
        languages = self._languages_from_xcstrings()
        if languages:
            logger.debug(f"Using .xcstrings format: {', '.join(sorted(languages))}")
            return sort_languages(list(languages))

        languages = self._languages_from_lproj()
        if not languages:
            raise POEditorConfigError(
                "No .xcstrings files or .lproj directories found in project. "
                "Please ensure your project has localized resources."
            )
        logger.debug(f"Using .lproj directories: {', '.join(sorted(languages))}")
        return sort_languages(list(languages))

    def _languages_from_xcstrings(self) -> set[str]:
        languages: set[str] = set()
        for path in self.project_dir.rglob("*.xcstrings"):
            if not path.is_file():
                continue
            try:
                with open(path, encoding="utf-8") as f:
                    catalog = json.load(f)
            except (OSError, ValueError) as e:
                logger.warning(f"Skipping unreadable string catalog {path}: {e}")
                continue

            if not isinstance(catalog, dict):
                continue
            # Source strings usually have no localizations entry of their own
            source_language = catalog.get("sourceLanguage")
            if isinstance(source_language, str) and source_language:
                languages.add(source_language)

            strings = catalog.get("strings")
            if not isinstance(strings, dict):
                continue
            for entry in strings.values():
                if not isinstance(entry, dict):
                    continue
                localizations = entry.get("localizations")
                if isinstance(localizations, dict):
                    languages.update(localizations.keys())

        return languages - PSEUDO_LANGUAGES

    def _languages_from_lproj(self) -> set[str]:
        return {
            path.stem
            for path in self.project_dir.rglob("*.lproj")
            if path.is_dir() and path.stem != "Base"
        }

    # =========================
    # Export / import
    # =========================

    def export_localizations(self, languages: list[str], dest_dir: Path) -> None:
        """Export .xcloc bundles for the given languages into dest_dir.

        Raises:
            XcodeBuildError: If xcodebuild fails
        """
        args = [self.xcodebuild, "-exportLocalizations"]
        args.extend(self._project_arguments())
        args.extend(["-localizationPath", str(dest_dir)])
        for language in languages:
            args.extend(["-exportLanguage", language])

        logger.info(f"Exporting localizations: {', '.join(languages)}")
        run_command(args, timeout=self.timeout, verbose=self.verbose)

    @staticmethod
    def export_artifact_path(dest_dir: Path, language: str) -> Path:
        """Path of the XLIFF file inside an exported .xcloc bundle."""
        return (
            Path(dest_dir)
            / f"{language}.xcloc"
            / LOCALIZED_CONTENTS_PATH
            / f"{language}{XLIFF_EXTENSION}"
        )

    def export_statistics(self, dest_dir: Path, languages: list[str]) -> dict[str, int]:
        """Count translation units per exported language.

        Missing files count as 0.
        """
        stats: dict[str, int] = {}
        for language in languages:
            path = self.export_artifact_path(dest_dir, language)
            if not path.is_file():
                stats[language] = 0
                continue
            content = path.read_text(encoding="utf-8", errors="replace")
            stats[language] = count_trans_units(content)
        return stats

    def import_localization(self, language: str, artifact: Path) -> None:
        """Import an XLIFF file into the project.

        Raises:
            ArtifactMissingError: If the file does not exist
            XcodeBuildError: If xcodebuild fails
        """
        if not Path(artifact).is_file():
            raise ArtifactMissingError(language, str(artifact))

        args = [self.xcodebuild, "-importLocalizations"]
        args.extend(self._project_arguments())
        args.extend(["-localizationPath", str(artifact)])

        logger.debug(f"Importing {language} from {artifact}")
        run_command(args, timeout=self.timeout, verbose=self.verbose)
