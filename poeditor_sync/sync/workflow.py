"""Upload and download workflows between Xcode and POEditor."""

import logging
import tempfile
from collections.abc import Sequence
from pathlib import Path
from typing import Optional

from rich.progress import Progress, SpinnerColumn, TextColumn

from ..api import POEditorClient
from ..config import POEditorConfig
from ..exceptions import ArtifactMissingError, POEditorAPIError, XcodeBuildError
from ..models import RemoteLanguage, UploadResult
from ..output import OutputFormatter
from ..rate_limit import OperationClass, RateLimiter
from ..utils import (
    DOWNLOAD_DIRECTORY_PREFIX,
    EXPORT_DIRECTORY_PREFIX,
    XLIFF_EXTENSION,
)
from ..xcode import XcodeService
from .reconciler import compute_missing, detect_source_language, select_targets
from .report import SyncReport, SyncStatus

logger = logging.getLogger(__name__)


class SyncWorkflow:
    """Orchestrates uploads and downloads of translations.

    All calls are sequential. Calls of the same kind are spaced by the
    rate limiter; a remote or xcodebuild failure aborts the remaining
    languages, while a missing XLIFF file only skips its language.
    """

    def __init__(
        self,
        config: POEditorConfig,
        client: POEditorClient,
        xcode: XcodeService,
        rate_limiter: Optional[RateLimiter] = None,
        output: Optional[OutputFormatter] = None,
    ):
        """Initialize the workflow.

        Args:
            config: Run configuration
            client: POEditor API client
            xcode: Xcode project service
            rate_limiter: Limiter shared with the client (created from the
                configuration if not given)
            output: Output formatter for progress and summaries
        """
        self.config = config
        self.client = client
        self.xcode = xcode
        self.rate_limiter = rate_limiter or RateLimiter.from_config(config.rate_limits)
        self.output = output or OutputFormatter()

    # =========================
    # Shared helpers
    # =========================

    def local_languages(self) -> list[str]:
        """Languages from the configuration, or detected from the project."""
        if self.config.languages:
            return list(self.config.languages)
        return self.xcode.detect_languages()

    def _wait(self, operation: OperationClass, reason: str = "") -> None:
        delay = self.rate_limiter.remaining(operation)
        if delay > 0:
            suffix = f" ({reason})" if reason else ""
            self.output.progress_message(f"Waiting {delay:.0f} seconds{suffix}...")
        self.rate_limiter.wait_if_needed(operation)

    def _run_with_spinner(self, description: str, func, *args) -> None:
        if self.output.quiet or self.output.json_output:
            func(*args)
            return
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
        ) as progress:
            progress.add_task(description, total=None)
            func(*args)

    def _add_languages(
        self, languages: list[str], report: SyncReport, targets: list[str]
    ) -> bool:
        """Add languages to POEditor, waiting between calls.

        Returns:
            False if the run was aborted
        """
        for index, language in enumerate(languages):
            if index > 0:
                self._wait(OperationClass.ADD_LANGUAGE)
            self.output.info(f"  [{index + 1}/{len(languages)}] Adding {language}...")
            try:
                added = self.client.add_language(language)
            except POEditorAPIError as e:
                self._abort(report, e, language, targets)
                return False
            finally:
                self.rate_limiter.mark(OperationClass.ADD_LANGUAGE)

            if added:
                report.added_remotely.append(language)
                self.output.success(f"    Added {language}")
            else:
                self.output.info(f"    ℹ️  Language '{language}' already exists")
        return True

    def _abort(
        self,
        report: SyncReport,
        error: Exception,
        language: Optional[str],
        targets: list[str],
    ) -> None:
        if language is not None:
            report.add(language, SyncStatus.FAILED, str(error))
            self.output.error(f"{language}: {error}")
        else:
            self.output.error(str(error))
        remaining = [code for code in targets if report.get(code) is None]
        report.abort(error, remaining)
        logger.debug(f"Run aborted, not attempted: {', '.join(remaining)}")

    # =========================
    # Upload
    # =========================

    def upload(
        self,
        languages: Sequence[str] = (),
        initial: bool = False,
        delete_other_keys: bool = False,
    ) -> SyncReport:
        """Export localizations from Xcode and upload them to POEditor.

        Args:
            languages: Optional language filter
            initial: Add every target language to POEditor before uploading
            delete_other_keys: Delete POEditor terms missing from the upload

        Returns:
            Report with one outcome per target language

        Raises:
            POEditorConfigError: If a requested language is not in the project
        """
        report = SyncReport(direction="upload")

        local = self.local_languages()
        targets = select_targets(local, languages).targets
        if languages:
            self.output.info(
                f"🎯 Filtering to specific languages: {', '.join(languages)}\n"
            )

        with tempfile.TemporaryDirectory(prefix=EXPORT_DIRECTORY_PREFIX) as tmp:
            export_dir = Path(tmp)
            logger.debug(f"Export directory: {export_dir}")

            try:
                self._run_with_spinner(
                    "Running xcodebuild -exportLocalizations...",
                    self.xcode.export_localizations,
                    targets,
                    export_dir,
                )
            except XcodeBuildError as e:
                self._abort(report, e, None, targets)
                self._display_upload_summary(report)
                return report
            self.output.success("Export completed successfully")

            stats = self.xcode.export_statistics(export_dir, targets)
            self._display_export_statistics(stats)

            if initial:
                self.output.section("🔄 Initial Setup Mode")
                self.output.info("Step 1: Adding languages to POEditor project...")
                if not self._add_languages(targets, report, targets):
                    self._display_upload_summary(report)
                    return report
                self.output.progress_message(
                    f"Waiting {self.rate_limiter.interval(OperationClass.UPLOAD):.0f} "
                    "seconds before uploading translations..."
                )
                self.rate_limiter.cooldown(OperationClass.UPLOAD)
                self.output.info("\nStep 2: Uploading translations to POEditor...\n")
            else:
                self.output.section("📤 Uploading Translations to POEditor")

            self._upload_all(
                targets,
                export_dir,
                stats,
                report,
                sync_terms=delete_other_keys or self.config.upload.sync_terms,
            )

        self._display_upload_summary(report)
        return report

    def _upload_all(
        self,
        targets: list[str],
        export_dir: Path,
        stats: dict[str, int],
        report: SyncReport,
        sync_terms: bool,
    ) -> None:
        upload_config = self.config.upload
        for index, language in enumerate(targets):
            if index > 0:
                self._wait(OperationClass.UPLOAD, "POEditor rate limit")
            self.output.info(f"[{index + 1}/{len(targets)}] Uploading {language}...")

            artifact = self.xcode.export_artifact_path(export_dir, language)
            if not artifact.is_file():
                self.output.warning(f"Skipping {language}: XLIFF file not found")
                report.add(
                    language,
                    SyncStatus.SKIPPED,
                    str(ArtifactMissingError(language, str(artifact))),
                )
                continue

            content = artifact.read_bytes()
            logger.debug(
                f"Uploading {artifact} ({self.output.format_size(len(content))}), "
                f"updating={upload_config.updating}, "
                f"overwrite={upload_config.overwrite}, sync_terms={sync_terms}"
            )
            try:
                result = self.client.upload_translations(
                    language,
                    content,
                    file_name=f"{language}{XLIFF_EXTENSION}",
                    updating=upload_config.updating,
                    overwrite=upload_config.overwrite,
                    sync_terms=sync_terms,
                )
            except POEditorAPIError as e:
                self._abort(report, e, language, targets)
                return
            finally:
                self.rate_limiter.mark(OperationClass.UPLOAD)

            self._display_upload_result(language, result)
            report.add(
                language,
                SyncStatus.SUCCEEDED,
                terms=stats.get(language, 0),
                **result.to_dict(),
            )

    def _display_export_statistics(self, stats: dict[str, int]) -> None:
        self.output.section("📊 Export Statistics")
        self.output.info(f"   Total languages: {len(stats)}")
        for language, count in sorted(stats.items()):
            self.output.info(f"   • {language}: {count} terms")

    def _display_upload_result(self, language: str, result: UploadResult) -> None:
        self.output.info(f"\n📤 POEditor Upload Results ({language}):")
        self.output.info("  Terms:")
        self.output.info(f"    • Parsed: {result.terms_parsed}")
        if result.terms_added > 0:
            self.output.info(f"    • Added: {result.terms_added}")
        if result.terms_deleted > 0:
            self.output.info(f"    • Deleted: {result.terms_deleted}")
        self.output.info("  Translations:")
        self.output.info(f"    • Parsed: {result.translations_parsed}")
        if result.translations_added > 0:
            self.output.info(f"    • Added: {result.translations_added}")
        if result.translations_updated > 0:
            self.output.info(f"    • Updated: {result.translations_updated}")

    def _display_upload_summary(self, report: SyncReport) -> None:
        title = "Upload complete!" if report.succeeded else "Upload aborted"
        self.output.print_summary(title, _summary_items(report, "Uploaded"))

    # =========================
    # Download
    # =========================

    def download(self, languages: Sequence[str] = ()) -> SyncReport:
        """Download translations from POEditor and import them into Xcode.

        Args:
            languages: Optional language filter. Languages known to the
                project but missing in POEditor are added to POEditor first.

        Returns:
            Report with one outcome per target language

        Raises:
            POEditorConfigError: If a requested language is unknown everywhere
            POEditorAPIError: If the POEditor languages cannot be listed
        """
        report = SyncReport(direction="download")

        self.output.info("🔍 Checking available languages in POEditor...")
        remote = self.client.list_languages()
        self._display_remote_languages(remote)

        source = self._source_language(remote)
        report.source_language = source

        local = self.local_languages()
        remote_codes = [lang.code for lang in remote]
        self._display_missing(local, remote_codes)

        selection = select_targets(remote_codes, languages, source, local)
        targets = selection.targets
        if languages:
            self.output.info(
                f"🎯 Filtering to specific languages: {', '.join(languages)}\n"
            )

        if selection.newly_discovered:
            self.output.info("\n➕ Adding missing languages to POEditor...")
            if not self._add_languages(
                sorted(selection.newly_discovered), report, targets
            ):
                self._display_download_summary(report)
                return report
            self.output.success("Languages added successfully!\n")

        with tempfile.TemporaryDirectory(prefix=DOWNLOAD_DIRECTORY_PREFIX) as tmp:
            download_dir = Path(tmp)
            artifacts = self._download_all(targets, source, download_dir, report)
            if artifacts is not None:
                self._import_all(targets, artifacts, report)
            self.output.info("\n🧹 Cleaning up temporary files...")

        local_set = set(local)
        report.new_local_languages = [
            code
            for code in report.languages_with(SyncStatus.SUCCEEDED)
            if code not in local_set
        ]
        self._display_download_summary(report)
        return report

    def _source_language(self, remote: list[RemoteLanguage]) -> str:
        if self.config.source_language:
            self.output.info(
                f"\n🔍 Using configured source language: {self.config.source_language}"
            )
            return self.config.source_language

        source = detect_source_language(remote)
        self.output.info(
            f"\n🔍 Auto-detected source language: {source.code} "
            f"({source.translations} terms)"
        )
        return source.code

    def _download_all(
        self,
        targets: list[str],
        source: str,
        download_dir: Path,
        report: SyncReport,
    ) -> Optional[dict[str, Path]]:
        """Download every target language.

        Returns:
            Mapping of language to downloaded file, or None if aborted
        """
        self.output.section("📥 Downloading Translations from POEditor")
        self.output.info(f"   Source language (skipped): {source}")
        self.output.info(f"   Languages to download: {len(targets)}\n")

        filters = self.config.download.filters
        if filters:
            logger.debug(f"Export filters: {', '.join(filters)}")

        artifacts: dict[str, Path] = {}
        for index, language in enumerate(targets):
            if index > 0:
                self._wait(OperationClass.DOWNLOAD)
            self.output.info(f"[{index + 1}/{len(targets)}] Processing {language}...")
            try:
                content = self.client.download_translations(
                    language,
                    reference_language=source,
                    filters=list(filters) or None,
                )
            except POEditorAPIError as e:
                self._abort(report, e, language, targets)
                return None
            finally:
                self.rate_limiter.mark(OperationClass.DOWNLOAD)

            path = download_dir / f"{language}{XLIFF_EXTENSION}"
            path.write_bytes(content)
            artifacts[language] = path
            self.output.success(
                f"  Downloaded {self.output.format_size(len(content))}"
            )
            logger.debug(f"Saved to: {path}")

        return artifacts

    def _import_all(
        self,
        targets: list[str],
        artifacts: dict[str, Path],
        report: SyncReport,
    ) -> None:
        self.output.section("📦 Importing Localizations into Xcode Project")

        for index, language in enumerate(targets):
            self.output.info(f"[{index + 1}/{len(targets)}] Importing {language}...")
            artifact = artifacts.get(language)
            try:
                if artifact is None:
                    raise ArtifactMissingError(language, "(not downloaded)")
                self._run_with_spinner(
                    f"Running xcodebuild -importLocalizations ({language})...",
                    self.xcode.import_localization,
                    language,
                    artifact,
                )
            except ArtifactMissingError as e:
                self.output.warning(f"  {e}")
                report.add(language, SyncStatus.SKIPPED, str(e))
                continue
            except XcodeBuildError as e:
                self._abort(report, e, language, targets)
                return

            report.add(
                language,
                SyncStatus.SUCCEEDED,
                size=artifact.stat().st_size if artifact.exists() else 0,
            )
            self.output.success(f"  Imported {language}")

    def _display_remote_languages(self, remote: list[RemoteLanguage]) -> None:
        self.output.section("📋 Available Languages in POEditor")
        for lang in sorted(remote, key=lambda item: item.code):
            self.output.info(
                f"  • {lang.code} ({lang.name}): {lang.translations} terms, "
                f"{lang.percentage:.1f}% translated"
            )

    def _display_missing(self, local: list[str], remote_codes: list[str]) -> None:
        missing_remotely, missing_locally = compute_missing(local, remote_codes)

        if missing_remotely:
            self.output.warning("Languages in Xcode but NOT in POEditor:")
            for code in missing_remotely:
                self.output.warning(f"   • {code}")
            self.output.info(" Consider adding these languages to POEditor.\n")

        if missing_locally:
            self.output.warning("Languages in POEditor but NOT in Xcode:")
            for code in missing_locally:
                self.output.info(f"   • {code}")
            self.output.info(
                "   These will be automatically added by xcodebuild during import.\n"
            )

        if not missing_remotely and not missing_locally:
            self.output.success("All POEditor languages are in your Xcode project\n")

    def _display_download_summary(self, report: SyncReport) -> None:
        if report.succeeded:
            self.output.success("\nAll operations completed successfully!")
        processed = report.languages_with(SyncStatus.SUCCEEDED)
        self.output.info(f"Languages processed: {', '.join(processed) or '(none)'}")

        if report.new_local_languages:
            self.output.info("\n🎉 New languages added to your Xcode project:")
            for code in report.new_local_languages:
                self.output.info(f"   • {code}")

        title = "Download complete!" if report.succeeded else "Download aborted"
        self.output.print_summary(title, _summary_items(report, "Imported"))


def _summary_items(report: SyncReport, done_label: str) -> list[tuple[str, str]]:
    """Build the summary lines shared by uploads and downloads."""
    items = [(done_label, f"{report.succeeded_count} language(s)")]
    if report.added_remotely:
        items.append(("Added to POEditor", ", ".join(report.added_remotely)))
    for label, status in (
        ("Skipped", SyncStatus.SKIPPED),
        ("Failed", SyncStatus.FAILED),
        ("Not attempted", SyncStatus.NOT_ATTEMPTED),
    ):
        languages = report.languages_with(status)
        if languages:
            items.append((label, ", ".join(languages)))
    return items
