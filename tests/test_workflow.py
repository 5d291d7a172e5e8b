"""Unit tests for the upload and download workflows."""

from pathlib import Path
from unittest.mock import Mock

import pytest

from poeditor_sync.api import POEditorClient
from poeditor_sync.config import DownloadConfig, POEditorConfig
from poeditor_sync.exceptions import (
    ArtifactMissingError,
    POEditorAPIError,
    POEditorConfigError,
    XcodeBuildError,
)
from poeditor_sync.models import RemoteLanguage, UploadResult
from poeditor_sync.output import OutputFormatter
from poeditor_sync.rate_limit import OperationClass, RateLimiter
from poeditor_sync.sync import SyncStatus, SyncWorkflow
from poeditor_sync.xcode import XcodeService


class FakeClock:
    """Clock whose sleep advances time instantly."""

    def __init__(self):
        self.now = 0.0
        self.sleeps: list[float] = []

    def time(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def _remote(code: str, translations: int) -> RemoteLanguage:
    return RemoteLanguage(
        name=code.upper(), code=code, translations=translations, percentage=80.0
    )


def _config(**kwargs) -> POEditorConfig:
    kwargs.setdefault("languages", ("en", "de", "fr"))
    return POEditorConfig(
        api_token="token", project_id="1", project_path="App.xcodeproj", **kwargs
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter(clock):
    return RateLimiter(
        {
            OperationClass.ADD_LANGUAGE: 2.0,
            OperationClass.DOWNLOAD: 2.0,
            OperationClass.UPLOAD: 20.0,
        },
        clock=clock.time,
        sleep=clock.sleep,
    )


@pytest.fixture
def client():
    client = Mock(spec=POEditorClient)
    client.upload_translations.return_value = UploadResult(terms_parsed=3)
    client.add_language.return_value = True
    client.download_translations.return_value = b"<xliff>translated</xliff>"
    return client


@pytest.fixture
def exported():
    """Languages whose XLIFF file the fake export writes."""
    return {"languages": None, "dirs": []}


@pytest.fixture
def xcode(exported):
    xcode = Mock(spec=XcodeService)

    def export_localizations(languages, dest_dir):
        exported["dirs"].append(Path(dest_dir))
        present = exported["languages"]
        for language in languages:
            if present is not None and language not in present:
                continue
            path = XcodeService.export_artifact_path(dest_dir, language)
            path.parent.mkdir(parents=True)
            path.write_text('<xliff><trans-unit id="a"/></xliff>')

    xcode.export_localizations.side_effect = export_localizations
    xcode.export_artifact_path.side_effect = XcodeService.export_artifact_path
    xcode.export_statistics.side_effect = lambda dest_dir, languages: {
        language: 1 for language in languages
    }
    return xcode


def _workflow(config, client, xcode, limiter) -> SyncWorkflow:
    return SyncWorkflow(
        config,
        client,
        xcode,
        rate_limiter=limiter,
        output=OutputFormatter(quiet=True),
    )


class TestUpload:
    """Tests for SyncWorkflow.upload."""

    def test_upload_all_languages(self, client, xcode, limiter, clock, exported):
        """Test every project language is exported and uploaded in order."""
        workflow = _workflow(_config(), client, xcode, limiter)

        report = workflow.upload()

        assert report.succeeded
        assert report.succeeded_count == 3
        uploaded = [c.args[0] for c in client.upload_translations.call_args_list]
        assert uploaded == ["en", "de", "fr"]
        xcode.export_localizations.assert_called_once()
        assert xcode.export_localizations.call_args.args[0] == ["en", "de", "fr"]
        # 20 second gap between uploads only
        assert clock.sleeps == [20.0, 20.0]
        assert report.get("de").details["terms"] == 1
        assert report.get("de").details["terms_parsed"] == 3

    def test_upload_options(self, client, xcode, limiter):
        """Test upload options from the configuration and the CLI."""
        workflow = _workflow(_config(languages=("de",)), client, xcode, limiter)

        workflow.upload(delete_other_keys=True)

        kwargs = client.upload_translations.call_args.kwargs
        assert kwargs["file_name"] == "de.xliff"
        assert kwargs["updating"] == "terms_translations"
        assert kwargs["overwrite"] is False
        assert kwargs["sync_terms"] is True
        assert client.upload_translations.call_args.args[1].startswith(b"<xliff>")

    def test_upload_filter(self, client, xcode, limiter):
        """Test a filter restricts export and upload to one language."""
        workflow = _workflow(_config(), client, xcode, limiter)

        report = workflow.upload(languages=["fr"])

        assert xcode.export_localizations.call_args.args[0] == ["fr"]
        client.upload_translations.assert_called_once()
        assert [o.language for o in report.outcomes] == ["fr"]

    def test_invalid_filter_raises_before_export(self, client, xcode, limiter):
        """Test unknown languages fail before any external call."""
        workflow = _workflow(_config(), client, xcode, limiter)

        with pytest.raises(POEditorConfigError, match="xx"):
            workflow.upload(languages=["xx"])
        xcode.export_localizations.assert_not_called()
        client.upload_translations.assert_not_called()

    def test_detects_languages_without_config(self, client, xcode, limiter):
        """Test project languages are detected when not configured."""
        xcode.detect_languages.return_value = ["en", "uk"]
        workflow = _workflow(_config(languages=()), client, xcode, limiter)

        workflow.upload()

        xcode.detect_languages.assert_called_once_with()
        assert xcode.export_localizations.call_args.args[0] == ["en", "uk"]

    def test_missing_artifact_skipped(self, client, xcode, limiter, exported):
        """Test a language without exported XLIFF is skipped, not failed."""
        exported["languages"] = {"en", "fr"}
        workflow = _workflow(_config(), client, xcode, limiter)

        report = workflow.upload()

        assert report.succeeded
        assert report.get("de").status == SyncStatus.SKIPPED
        assert report.succeeded_count == 2
        uploaded = [c.args[0] for c in client.upload_translations.call_args_list]
        assert uploaded == ["en", "fr"]

    def test_error_aborts_remaining(self, client, xcode, limiter, exported):
        """Test a remote error on the third of five languages."""
        languages = ("en", "de", "fr", "uk", "es")
        error = POEditorAPIError("POEditor API error for fr: Invalid file")
        client.upload_translations.side_effect = [
            UploadResult(),
            UploadResult(),
            error,
        ]
        workflow = _workflow(_config(languages=languages), client, xcode, limiter)

        report = workflow.upload()

        assert not report.succeeded
        assert report.error is error
        assert report.languages_with(SyncStatus.SUCCEEDED) == ["en", "de"]
        assert report.languages_with(SyncStatus.FAILED) == ["fr"]
        assert report.languages_with(SyncStatus.NOT_ATTEMPTED) == ["uk", "es"]
        assert client.upload_translations.call_count == 3
        assert not exported["dirs"][0].exists()

    def test_export_failure(self, client, xcode, limiter, exported):
        """Test an export failure uploads nothing and removes the directory."""
        export = xcode.export_localizations.side_effect

        def failing_export(languages, dest_dir):
            export(languages, dest_dir)
            raise XcodeBuildError("xcodebuild failed with status 65: error")

        xcode.export_localizations.side_effect = failing_export
        workflow = _workflow(_config(), client, xcode, limiter)

        report = workflow.upload()

        assert not report.succeeded
        assert report.not_attempted_count == 3
        client.upload_translations.assert_not_called()
        assert not exported["dirs"][0].exists()

    def test_export_directory_removed(self, client, xcode, limiter, exported):
        """Test the export directory is removed after a successful run."""
        workflow = _workflow(_config(), client, xcode, limiter)

        workflow.upload()

        assert not exported["dirs"][0].exists()

    @pytest.mark.parametrize("error", [OSError("disk gone"), KeyboardInterrupt()])
    def test_export_directory_removed_on_exception(
        self, client, xcode, limiter, exported, error
    ):
        """Test the export directory is removed when an exception escapes."""
        client.upload_translations.side_effect = error
        workflow = _workflow(_config(), client, xcode, limiter)

        with pytest.raises(type(error)):
            workflow.upload()

        assert not exported["dirs"][0].exists()

    def test_initial_mode(self, client, xcode, limiter, clock):
        """Test initial mode adds languages then cools down before uploading."""
        client.add_language.side_effect = [True, False, True]
        workflow = _workflow(_config(), client, xcode, limiter)

        report = workflow.upload(initial=True)

        added = [c.args[0] for c in client.add_language.call_args_list]
        assert added == ["en", "de", "fr"]
        assert report.added_remotely == ["en", "fr"]
        # add gaps, one upload cooldown, then the upload gaps
        assert clock.sleeps == [2.0, 2.0, 20.0, 20.0, 20.0]
        assert report.succeeded_count == 3

    def test_initial_mode_add_failure(self, client, xcode, limiter):
        """Test an add-language failure aborts before any upload."""
        client.add_language.side_effect = [True, POEditorAPIError("Invalid code")]
        workflow = _workflow(_config(), client, xcode, limiter)

        report = workflow.upload(initial=True)

        assert not report.succeeded
        assert report.get("de").status == SyncStatus.FAILED
        assert report.get("fr").status == SyncStatus.NOT_ATTEMPTED
        client.upload_translations.assert_not_called()


class TestDownload:
    """Tests for SyncWorkflow.download."""

    @pytest.fixture(autouse=True)
    def remote(self, client):
        client.list_languages.return_value = [
            _remote("en", 500),
            _remote("fr", 300),
            _remote("de", 100),
        ]

    def test_download_all(self, client, xcode, limiter, clock):
        """Test every language except the source is downloaded and imported."""
        workflow = _workflow(_config(), client, xcode, limiter)

        report = workflow.download()

        assert report.succeeded
        assert report.source_language == "en"
        downloaded = [c.args[0] for c in client.download_translations.call_args_list]
        assert downloaded == ["fr", "de"]
        for call in client.download_translations.call_args_list:
            assert call.kwargs["reference_language"] == "en"
            assert call.kwargs["filters"] is None
        imported = [c.args[0] for c in xcode.import_localization.call_args_list]
        assert imported == ["fr", "de"]
        assert clock.sleeps == [2.0]
        assert report.new_local_languages == []

    def test_imported_files_and_cleanup(self, client, xcode, limiter):
        """Test imports read the downloaded files, removed after the run."""
        artifacts = []

        def import_localization(language, artifact):
            assert artifact.read_bytes() == b"<xliff>translated</xliff>"
            assert artifact.name == f"{language}.xliff"
            artifacts.append(artifact)

        xcode.import_localization.side_effect = import_localization
        workflow = _workflow(_config(), client, xcode, limiter)

        workflow.download()

        assert len(artifacts) == 2
        assert not artifacts[0].parent.exists()

    def test_configured_source_and_filters(self, client, xcode, limiter):
        """Test the configured source language and export filters are used."""
        config = _config(
            source_language="fr", download=DownloadConfig(filters=("translated",))
        )
        workflow = _workflow(config, client, xcode, limiter)

        report = workflow.download()

        assert report.source_language == "fr"
        downloaded = [c.args[0] for c in client.download_translations.call_args_list]
        assert downloaded == ["en", "de"]
        call = client.download_translations.call_args
        assert call.kwargs["reference_language"] == "fr"
        assert call.kwargs["filters"] == ["translated"]

    def test_missing_artifact_skipped(self, client, xcode, limiter):
        """Test a missing XLIFF for one language only skips it."""

        def import_localization(language, artifact):
            if language == "de":
                raise ArtifactMissingError(language, str(artifact))

        xcode.import_localization.side_effect = import_localization
        workflow = _workflow(_config(), client, xcode, limiter)

        report = workflow.download()

        assert report.succeeded
        assert report.get("fr").status == SyncStatus.SUCCEEDED
        assert report.get("de").status == SyncStatus.SKIPPED
        assert "not found" in report.get("de").reason

    def test_import_failure_aborts(self, client, xcode, limiter):
        """Test an xcodebuild failure aborts the remaining imports."""
        client.list_languages.return_value.append(_remote("uk", 50))
        artifacts = []

        def import_localization(language, artifact):
            artifacts.append(artifact)
            if language == "de":
                raise XcodeBuildError("xcodebuild failed with status 1: error")

        xcode.import_localization.side_effect = import_localization
        workflow = _workflow(
            _config(languages=("en", "fr", "de", "uk")), client, xcode, limiter
        )

        report = workflow.download()

        assert not report.succeeded
        assert report.languages_with(SyncStatus.SUCCEEDED) == ["fr"]
        assert report.languages_with(SyncStatus.FAILED) == ["de"]
        assert report.languages_with(SyncStatus.NOT_ATTEMPTED) == ["uk"]
        assert not artifacts[0].parent.exists()

    def test_download_failure_aborts(self, client, xcode, limiter):
        """Test a remote error stops downloading and skips every import."""
        client.download_translations.side_effect = POEditorAPIError("Export failed")
        workflow = _workflow(_config(), client, xcode, limiter)

        report = workflow.download()

        assert not report.succeeded
        assert report.get("fr").status == SyncStatus.FAILED
        assert report.get("de").status == SyncStatus.NOT_ATTEMPTED
        xcode.import_localization.assert_not_called()

    def test_filter(self, client, xcode, limiter):
        """Test a filter downloads only the requested language."""
        workflow = _workflow(_config(), client, xcode, limiter)

        report = workflow.download(languages=["de"])

        client.download_translations.assert_called_once()
        assert client.download_translations.call_args.args[0] == "de"
        assert [o.language for o in report.outcomes] == ["de"]

    def test_newly_discovered_language_added(self, client, xcode, limiter):
        """Test a project-only language is added to POEditor then downloaded."""
        workflow = _workflow(
            _config(languages=("en", "fr", "de", "uk")), client, xcode, limiter
        )

        report = workflow.download(languages=["uk"])

        client.add_language.assert_called_once_with("uk")
        assert report.added_remotely == ["uk"]
        assert client.download_translations.call_args.args[0] == "uk"
        assert report.get("uk").status == SyncStatus.SUCCEEDED

    def test_unknown_language_raises(self, client, xcode, limiter):
        """Test a language unknown on both sides fails before mutating calls."""
        workflow = _workflow(_config(), client, xcode, limiter)

        with pytest.raises(POEditorConfigError, match="zz"):
            workflow.download(languages=["zz"])
        client.add_language.assert_not_called()
        client.download_translations.assert_not_called()

    def test_new_local_languages(self, client, xcode, limiter):
        """Test languages new to the project are reported."""
        workflow = _workflow(_config(languages=("en", "fr")), client, xcode, limiter)

        report = workflow.download()

        assert report.new_local_languages == ["de"]

    def test_list_languages_error_propagates(self, client, xcode, limiter):
        """Test a failure to list languages is raised."""
        client.list_languages.side_effect = POEditorAPIError("Invalid API Token")
        workflow = _workflow(_config(), client, xcode, limiter)

        with pytest.raises(POEditorAPIError, match="Invalid API Token"):
            workflow.download()

    def test_report_to_dict(self, client, xcode, limiter):
        """Test the JSON form of a download report."""
        workflow = _workflow(_config(), client, xcode, limiter)

        data = workflow.download().to_dict()

        assert data["direction"] == "download"
        assert data["success"] is True
        assert data["succeeded"] == 2
        assert data["source_language"] == "en"
        assert [item["language"] for item in data["languages"]] == ["fr", "de"]
