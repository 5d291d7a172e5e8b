"""Unit tests for language reconciliation."""

import pytest

from poeditor_sync.exceptions import POEditorConfigError
from poeditor_sync.models import RemoteLanguage
from poeditor_sync.sync.reconciler import (
    compute_missing,
    detect_source_language,
    select_targets,
)


def _remote(code: str, translations: int) -> RemoteLanguage:
    return RemoteLanguage(
        name=code.upper(), code=code, translations=translations, percentage=50.0
    )


class TestComputeMissing:
    """Tests for compute_missing."""

    def test_both_sides(self):
        """Test languages missing on each side are reported sorted."""
        missing_remotely, missing_locally = compute_missing(
            ["en", "uk", "de"], ["fr", "en", "es"]
        )
        assert missing_remotely == ["de", "uk"]
        assert missing_locally == ["es", "fr"]

    def test_same_languages(self):
        """Test identical sets produce no differences."""
        assert compute_missing(["en", "de"], ["de", "en"]) == ([], [])

    def test_codes_compared_exactly(self):
        """Test that codes differing only by case are different languages."""
        assert compute_missing(["pt-BR"], ["pt-br"]) == (["pt-BR"], ["pt-br"])


class TestDetectSourceLanguage:
    """Tests for detect_source_language."""

    def test_most_translations_wins(self):
        """Test the language with the most translated terms is the source."""
        remote = [_remote("fr", 300), _remote("en", 500), _remote("uk", 100)]
        assert detect_source_language(remote).code == "en"

    def test_tie_picks_first_in_provider_order(self):
        """Test ties resolve to the first language listed."""
        remote = [_remote("de", 200), _remote("en", 200), _remote("fr", 100)]
        assert detect_source_language(remote).code == "de"

    def test_single_language(self):
        """Test a single language is its own source."""
        assert detect_source_language([_remote("en", 0)]).code == "en"

    def test_empty_raises(self):
        """Test an empty project raises a configuration error."""
        with pytest.raises(POEditorConfigError, match="No languages found"):
            detect_source_language([])


class TestSelectTargets:
    """Tests for select_targets."""

    def test_no_filter_returns_base_without_source(self):
        """Test the source language is never a target."""
        selection = select_targets(["en", "fr", "uk"], source_language="en")
        assert selection.targets == ["fr", "uk"]
        assert selection.newly_discovered == []

    def test_no_filter_keeps_base_order(self):
        """Test targets keep the base order and drop duplicates."""
        selection = select_targets(["uk", "de", "uk", "fr"])
        assert selection.targets == ["uk", "de", "fr"]

    def test_filter_subset(self):
        """Test a filter picks exactly the requested languages."""
        selection = select_targets(["en", "de", "fr", "uk"], ["uk", "de"])
        assert selection.targets == ["de", "uk"]

    def test_upload_single_language_filter(self):
        """Test filtering an upload to one project language."""
        selection = select_targets(["en", "de", "fr"], ["fr"])
        assert selection.targets == ["fr"]

    def test_filter_with_duplicates(self):
        """Test duplicate requested languages are processed once."""
        selection = select_targets(["en", "de"], ["de", "de"])
        assert selection.targets == ["de"]

    def test_requested_source_is_dropped(self):
        """Test the source language is dropped from the filter too."""
        selection = select_targets(
            ["en", "de", "fr"], ["en", "de"], source_language="en"
        )
        assert selection.targets == ["de"]

    def test_only_source_requested_raises(self):
        """Test requesting nothing but the source leaves nothing to do."""
        with pytest.raises(POEditorConfigError, match="No valid languages"):
            select_targets(["en", "de"], ["en"], source_language="en")

    def test_invalid_language_raises(self):
        """Test unknown languages are listed in the error."""
        with pytest.raises(POEditorConfigError) as exc_info:
            select_targets(["en", "de"], ["de", "xx", "yy"])
        message = str(exc_info.value)
        assert "xx, yy" in message
        assert "Available languages: de, en" in message

    def test_invalid_language_lists_both_sides(self):
        """Test the error lists remote and local languages when both are known."""
        with pytest.raises(POEditorConfigError) as exc_info:
            select_targets(
                ["en", "de"], ["zz"], source_language="en", local=["en", "de", "uk"]
            )
        message = str(exc_info.value)
        assert "zz" in message
        assert "Available in POEditor: de" in message
        assert "Available in Xcode: de, en, uk" in message

    def test_local_only_language_is_newly_discovered(self):
        """Test a requested language known only locally is discovered."""
        selection = select_targets(
            ["en", "fr"],
            ["uk"],
            source_language="en",
            local=["en", "fr", "uk"],
        )
        assert selection.targets == ["uk"]
        assert selection.newly_discovered == ["uk"]

    def test_newly_discovered_after_existing_targets(self):
        """Test newly discovered languages follow the remote targets."""
        selection = select_targets(
            ["en", "fr", "de"],
            ["uk", "de"],
            source_language="en",
            local=["en", "uk"],
        )
        assert selection.targets == ["de", "uk"]
        assert selection.newly_discovered == ["uk"]

    def test_local_only_language_invalid_without_local(self):
        """Test that without local languages nothing can be discovered."""
        with pytest.raises(POEditorConfigError, match="uk"):
            select_targets(["en", "fr"], ["uk"])

    def test_targets_are_subset_of_filter(self):
        """Test targets equal the filter intersected with the base."""
        base = ["en", "de", "fr", "uk", "es"]
        requested = ["es", "de"]
        selection = select_targets(base, requested, source_language="en")
        assert set(selection.targets) == set(requested)
        assert all(code in base for code in selection.targets)
