"""Test confidence classification of scraped records."""

import pytest

from conftest import SIDEQUEST_HTML, SIDEQUEST_URL, STEAM_HTML, STEAM_URL
from vrstore.adapters import SideQuestExtractor, SteamExtractor
from vrstore.layers.confidence import ConfidenceClassifier, normalize_confidence, parse_tier
from vrstore.models.app_record import ConfidenceTier, ScrapedAppRecord

HIGH, MEDIUM, LOW = ConfidenceTier.HIGH, ConfidenceTier.MEDIUM, ConfidenceTier.LOW


@pytest.fixture
def classifier():
    return ConfidenceClassifier()


class TestClassify:
    """Test tier assignment per field."""

    def test_policy_tiers(self, classifier):
        record = ScrapedAppRecord(
            title="T",
            developer="D",
            icon_url="https://cdn.example.com/i.png",
            description="Desc",
            category="Games",
            package_name_guess="steam.app.1",
            version="1.0",
            source_url=STEAM_URL,
            source_store="Steam VR",
        )
        confidence = classifier.classify(record)

        assert confidence == {
            "title": HIGH,
            "developer": HIGH,
            "icon_url": HIGH,
            "description": MEDIUM,
            "short_description": MEDIUM,
            "category": MEDIUM,
            "package_name_guess": LOW,
            "version": LOW,
        }

    def test_keys_are_exactly_present_fields(self, classifier):
        """Test that absent fields get no entry and present ones always do."""
        record = SteamExtractor().extract(STEAM_HTML, STEAM_URL)
        confidence = classifier.classify(record)
        assert set(confidence) == set(record.get_present_fields())

    def test_unlisted_fields_are_low(self, classifier):
        record = SteamExtractor().extract(STEAM_HTML, STEAM_URL)
        confidence = classifier.classify(record)
        for field in ("rating", "file_size", "screenshots"):
            assert confidence[field] == LOW

    def test_fallback_category_is_low(self, classifier):
        """Test that a storefront default never outranks low."""
        record = SideQuestExtractor().extract(SIDEQUEST_HTML, SIDEQUEST_URL)
        confidence = classifier.classify(record)
        assert confidence["category"] == LOW
        assert confidence["title"] == HIGH

    def test_empty_record(self, classifier):
        record = ScrapedAppRecord(source_url=STEAM_URL, source_store="Steam VR")
        assert classifier.classify(record) == {}

    def test_custom_policy(self):
        classifier = ConfidenceClassifier(policy={"rating": HIGH})
        record = ScrapedAppRecord(rating=4.0, title="T", source_url=STEAM_URL, source_store="Steam VR")
        assert classifier.classify(record) == {"rating": HIGH, "title": LOW}


class TestNormalizeConfidence:
    """Test parsing caller-supplied confidence maps."""

    def test_camel_case_and_strings(self):
        assert normalize_confidence({"iconUrl": "HIGH", "packageName": "low"}) == {
            "icon_url": HIGH,
            "package_name_guess": LOW,
        }

    def test_unknown_tiers_dropped(self):
        assert normalize_confidence({"title": "certain"}) == {}
        assert normalize_confidence(None) == {}

    def test_parse_tier(self):
        assert parse_tier(MEDIUM) is MEDIUM
        assert parse_tier(" Medium ") is MEDIUM
        assert parse_tier(None) is None
