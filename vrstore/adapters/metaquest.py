"""
Meta Quest Store extractor.
Covers meta.com, oculus.com and the legacy store.facebook.com URLs.
"""
import re

from vrstore.adapters.store_extractor import (
    StoreExtractor,
    meta_content,
    meta_url,
    pattern,
    select_attr,
    select_number,
    select_screenshots,
    select_text,
    text_file_size,
    title_without,
)


def _package_from_url(match: re.Match) -> str:
    slug, app_id = match.group(1), match.group(2)
    if slug:
        return slug.lower()
    return f"meta.app.{app_id}"


class MetaQuestExtractor(StoreExtractor):
    """Extractor for Meta Quest Store app pages."""

    store_id = "meta"
    store_name = "Meta Quest Store"
    url_patterns = [
        re.compile(r"^https?://(www\.)?meta\.com/experiences/", re.IGNORECASE),
        re.compile(r"^https?://(www\.)?oculus\.com/experiences/", re.IGNORECASE),
        re.compile(r"^https?://(www\.)?store\.facebook\.com/quest/", re.IGNORECASE),
    ]
    pattern_hints = [
        "meta.com/experiences/",
        "oculus.com/experiences/",
        "store.facebook.com/quest/",
    ]
    example_url = "https://www.meta.com/experiences/app-name/1234567890123456/"
    fallback_category = "Games"

    field_rules = {
        "title": [
            select_text('h1[data-testid="app-title"]'),
            select_text("h1.app-title"),
            select_text("h1"),
            title_without(" | Meta Quest"),
        ],
        "developer": [
            select_text('[data-testid="app-developer"]'),
            select_text(".developer-name"),
            select_text('a[href*="/developer/"]'),
        ],
        "description": [
            select_text('[data-testid="app-description"]', separator="\n"),
            select_text(".app-description", separator="\n"),
            meta_content(prop="og:description"),
            meta_content(name="description"),
        ],
        "category": [
            select_text('[data-testid="app-category"]'),
            select_text(".category"),
        ],
        "icon_url": [
            select_attr('[data-testid="app-icon"] img', "src"),
            select_attr(".app-icon img", "src"),
            meta_url("og:image"),
        ],
        "screenshots": [
            select_screenshots('img[src*="screenshot"], img[src*="media"]', exclude=("icon",)),
        ],
        "rating": [
            select_number('[data-testid="rating"]'),
            select_number(".rating"),
        ],
        "file_size": [
            text_file_size(),
        ],
        "package_name_guess": [
            pattern(
                r"/(?:experiences|quest)/(?:(?:quest|rift|pcvr|go)/)?(?:([A-Za-z0-9._-]*[A-Za-z._-][A-Za-z0-9._-]*)/)?(\d{5,})",
                source="url",
                convert=_package_from_url,
            ),
        ],
    }
