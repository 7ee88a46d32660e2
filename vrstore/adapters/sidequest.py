"""
SideQuest extractor.
SideQuest is the only storefront that exposes version and direct APK links.
"""
import re

from vrstore.adapters.store_extractor import (
    StoreExtractor,
    meta_content,
    meta_url,
    pattern,
    select_attr,
    select_file_size,
    select_number,
    select_screenshots,
    select_text,
    text_file_size,
    title_without,
)
from vrstore.utils.file_size import find_file_size

SIDEQUEST_BASE_URL = "https://sidequestvr.com"


class SideQuestExtractor(StoreExtractor):
    """Extractor for SideQuest app pages."""

    store_id = "sidequest"
    store_name = "SideQuest"
    url_patterns = [
        re.compile(r"^https?://(www\.)?sidequestvr\.com/app/", re.IGNORECASE),
        re.compile(r"^https?://(www\.)?sidequest\.com/app/", re.IGNORECASE),
    ]
    pattern_hints = [
        "sidequestvr.com/app/",
        "sidequest.com/app/",
    ]
    example_url = "https://sidequestvr.com/app/12345"
    fallback_category = "Games"

    field_rules = {
        "title": [
            select_text(".app-title h1"),
            select_text("h1.title"),
            select_text("h1"),
            title_without(" - SideQuest"),
        ],
        "developer": [
            select_text(".developer-name"),
            select_text('a[href*="/developer/"]'),
            select_text(".app-author"),
            pattern(r"Developer:\s*([^\n]+)"),
        ],
        "description": [
            select_text(".app-description", separator="\n"),
            select_text(".description", separator="\n"),
            meta_content(prop="og:description"),
            meta_content(name="description"),
        ],
        "category": [
            select_text(".app-category"),
            select_text(".category-tag"),
        ],
        "icon_url": [
            select_attr(".app-icon img", "src"),
            select_attr(".app-image img", "src"),
            meta_url("og:image"),
        ],
        "screenshots": [
            select_screenshots(".screenshot img, .gallery img"),
        ],
        "version": [
            select_text(".version"),
            select_text(".app-version"),
            pattern(r"Version:\s*([^\n]+)"),
        ],
        "download_url": [
            select_attr('a[href*=".apk"], a[download]', "href", base=SIDEQUEST_BASE_URL),
        ],
        "file_size": [
            select_file_size(".app-size"),
            text_file_size(),
            pattern(
                r"(\d+(?:\.\d+)?)\s*(MB|GB)\b",
                convert=lambda m: find_file_size(f"{m.group(1)} {m.group(2)}"),
                flags=re.IGNORECASE,
            ),
        ],
        "rating": [
            select_number(".rating"),
            select_number(".stars"),
        ],
        "package_name_guess": [
            pattern(r"/app/(\d+)", source="url", convert=lambda m: f"sidequest.app.{m.group(1)}"),
        ],
    }
