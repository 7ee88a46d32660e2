"""
Steam store extractor for VR titles.
Steam reports review scores as a positive percentage; it is rescaled to
the 0-5 catalog scale.
"""
import re

from vrstore.adapters.store_extractor import (
    StoreExtractor,
    meta_content,
    meta_url,
    pattern,
    select_attr,
    select_screenshots,
    select_text,
    text_file_size,
    title_without,
)


def _percentage_to_stars(match: re.Match) -> float:
    return float(match.group(1)) / 20


class SteamExtractor(StoreExtractor):
    """Extractor for store.steampowered.com app pages."""

    store_id = "steam"
    store_name = "Steam VR"
    url_patterns = [
        re.compile(r"^https?://store\.steampowered\.com/app/", re.IGNORECASE),
    ]
    pattern_hints = [
        "store.steampowered.com/app/",
    ]
    example_url = "https://store.steampowered.com/app/123456/App_Name/"
    fallback_category = "Games"

    field_rules = {
        "title": [
            select_text(".apphub_AppName"),
            select_text("#appHubAppName"),
            title_without(" on Steam"),
        ],
        "developer": [
            select_text("#developers_list a"),
            select_text(".dev_row a"),
            pattern(r"Developer:\s*([^\n]+)"),
        ],
        "description": [
            select_text(".game_description_snippet"),
            meta_content(name="description"),
            meta_content(prop="og:description"),
        ],
        "category": [
            select_text('.details_block a[href*="/genre/"]'),
            pattern(r"Genre:\s*([^,\n]+)"),
        ],
        "icon_url": [
            select_attr("img.game_header_image_full", "src"),
            meta_url("og:image"),
        ],
        "screenshots": [
            select_screenshots("a.highlight_screenshot_link", attr="href"),
            select_screenshots(".highlight_strip_screenshot img"),
        ],
        "rating": [
            pattern(r"(\d+(?:\.\d+)?)% of the [\d,]+ user reviews", source="html", convert=_percentage_to_stars),
        ],
        "file_size": [
            text_file_size(r"Storage:\s*([^\n]+)"),
        ],
        "package_name_guess": [
            pattern(r"/app/(\d+)", source="url", convert=lambda m: f"steam.app.{m.group(1)}"),
        ],
    }
