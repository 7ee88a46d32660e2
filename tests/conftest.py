"""Shared test fixtures for the VR app store test suite."""

import httpx
import pytest

from vrstore.adapters.fetcher import PageFetcher
from vrstore.layers.batch import BatchOrchestrator
from vrstore.layers.scraping import ScrapingLayer
from vrstore.models.app_record import CatalogAppRecord, ScrapedAppRecord, Screenshot
from vrstore.storage.memory import MemoryCatalogStore

META_URL = "https://www.meta.com/experiences/beat-saber/2448060205267927/"
SIDEQUEST_URL = "https://sidequestvr.com/app/1234"
STEAM_URL = "https://store.steampowered.com/app/620980/Beat_Saber/"

META_HTML = """
<html>
<head>
  <title>Beat Saber | Meta Quest</title>
  <meta property="og:description" content="Slash the beats in VR.">
  <meta property="og:image" content="https://cdn.example.com/og.png">
</head>
<body>
  <h1 data-testid="app-title">Beat Saber</h1>
  <span data-testid="app-developer">Beat Games</span>
  <div data-testid="app-description">A VR rhythm game where you slash the beats.</div>
  <span data-testid="app-category">Music</span>
  <div data-testid="app-icon"><img src="https://cdn.example.com/beat-saber-icon.png"></div>
  <span data-testid="rating">4.8 out of 5</span>
  <img src="https://cdn.example.com/screenshot-1.jpg" alt="Main menu">
  <img src="https://cdn.example.com/media/shot-2.jpg">
</body>
</html>
"""

SIDEQUEST_HTML = """
<html>
<head><title>Moon Rider - SideQuest</title></head>
<body>
  <div class="app-title"><h1>Moon Rider</h1></div>
  <a class="developer-name" href="/developer/supermedium">Supermedium</a>
  <div class="app-description">Ride the moon to music.</div>
  <div class="app-icon"><img src="/images/moon-rider.png"></div>
  <span class="version">1.2.3</span>
  <span class="app-size">Size: 150 MB</span>
  <a href="/downloads/moon-rider.apk">Download APK</a>
  <div class="gallery">
    <img src="https://cdn.sidequestvr.com/shot1.jpg" alt="Track">
    <img src="https://cdn.sidequestvr.com/shot2.jpg">
  </div>
</body>
</html>
"""

STEAM_HTML = """
<html>
<head>
  <title>Beat Saber on Steam</title>
  <meta name="description" content="Beat Saber is a VR rhythm game.">
</head>
<body>
  <div class="apphub_AppName">Beat Saber</div>
  <div id="developers_list"><a href="/developer/beatgames">Beat Games</a></div>
  <div class="game_description_snippet">Slash the beats in VR.</div>
  <div class="details_block"><a href="https://store.steampowered.com/genre/Action/">Action</a></div>
  <img class="game_header_image_full" src="https://cdn.steam.example/header.jpg">
  <a class="highlight_screenshot_link" href="https://cdn.steam.example/ss_1.jpg"></a>
  <div class="user_reviews_summary_row" data-tooltip-html="92% of the 1,234 user reviews for this game are positive."></div>
  <div class="sysreq">Storage: 2 GB available space</div>
</body>
</html>
"""


def html_transport(pages, calls=None):
    """MockTransport serving ``pages`` (url -> html); any other URL is a 404."""
    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if calls is not None:
            calls.append(url)
        if url in pages:
            return httpx.Response(200, text=pages[url])
        return httpx.Response(404, text="not found")
    return httpx.MockTransport(handler)


@pytest.fixture
def store_pages():
    """All storefront fixture pages keyed by URL."""
    return {
        META_URL: META_HTML,
        SIDEQUEST_URL: SIDEQUEST_HTML,
        STEAM_URL: STEAM_HTML,
    }


@pytest.fixture
def fetched_urls():
    """URLs requested through the mock transport, in order."""
    return []


@pytest.fixture
def scraper(store_pages, fetched_urls):
    """Scraping layer wired to the fixture pages instead of the network."""
    fetcher = PageFetcher(
        max_retries=0,
        backoff_base=0,
        transport=html_transport(store_pages, fetched_urls),
    )
    return ScrapingLayer(fetcher=fetcher)


@pytest.fixture
def batch(scraper):
    """Batch orchestrator with no politeness delay."""
    return BatchOrchestrator(scraping_layer=scraper, concurrency=2, request_delay=0)


@pytest.fixture
def memory_store():
    """Seeded in-memory catalog store."""
    return MemoryCatalogStore()


@pytest.fixture
def existing_record():
    """A catalog entry with a description and one screenshot."""
    return CatalogAppRecord(
        id=7,
        package_name="com.example.existing",
        title="Existing Title",
        description="Existing desc",
        developer="Existing Dev",
        category="Education",
        rating=4.0,
        screenshots=[Screenshot(url="https://cdn.example.com/old.jpg", caption="Old")],
    )


@pytest.fixture
def scraped_record():
    """A scraped record with the fields a typical storefront yields."""
    return ScrapedAppRecord(
        title="New Title",
        developer="New Dev",
        description="New desc",
        category="Games",
        rating=4.5,
        screenshots=[Screenshot(url="https://cdn.example.com/new.jpg", caption="New")],
        source_url=META_URL,
        source_store="Meta Quest Store",
    )
