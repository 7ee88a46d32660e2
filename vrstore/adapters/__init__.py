"""Adapters package initialization."""
from vrstore.adapters.fetcher import PageFetcher
from vrstore.adapters.store_extractor import StoreExtractor, ExtractionRule, PageContext
from vrstore.adapters.metaquest import MetaQuestExtractor
from vrstore.adapters.sidequest import SideQuestExtractor
from vrstore.adapters.steam import SteamExtractor

# Routing order: first matching extractor wins
EXTRACTORS = [MetaQuestExtractor, SideQuestExtractor, SteamExtractor]

__all__ = [
    "PageFetcher",
    "StoreExtractor",
    "ExtractionRule",
    "PageContext",
    "MetaQuestExtractor",
    "SideQuestExtractor",
    "SteamExtractor",
    "EXTRACTORS",
]
