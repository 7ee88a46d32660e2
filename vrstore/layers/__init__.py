"""Layers package initialization."""
from vrstore.layers.routing import RouteMatch, UrlRouter
from vrstore.layers.confidence import CONFIDENCE_POLICY, ConfidenceClassifier
from vrstore.layers.merge import MergeEngine
from vrstore.layers.scraping import ScrapingLayer
from vrstore.layers.batch import BatchOrchestrator

__all__ = [
    "RouteMatch",
    "UrlRouter",
    "CONFIDENCE_POLICY",
    "ConfidenceClassifier",
    "MergeEngine",
    "ScrapingLayer",
    "BatchOrchestrator",
]
