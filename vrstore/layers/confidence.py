"""
Confidence Classifier for scraped app records.

Tiers are assigned by field identity, not by value: a title pulled from a
storefront is trusted more than a package name guessed from its URL. The
policy is plain data so new fields can be classified without touching the
merge engine.
"""
from typing import Any, Dict, Optional

from vrstore.models.app_record import ConfidenceTier, ScrapedAppRecord, normalize_field_name
from vrstore.utils.logger import LayerLogger

CONFIDENCE_POLICY: Dict[str, ConfidenceTier] = {
    "title": ConfidenceTier.HIGH,
    "developer": ConfidenceTier.HIGH,
    "icon_url": ConfidenceTier.HIGH,
    "description": ConfidenceTier.MEDIUM,
    "short_description": ConfidenceTier.MEDIUM,
    "category": ConfidenceTier.MEDIUM,
    "package_name_guess": ConfidenceTier.LOW,
    "version": ConfidenceTier.LOW,
}

# rating, file_size, screenshots, download_url ...
UNLISTED_FIELD_TIER = ConfidenceTier.LOW


def parse_tier(value: Any) -> Optional[ConfidenceTier]:
    """Read a tier from user input; None when unrecognized."""
    if isinstance(value, ConfidenceTier):
        return value
    try:
        return ConfidenceTier(str(value or "").strip().lower())
    except ValueError:
        return None


def normalize_confidence(confidence: Optional[Dict[str, Any]]) -> Dict[str, ConfidenceTier]:
    """Normalize a caller-supplied confidence map (camelCase keys, string tiers)."""
    result: Dict[str, ConfidenceTier] = {}
    for key, value in (confidence or {}).items():
        tier = parse_tier(value)
        if tier is not None:
            result[normalize_field_name(key)] = tier
    return result


class ConfidenceClassifier:
    """
    Assigns a confidence tier to every present field of a scraped record.

    Absent fields get no entry. A value that is a storefront default (see
    ``ScrapedAppRecord.fallback_fields``) is always low, whatever the
    field's usual tier.
    """

    def __init__(
        self,
        policy: Optional[Dict[str, ConfidenceTier]] = None,
        unlisted_tier: ConfidenceTier = UNLISTED_FIELD_TIER,
    ):
        self.policy = dict(policy) if policy is not None else dict(CONFIDENCE_POLICY)
        self.unlisted_tier = unlisted_tier
        self.logger = LayerLogger("confidence_classifier")

    def classify(self, record: ScrapedAppRecord) -> Dict[str, ConfidenceTier]:
        confidence: Dict[str, ConfidenceTier] = {}
        for field_name in record.get_present_fields():
            if record.is_fallback(field_name):
                confidence[field_name] = ConfidenceTier.LOW
            else:
                confidence[field_name] = self.policy.get(field_name, self.unlisted_tier)

        self.logger.log_action(
            "classify",
            "completed",
            url=record.source_url,
            confidence={name: tier.value for name, tier in confidence.items()},
        )
        return confidence
