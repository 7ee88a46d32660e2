"""
Merge Strategy Engine.

Combines an existing catalog record with a freshly scraped one, field by
field, under one of four decisions:

- overwrite: take the scraped value
- merge:     description is appended, screenshots are concatenated,
             any other field behaves like overwrite
- keep:      keep the existing value
- suggest:   take the scraped value only if the existing one is empty

Only fields present in the scraped record are considered; everything else
passes through from the existing record untouched.
"""
import copy
from typing import Any, Dict, Optional

from vrstore.layers.confidence import normalize_confidence
from vrstore.models.app_record import (
    CATALOG_FIELD_MAP,
    CatalogAppRecord,
    ConfidenceTier,
    MergeDecision,
    ScrapedAppRecord,
    is_empty_value,
    normalize_field_name,
)
from vrstore.utils.logger import LayerLogger

MERGE_SEPARATOR = "\n\n"

DEFAULT_DECISIONS: Dict[ConfidenceTier, MergeDecision] = {
    ConfidenceTier.HIGH: MergeDecision.OVERWRITE,
    ConfidenceTier.MEDIUM: MergeDecision.OVERWRITE,
    ConfidenceTier.LOW: MergeDecision.SUGGEST,
}


class MergeEngine:
    """
    Field-level reconciliation between catalog and scraped records.

    ``merge`` never raises for any mix of present/absent fields or decision
    values and never mutates its inputs.
    """

    def __init__(self, default_decisions: Optional[Dict[ConfidenceTier, MergeDecision]] = None):
        self.default_decisions = dict(default_decisions or DEFAULT_DECISIONS)
        self.logger = LayerLogger("merge_engine")

    def recommend(self, confidence: Dict[str, ConfidenceTier]) -> Dict[str, MergeDecision]:
        """Default decision for every field in a confidence map."""
        return {
            field_name: self.default_decisions.get(tier, MergeDecision.SUGGEST)
            for field_name, tier in confidence.items()
        }

    def resolve_decision(
        self,
        field_name: str,
        confidence: Dict[str, ConfidenceTier],
        user_choices: Dict[str, Any],
    ) -> MergeDecision:
        """Explicit user choice first, then the confidence default, then suggest."""
        if field_name in user_choices:
            return MergeDecision.parse(user_choices[field_name])
        tier = confidence.get(field_name)
        if tier is None:
            return MergeDecision.SUGGEST
        return self.default_decisions.get(tier, MergeDecision.SUGGEST)

    def merge(
        self,
        existing: CatalogAppRecord,
        scraped: ScrapedAppRecord,
        confidence: Optional[Dict[str, Any]] = None,
        user_choices: Optional[Dict[str, Any]] = None,
    ) -> CatalogAppRecord:
        """
        Produce a new catalog record from ``existing`` and ``scraped``.

        Args:
            existing: Current catalog entry (not modified)
            scraped: Record returned by an extractor
            confidence: Field -> tier; fields without an entry default to suggest
            user_choices: Field -> decision, overriding the confidence default

        Returns:
            A new CatalogAppRecord
        """
        tiers = normalize_confidence(confidence)
        choices = {normalize_field_name(k): v for k, v in (user_choices or {}).items()}

        update: Dict[str, Any] = {}
        decisions = []

        for field_name in scraped.get_present_fields():
            target = CATALOG_FIELD_MAP.get(field_name, field_name)
            if target not in CatalogAppRecord.model_fields:
                continue

            decision = self.resolve_decision(field_name, tiers, choices)
            existing_value = getattr(existing, target)
            scraped_value = getattr(scraped, field_name)
            new_value = self._apply(decision, field_name, existing_value, scraped_value)

            changed = new_value is not existing_value
            if changed:
                update[target] = copy.deepcopy(new_value)
            self.logger.log_field_merge(field_name, decision.value, changed, app_id=existing.id)
            decisions.append({
                "field": field_name,
                "decision": decision.value,
                "changed": changed,
            })

        merged = existing.model_copy(update=update, deep=True)

        self.logger.log_action(
            "merge",
            "completed",
            app_id=existing.id,
            source_url=scraped.source_url,
            decisions=decisions,
        )
        return merged

    def _apply(
        self,
        decision: MergeDecision,
        field_name: str,
        existing_value: Any,
        scraped_value: Any,
    ) -> Any:
        if decision == MergeDecision.OVERWRITE:
            return scraped_value

        if decision == MergeDecision.MERGE:
            if field_name == "description" and not is_empty_value(existing_value):
                return f"{existing_value}{MERGE_SEPARATOR}{scraped_value}"
            if field_name == "screenshots":
                return list(existing_value or []) + list(scraped_value)
            return scraped_value

        if decision == MergeDecision.KEEP:
            return existing_value

        # suggest: fill only when empty
        if is_empty_value(existing_value):
            return scraped_value
        return existing_value
