"""
Tiered resolution of incoming records against the catalog index.

Tiers are tried from most to least specific; the first tier with exactly
one candidate wins. A tier with several candidates does not resolve, and
the most specific such tier supplies the candidates reported when nothing
resolves:

- no candidate at any tier → new entry
- candidates seen but no unique tier → ambiguous (never inserted or updated)
"""

from typing import Callable, Optional

import structlog

from models.catalog import CatalogEntry
from models.reconciliation import IncomingRecord, MatchResult, MatchTier, TIER_CONFIDENCE
from services.catalog_index import CatalogIndex

logger = structlog.get_logger(__name__)

Lookup = Callable[[IncomingRecord], Optional[list[CatalogEntry]]]


class KeyResolver:
    """Resolve records to zero, one or many catalog entries."""

    def __init__(self, index: CatalogIndex):
        self.index = index
        # None from a lookup means the record lacks that tier's key parts
        self._tiers: list[tuple[MatchTier, Lookup]] = [
            (MatchTier.ID_REF_COLOR, self._lookup_id_ref_color),
            (MatchTier.ID, self._lookup_id),
            (MatchTier.REF_COLOR_SIZE, self._lookup_ref_color_size),
            (MatchTier.REF_COLOR, self._lookup_ref_color),
            (MatchTier.REF_COLOR_UNSIZED, self._lookup_ref_color_unsized),
            (MatchTier.REF, self._lookup_ref),
        ]

    def resolve(self, record: IncomingRecord) -> MatchResult:
        """
        Resolve one record.

        Args:
            record: Normalized feed row

        Returns:
            MatchResult with the matched entry, or the ambiguous candidates,
            or neither (new)
        """
        ambiguous_tier: Optional[MatchTier] = None
        ambiguous: list[CatalogEntry] = []

        for tier, lookup in self._tiers:
            candidates = lookup(record)
            if not candidates:
                continue

            if len(candidates) == 1:
                return MatchResult(
                    tier=tier,
                    confidence=TIER_CONFIDENCE[tier],
                    entry=candidates[0],
                )

            if ambiguous_tier is None:
                ambiguous_tier = tier
                ambiguous = candidates

        if ambiguous_tier is not None:
            logger.debug(
                "record_ambiguous",
                row=record.row_number,
                tier=ambiguous_tier.value,
                candidates=len(ambiguous),
            )
            return MatchResult(
                tier=ambiguous_tier,
                confidence=0,
                ambiguous_candidates=ambiguous,
            )

        return MatchResult(tier=MatchTier.NONE, confidence=0)

    # ===================
    # TIER LOOKUPS
    # ===================

    def _lookup_id_ref_color(self, record: IncomingRecord) -> Optional[list[CatalogEntry]]:
        if not (record.id and record.color):
            return None
        return self.index.by_id_ref_color(record.id, record.model_ref, record.color)

    def _lookup_id(self, record: IncomingRecord) -> Optional[list[CatalogEntry]]:
        if not record.id:
            return None
        return self.index.by_id(record.id)

    def _lookup_ref_color_size(self, record: IncomingRecord) -> Optional[list[CatalogEntry]]:
        if not (record.color and record.size):
            return None
        return self.index.by_ref_color_size(record.model_ref, record.color, record.size)

    def _lookup_ref_color(self, record: IncomingRecord) -> Optional[list[CatalogEntry]]:
        if not record.color:
            return None
        return self.index.by_ref_color(record.model_ref, record.color)

    def _lookup_ref_color_unsized(self, record: IncomingRecord) -> Optional[list[CatalogEntry]]:
        # Only narrows a shared ref+color when the feed row has no size either
        if not record.color or record.size:
            return None
        matches = self.index.by_ref_color(record.model_ref, record.color)
        if len(matches) < 2:
            return None
        return [entry for entry in matches if not entry.size]

    def _lookup_ref(self, record: IncomingRecord) -> Optional[list[CatalogEntry]]:
        return self.index.by_ref(record.model_ref)
