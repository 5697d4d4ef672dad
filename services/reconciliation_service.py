"""
Catalog feed reconciliation.

One run takes feed rows and brings the catalog in line with them:

1. Normalize rows and drop in-file duplicates
2. Resolve every row against a snapshot of the catalog
3. Stage updates (changed fields only) and inserts (new entries)
4. Optionally plan zeroing stock for entries the feed no longer lists
5. Apply, then record history (skipped entirely in dry-run)

Rows are independent: one bad row, ambiguous match or failed write never
stops the others.
"""

import re
from contextlib import nullcontext
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

import structlog

from config import settings
from models.catalog import CatalogEntry, CatalogKey
from models.reconciliation import (
    ChangeRecord,
    CreatedItem,
    DuplicateRows,
    IncomingRecord,
    MatchResult,
    ROW_NUMBER_KEY,
    NotFoundItem,
    ReconciliationReport,
    ReconciliationStats,
    RowError,
    UpdatedItem,
)
from services.catalog_index import CatalogIndex
from services.catalog_lock import catalog_lease
from services.catalog_service import CatalogService, get_catalog_service
from services.diff_engine import EntryDiff, diff_entry
from services.history_service import HistoryService, get_history_service
from services.key_resolver import KeyResolver
from services.row_normalizer import MISSING_KEY_MESSAGE, normalize_row
from services.stock_sync_service import StockSyncZeroer, ZeroPlan
from exceptions import (
    AmbiguousMatchError,
    EmptyFeedError,
    PersistenceError,
    RowValidationError,
)
from utils.text_utils import is_placeholder_id, normalize_key

logger = structlog.get_logger(__name__)

MAX_SUGGESTIONS = 5
GENERATED_COLOR_LENGTH = 10

_WHITESPACE = re.compile(r"\s+")


@dataclass
class StagedUpdate:
    record: IncomingRecord
    match: MatchResult
    diff: EntryDiff

    @property
    def entry(self) -> CatalogEntry:
        return self.match.entry


@dataclass
class StagedInsert:
    record: IncomingRecord
    entry: CatalogEntry


@dataclass
class RunState:
    """Everything collected for one run before anything is written."""
    snapshot: list[CatalogEntry]
    updates: list[StagedUpdate] = field(default_factory=list)
    inserts: list[StagedInsert] = field(default_factory=list)
    not_found: list[NotFoundItem] = field(default_factory=list)
    errors: list[RowError] = field(default_factory=list)
    duplicates: list[DuplicateRows] = field(default_factory=list)
    seen: set[CatalogKey] = field(default_factory=set)
    claimed: dict[CatalogKey, int] = field(default_factory=dict)
    used_ids: set[str] = field(default_factory=set)
    zero_plan: ZeroPlan = field(default_factory=ZeroPlan)
    valid_rows: int = 0
    unchanged: int = 0


def build_suggestions(candidates: list[CatalogEntry]) -> list[str]:
    """
    Candidate labels for an ambiguous row.

    - ["BG100-1: Black / M", "BG100-2: Black / L"]
    - at most MAX_SUGGESTIONS labels, then "... and N more"
    """
    suggestions = [c.label() for c in candidates[:MAX_SUGGESTIONS]]
    if len(candidates) > MAX_SUGGESTIONS:
        suggestions.append(f"... and {len(candidates) - MAX_SUGGESTIONS} more")
    return suggestions


def generate_entry_id(model_ref: str, color: Optional[str], used_ids: set[str]) -> str:
    """
    Build an unused id from reference and color.

    - ("bg100", "Light Blue") → "BG100_LIGHT_BLUE"
    - taken → "BG100_LIGHT_BLUE_1", "BG100_LIGHT_BLUE_2", ...

    Args:
        model_ref: Entry reference
        color: Entry color (truncated in the id)
        used_ids: Normalized ids already taken; the new id is added

    Returns:
        The new id
    """
    base = model_ref.strip().upper()
    if color:
        base += "_" + _WHITESPACE.sub("_", color.strip())[:GENERATED_COLOR_LENGTH].upper()

    candidate = base
    counter = 0
    while normalize_key(candidate) in used_ids:
        counter += 1
        candidate = f"{base}_{counter}"

    used_ids.add(normalize_key(candidate))
    return candidate


class ReconciliationService:
    """
    Reconciles feed rows against the catalog.

    Collaborators are injectable; by default the shared store services are
    used.
    """

    def __init__(
        self,
        catalog_service: Optional[CatalogService] = None,
        history_service: Optional[HistoryService] = None,
        zeroer: Optional[StockSyncZeroer] = None,
    ):
        self.catalog = catalog_service or get_catalog_service()
        self.history = history_service or get_history_service()
        self.zeroer = zeroer or StockSyncZeroer()

    def run(
        self,
        rows: list[Mapping[str, Any]],
        file_name: str,
        sync_stock: bool = False,
        dry_run: bool = False,
    ) -> ReconciliationReport:
        """
        Reconcile one feed.

        Args:
            rows: Raw feed rows (header → cell). Each row may carry its
                sheet row number under ROW_NUMBER_KEY
            file_name: Feed name, stored in history
            sync_stock: Zero stock for catalog entries absent from the feed
            dry_run: Build the full report without writing anything

        Returns:
            ReconciliationReport (same shape for dry-run and apply)

        Raises:
            EmptyFeedError: If there are no rows
            CatalogUnavailableError: If the catalog cannot be read
            CatalogBusyError: If another run holds the catalog
        """
        if not rows:
            raise EmptyFeedError(file_name)

        logger.info(
            "reconciliation_started",
            file_name=file_name,
            rows=len(rows),
            sync_stock=sync_stock,
            dry_run=dry_run,
        )

        # Only writing runs take the lease
        lease = nullcontext() if dry_run else catalog_lease(self.catalog.table)
        with lease:
            snapshot = self.catalog.list_all()
            state = self._stage(rows, snapshot, sync_stock)

            if not dry_run:
                self._apply(state)

            report = self._build_report(state, len(rows), file_name, sync_stock, dry_run)

            if not dry_run:
                self._record_history(report, state)

        logger.info(
            "reconciliation_completed",
            file_name=file_name,
            dry_run=dry_run,
            history_id=report.history_id,
            **report.stats.model_dump(),
        )
        return report

    # ===================
    # STAGING
    # ===================

    def _stage(
        self,
        rows: list[Mapping[str, Any]],
        snapshot: list[CatalogEntry],
        sync_stock: bool,
    ) -> RunState:
        state = RunState(snapshot=snapshot)
        state.used_ids = {normalize_key(entry.id) for entry in snapshot}

        records = self._normalize(rows, state)
        state.valid_rows = len(records)
        records = self._drop_duplicates(records, state)

        resolver = KeyResolver(CatalogIndex(snapshot))
        for record in records:
            self._stage_record(record, resolver, state)

        # Needs the seen set of every row
        if sync_stock:
            state.zero_plan = self.zeroer.plan(snapshot, state.seen)

        return state

    def _normalize(self, rows: list[Mapping[str, Any]], state: RunState) -> list[IncomingRecord]:
        records = []
        for position, row in enumerate(rows):
            # Header is sheet row 1
            row_number = row.get(ROW_NUMBER_KEY) or position + 2
            data = {k: v for k, v in row.items() if k != ROW_NUMBER_KEY}
            try:
                records.append(normalize_row(data, row_number))
            except RowValidationError as e:
                state.errors.append(RowError(row_number=e.row_number, message=e.message))
        return records

    def _drop_duplicates(self, records: list[IncomingRecord], state: RunState) -> list[IncomingRecord]:
        """Keep the first row per (id, ref, color, size); report the rest."""
        groups: dict[tuple, list[IncomingRecord]] = {}
        for record in records:
            key = tuple(normalize_key(v) for v in (record.id, record.model_ref, record.color, record.size))
            groups.setdefault(key, []).append(record)

        unique = []
        for group in groups.values():
            first = group[0]
            unique.append(first)
            if len(group) == 1:
                continue

            state.duplicates.append(DuplicateRows(
                row_numbers=[r.row_number for r in group],
                model_ref=first.model_ref,
                color=first.color,
                size=first.size,
            ))
            for later in group[1:]:
                state.errors.append(RowError(
                    row_number=later.row_number,
                    message=f"Duplicate row: same entry as row {first.row_number}",
                ))
        return unique

    def _stage_record(self, record: IncomingRecord, resolver: KeyResolver, state: RunState) -> None:
        try:
            match = self._resolve(record, resolver)
        except AmbiguousMatchError as e:
            state.not_found.append(NotFoundItem(
                row_number=record.row_number,
                data=record.raw_summary(),
                reason=f"{len(e.candidates)} catalog entries match on {e.tier}; specify color and size",
                suggestions=build_suggestions(e.candidates),
            ))
            # Referenced by the feed, so never zeroed by this run
            state.seen.update(c.key() for c in e.candidates)
            return

        if match.is_new:
            self._stage_insert(record, state)
            return

        entry = match.entry
        key = entry.key()
        if key in state.claimed:
            state.errors.append(RowError(
                row_number=record.row_number,
                message=f"Entry {entry.id} already updated by row {state.claimed[key]}",
            ))
            return

        state.claimed[key] = record.row_number
        state.seen.add(key)

        diff = diff_entry(record, entry)
        if not diff.has_changes:
            state.unchanged += 1
            return
        state.updates.append(StagedUpdate(record=record, match=match, diff=diff))

    def _resolve(self, record: IncomingRecord, resolver: KeyResolver) -> MatchResult:
        """
        Raises:
            AmbiguousMatchError: If several entries match and none uniquely
        """
        match = resolver.resolve(record)
        if match.is_ambiguous:
            raise AmbiguousMatchError(record.row_number, match.tier.value, match.ambiguous_candidates)
        return match

    def _stage_insert(self, record: IncomingRecord, state: RunState) -> None:
        # Rows without a color can update but never create
        if not record.color:
            state.errors.append(RowError(row_number=record.row_number, message=MISSING_KEY_MESSAGE))
            return

        if record.id and not is_placeholder_id(record.id) and normalize_key(record.id) not in state.used_ids:
            entry_id = record.id
            state.used_ids.add(normalize_key(entry_id))
        else:
            entry_id = generate_entry_id(record.model_ref, record.color, state.used_ids)

        entry = CatalogEntry(
            id=entry_id,
            model_ref=record.model_ref.upper(),
            color=record.color,
            size=record.size,
            stock_quantity=record.stock_quantity or 0,
            price_retail=record.price_retail or 0,
            price_wholesale=record.price_wholesale or 0,
            product_name=record.product_name or record.model_ref,
            brand=record.brand or settings.default_brand,
            collection=record.collection,
            category=record.category,
            subcategory=record.subcategory,
            gender=record.gender,
            supplier=record.supplier,
            image_url=record.image_url or settings.placeholder_image_url,
        )
        state.inserts.append(StagedInsert(record=record, entry=entry))
        state.seen.add(entry.key())

    # ===================
    # APPLY
    # ===================

    def _apply(self, state: RunState) -> None:
        """Write staged changes; failed writes move from the plan to errors."""
        applied_updates = []
        for staged in state.updates:
            try:
                self.catalog.update(staged.entry.key(), staged.diff.fields)
            except PersistenceError as e:
                state.errors.append(RowError(row_number=staged.record.row_number, message=e.message))
                continue
            applied_updates.append(staged)
        state.updates = applied_updates

        applied_inserts = []
        for staged in state.inserts:
            try:
                self.catalog.insert(staged.entry)
            except PersistenceError as e:
                state.errors.append(RowError(row_number=staged.record.row_number, message=e.message))
                continue
            applied_inserts.append(staged)
        state.inserts = applied_inserts

        if state.zero_plan.entries:
            state.errors.extend(self.zeroer.apply(state.zero_plan, self.catalog))

        logger.info(
            "reconciliation_applied",
            updated=len(state.updates),
            inserted=len(state.inserts),
            zeroed=len(state.zero_plan),
        )

    def _record_history(self, report: ReconciliationReport, state: RunState) -> None:
        try:
            entry = self.history.record(
                file_name=report.file_name,
                stats=report.stats,
                changes=report.changes,
                inserted=report.created,
                zeroed=report.zeroed_products,
                snapshot=state.snapshot,
                sync_stock=report.sync_stock_enabled,
            )
        except PersistenceError as e:
            # Catalog changes are already applied; the run still succeeded
            logger.error("history_not_recorded", file_name=report.file_name, error=e.message)
            report.history_error = e.message
            return
        report.history_id = entry.id

    # ===================
    # REPORT
    # ===================

    def _build_report(
        self,
        state: RunState,
        total_rows: int,
        file_name: str,
        sync_stock: bool,
        dry_run: bool,
    ) -> ReconciliationReport:
        updated = [
            UpdatedItem(
                row_number=staged.record.row_number,
                id=staged.entry.id,
                model_ref=staged.entry.model_ref,
                color=staged.entry.color,
                size=staged.entry.size,
                tier=staged.match.tier,
                confidence=staged.match.confidence,
                changes=staged.diff.changes,
            )
            for staged in state.updates
        ]
        created = [
            CreatedItem(
                row_number=staged.record.row_number,
                id=staged.entry.id,
                model_ref=staged.entry.model_ref,
                color=staged.entry.color,
                size=staged.entry.size,
                stock=staged.entry.stock_quantity,
            )
            for staged in state.inserts
        ]
        changes: list[ChangeRecord] = [c for staged in state.updates for c in staged.diff.changes]
        changes.extend(state.zero_plan.changes)

        errors = sorted(state.errors, key=lambda e: (e.row_number is None, e.row_number or 0))

        stats = ReconciliationStats(
            total_rows=total_rows,
            valid_rows=state.valid_rows,
            updated=len(updated),
            inserted=len(created),
            unchanged=state.unchanged,
            not_found=len(state.not_found),
            stock_zeroed=len(state.zero_plan),
            errors_count=len(errors),
            duplicates_in_file=sum(len(d.row_numbers) - 1 for d in state.duplicates),
        )

        # Same wording for dry-run and apply; the dry_run flag tells them apart
        message = f"{stats.updated} updated, {stats.inserted} created"
        if sync_stock:
            message += f", {stats.stock_zeroed} zeroed"

        return ReconciliationReport(
            success=True,
            dry_run=dry_run,
            sync_stock_enabled=sync_stock,
            file_name=file_name,
            message=message,
            stats=stats,
            updated=updated,
            created=created,
            not_found=state.not_found,
            errors=errors,
            duplicates_in_file=state.duplicates,
            zeroed_products=state.zero_plan.zeroed,
            changes=changes,
        )


_reconciliation_service: Optional[ReconciliationService] = None


def get_reconciliation_service() -> ReconciliationService:
    global _reconciliation_service
    if _reconciliation_service is None:
        _reconciliation_service = ReconciliationService()
    return _reconciliation_service
