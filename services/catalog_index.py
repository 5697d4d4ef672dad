"""
Lookup structures over one catalog snapshot.

Every map keeps all entries sharing a key so the resolver can tell a
unique match from an ambiguous one. Built once per run, read-only after.
"""

from collections import defaultdict
from typing import Iterable, Optional

from models.catalog import CatalogEntry
from utils.text_utils import normalize_key


def _key(*parts: Optional[str]) -> str:
    return "|".join(normalize_key(p) for p in parts)


class CatalogIndex:
    """Normalized-key lookups by id, id+ref+color, ref+color+size, ref+color and ref."""

    def __init__(self, entries: Iterable[CatalogEntry]):
        self.entries: list[CatalogEntry] = list(entries)
        self._by_id: dict[str, list[CatalogEntry]] = defaultdict(list)
        self._by_id_ref_color: dict[str, list[CatalogEntry]] = defaultdict(list)
        self._by_ref_color_size: dict[str, list[CatalogEntry]] = defaultdict(list)
        self._by_ref_color: dict[str, list[CatalogEntry]] = defaultdict(list)
        self._by_ref: dict[str, list[CatalogEntry]] = defaultdict(list)

        for entry in self.entries:
            if entry.has_stable_id:
                self._by_id[_key(entry.id)].append(entry)
                self._by_id_ref_color[_key(entry.id, entry.model_ref, entry.color)].append(entry)
            self._by_ref_color_size[_key(entry.model_ref, entry.color, entry.size)].append(entry)
            self._by_ref_color[_key(entry.model_ref, entry.color)].append(entry)
            self._by_ref[_key(entry.model_ref)].append(entry)

    def __len__(self) -> int:
        return len(self.entries)

    def by_id(self, entry_id: str) -> list[CatalogEntry]:
        return list(self._by_id.get(_key(entry_id), ()))

    def by_id_ref_color(self, entry_id: str, model_ref: str, color: str) -> list[CatalogEntry]:
        return list(self._by_id_ref_color.get(_key(entry_id, model_ref, color), ()))

    def by_ref_color_size(self, model_ref: str, color: str, size: str) -> list[CatalogEntry]:
        return list(self._by_ref_color_size.get(_key(model_ref, color, size), ()))

    def by_ref_color(self, model_ref: str, color: str) -> list[CatalogEntry]:
        return list(self._by_ref_color.get(_key(model_ref, color), ()))

    def by_ref(self, model_ref: str) -> list[CatalogEntry]:
        return list(self._by_ref.get(_key(model_ref), ()))

    def has_id(self, entry_id: str) -> bool:
        return _key(entry_id) in self._by_id
