"""
Match tender line descriptions to supplier catalog rows.

Strategies run in a fixed order and their results are merged:

1. numeric codes (runs of 4+ digits) found inside a catalog SKU,
2. fuzzy text search over canonical product names and SKUs,
3. a token-containment fallback, only when 1 and 2 found nothing.

Duplicates (same catalog row) keep their first occurrence, then the merged
list is sorted by price so the cheapest offer always comes first.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from rapidfuzz import fuzz, process

from .config import DEFAULT_CANDIDATE_LIMIT, DEFAULT_FUZZY_THRESHOLD
from .models import SupplierCatalogRow, TenderLineItem, TenderPricingState, TenderSupplierOption
from .normalize import canon, extract_codes, parse_number

logger = logging.getLogger(__name__)

NAME_WEIGHT = 0.7
SKU_WEIGHT = 0.3
MIN_MATCH_CHARS = 2

CODE_MATCH_SCORE = 0.01
TOKEN_MATCH_SCORE = 0.5
TOKEN_FALLBACK_COUNT = 3


@dataclass(frozen=True)
class _IndexEntry:
    row: SupplierCatalogRow
    search_name: str
    search_sku: str


class FuzzyIndex:
    """
    Approximate lookup over catalog rows.

    Product names are compared with rapidfuzz's ``WRatio`` (tolerant of word
    order, partial tokens and typos); SKUs with ``partial_ratio`` so a code
    embedded in a longer description still scores.  The SKU only ever adds
    to a name match: ``similarity = max(name, 0.7 * name + 0.3 * sku)``.
    A row without a product name is scored on its SKU alone.  Scores are
    ``1 - similarity`` (lower is better) and anything above ``threshold`` is
    discarded.
    """

    def __init__(
        self,
        rows: Iterable[SupplierCatalogRow],
        threshold: float = DEFAULT_FUZZY_THRESHOLD,
        revision: int = 0,
    ) -> None:
        self.threshold = threshold
        self.revision = revision
        self._entries: Tuple[_IndexEntry, ...] = tuple(
            _IndexEntry(row=row, search_name=canon(row.product_name), search_sku=canon(row.sku))
            for row in rows
        )
        # rapidfuzz skips ``None`` choices, so blank names and SKUs never score.
        self._names = [entry.search_name or None for entry in self._entries]
        self._skus = [entry.search_sku or None for entry in self._entries]

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> Tuple[_IndexEntry, ...]:
        return self._entries

    def _scores(self, query: str, choices: List[Optional[str]], scorer, cutoff: float) -> Dict[int, float]:
        hits = process.extract(query, choices, scorer=scorer, limit=None, score_cutoff=cutoff * 100.0)
        return {position: score / 100.0 for _, score, position in hits}

    def _similarities(self, query: str) -> Dict[int, float]:
        wanted = 1.0 - self.threshold
        # Below this name similarity even a perfect SKU cannot lift a row over the threshold.
        name_floor = max(0.0, (wanted - SKU_WEIGHT) / NAME_WEIGHT)
        names = self._scores(query, self._names, fuzz.WRatio, name_floor)
        skus = self._scores(query, self._skus, fuzz.partial_ratio, 0.0)

        similarities: Dict[int, float] = {}
        for position, entry in enumerate(self._entries):
            if entry.search_name:
                if position not in names:
                    continue
                name_sim = names[position]
                if entry.search_sku:
                    sku_sim = skus.get(position, 0.0)
                    similarities[position] = max(name_sim, NAME_WEIGHT * name_sim + SKU_WEIGHT * sku_sim)
                else:
                    similarities[position] = name_sim
            elif position in skus:
                similarities[position] = skus[position]
        return similarities

    def search(self, query: str, limit: int = DEFAULT_CANDIDATE_LIMIT) -> List[Tuple[SupplierCatalogRow, float]]:
        """Return up to ``limit`` ``(row, score)`` pairs, best score first."""

        query = canon(query)
        if len(query) < MIN_MATCH_CHARS or not self._entries:
            return []
        scored: List[Tuple[float, int, SupplierCatalogRow]] = []
        for position, similarity in self._similarities(query).items():
            score = round(1.0 - similarity, 6)
            if score <= self.threshold:
                scored.append((score, position, self._entries[position].row))
        scored.sort(key=lambda item: (item[0], item[1]))
        return [(row, score) for score, _, row in scored[:max(0, limit)]]


@dataclass(frozen=True)
class MatchStrategy:
    name: str
    find: Callable[[str, int], List[TenderSupplierOption]]
    fallback_only: bool = False


class LineItemMatcher:
    """Resolve tender descriptions to ranked :class:`TenderSupplierOption` lists."""

    def __init__(
        self,
        index: FuzzyIndex,
        limit: int = DEFAULT_CANDIDATE_LIMIT,
    ) -> None:
        self.index = index
        self.limit = limit
        self.strategies: Tuple[MatchStrategy, ...] = (
            MatchStrategy("code", self.match_codes),
            MatchStrategy("fuzzy", self.match_fuzzy),
            MatchStrategy("tokens", self.match_tokens, fallback_only=True),
        )

    @classmethod
    def from_rows(
        cls,
        rows: Iterable[SupplierCatalogRow],
        threshold: float = DEFAULT_FUZZY_THRESHOLD,
        limit: int = DEFAULT_CANDIDATE_LIMIT,
    ) -> "LineItemMatcher":
        return cls(FuzzyIndex(rows, threshold=threshold), limit=limit)

    # -- strategies ------------------------------------------------------

    def match_codes(self, description: str, limit: int) -> List[TenderSupplierOption]:
        codes = extract_codes(description)
        if not codes:
            return []
        return [
            TenderSupplierOption.from_row(entry.row, CODE_MATCH_SCORE)
            for entry in self.index.entries
            if entry.row.sku and any(code in entry.row.sku for code in codes)
        ]

    def match_fuzzy(self, description: str, limit: int) -> List[TenderSupplierOption]:
        return [TenderSupplierOption.from_row(row, score) for row, score in self.index.search(description, limit)]

    def match_tokens(self, description: str, limit: int) -> List[TenderSupplierOption]:
        tokens = canon(description).split()[:TOKEN_FALLBACK_COUNT]
        if not tokens:
            return []
        hits = [
            TenderSupplierOption.from_row(entry.row, TOKEN_MATCH_SCORE)
            for entry in self.index.entries
            if all(token in (entry.search_name or entry.search_sku) for token in tokens)
        ]
        return hits[:limit]

    # -- public API ------------------------------------------------------

    def find_options_for(self, description: str, limit: Optional[int] = None) -> List[TenderSupplierOption]:
        """Cheapest-first candidates for ``description``, at most ``limit`` of them."""

        limit = self.limit if limit is None else limit
        if not description or not description.strip():
            return []

        merged: List[TenderSupplierOption] = []
        for strategy in self.strategies:
            if strategy.fallback_only and merged:
                continue
            found = strategy.find(description, limit)
            if found:
                logger.debug("%s strategy: %d candidates for %r", strategy.name, len(found), description)
            merged.extend(found)

        seen = set()
        unique: List[TenderSupplierOption] = []
        for option in merged:
            if option.source_id in seen:
                continue
            seen.add(option.source_id)
            unique.append(option)
        unique.sort(key=lambda option: (option.price, option.score))
        return unique[:limit]

    def match_line(self, item: TenderLineItem) -> TenderLineItem:
        """First match of an uploaded line: the cheapest option is chosen and costed."""

        options = tuple(self.find_options_for(item.description))
        cheapest = _cheapest(options)
        return replace(
            item,
            supplier_options=options,
            chosen_source_id=cheapest.source_id if cheapest else None,
            cost_per_unit=cheapest.price if cheapest else item.cost_per_unit,
        )

    def rematch_line(self, item: TenderLineItem) -> TenderLineItem:
        """Re-match after a catalog change, keeping the previous choice when it is still offered."""

        options = tuple(self.find_options_for(item.description))
        kept = None
        if item.chosen_source_id:
            kept = next((option for option in options if option.source_id == item.chosen_source_id), None)
        chosen = kept or _cheapest(options)
        return replace(
            item,
            supplier_options=options,
            chosen_source_id=chosen.source_id if chosen else None,
            cost_per_unit=chosen.price if chosen else item.cost_per_unit,
        )

    def match_items(self, items: Sequence[TenderLineItem]) -> Tuple[TenderLineItem, ...]:
        return tuple(self.match_line(item) for item in items)

    def rematch_state(self, state: TenderPricingState) -> TenderPricingState:
        return replace(state, tender_items=tuple(self.rematch_line(item) for item in state.tender_items))


def _cheapest(options: Sequence[TenderSupplierOption]) -> Optional[TenderSupplierOption]:
    best: Optional[TenderSupplierOption] = None
    for option in options:
        if best is None or option.price < best.price:
            best = option
    return best


def choose_option(item: TenderLineItem, source_id: Optional[str]) -> TenderLineItem:
    """User override of the chosen supplier; ``None`` or ``""`` clears the choice and keeps the cost."""

    source_id = source_id or None
    option = next((o for o in item.supplier_options if o.source_id == source_id), None) if source_id else None
    if option is None:
        return replace(item, chosen_source_id=source_id)
    return replace(item, chosen_source_id=source_id, cost_per_unit=option.price)


def set_manual_cost(item: TenderLineItem, cost: object) -> TenderLineItem:
    """Manual cost override, used mainly for lines without any supplier match."""

    return replace(item, cost_per_unit=parse_number(cost, 0.0))


__all__ = [
    "FuzzyIndex",
    "LineItemMatcher",
    "MatchStrategy",
    "choose_option",
    "set_manual_cost",
    "CODE_MATCH_SCORE",
    "TOKEN_MATCH_SCORE",
]
