"""
Concurrent affiliate-link extraction.

Each worker owns one browser session and its own listing, claims items from a
shared queue, re-locates the claimed item among the rows it currently sees and
writes the link into the slot of the item's rank. Slots are disjoint, so the
result list needs no lock.
"""

from __future__ import annotations

import logging
import queue
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .automation import PageDriver
from .bootstrap import SearchBootstrap
from .config import MatchThresholds, Settings
from .errors import ExtractionTimeout, ScoutError
from .link_panel import LinkPanel
from .listing import TITLE, scan_rows
from .matcher import score_model_mode, text_sim_generic
from .models import Identity, ListingRow, RankedItem, SearchQuery
from .sessions import SessionFactory

logger = logging.getLogger(__name__)

RESOLVE_ATTEMPTS = 2


def price_bonus(target: int, price: int, thresholds: MatchThresholds) -> int:
    if target <= 0:
        return 0
    distance = abs(price - target) / target
    if distance <= thresholds.price_near:
        return 2
    if distance <= thresholds.price_close:
        return 1
    return 0


def fuzzy_score(item: RankedItem, row: ListingRow, thresholds: MatchThresholds) -> Optional[float]:
    """Score a row against an item, or None when the titles are not alike enough to count."""
    title = item.candidate.title
    match, ratio = text_sim_generic(title, row.title)
    model_score = score_model_mode(title, row.title)
    if model_score < thresholds.model_score_min and ratio < thresholds.fuzzy_min_ratio:
        return None
    score = 2 * model_score + match + ratio
    return score + price_bonus(item.candidate.price, row.price, thresholds)


def is_claimed(row: ListingRow, others: Iterable[Identity]) -> bool:
    for other in others:
        if other.element_id and row.identity.element_id == other.element_id:
            return True
        if row.identity.key == other.key:
            return True
    return False


def resolve_row(
    rows: Sequence[ListingRow],
    item: RankedItem,
    thresholds: MatchThresholds = MatchThresholds(),
    others: Sequence[Identity] = (),
) -> Optional[ListingRow]:
    """
    Find the row showing ``item``: element id first, then exact title and shop,
    then the best fuzzy score above the floor. Rows that exactly identify one of
    ``others`` belong to another item of the batch and are never fuzzy-matched.
    """
    identity = item.identity
    if identity.element_id:
        for row in rows:
            if row.identity.element_id == identity.element_id:
                return row

    for row in rows:
        if row.identity.key == identity.key:
            return row

    best: Optional[ListingRow] = None
    best_score = thresholds.fuzzy_floor
    for row in rows:
        if is_claimed(row, others):
            continue
        score = fuzzy_score(item, row, thresholds)
        if score is not None and score > best_score:
            best, best_score = row, score
    return best


class ExtractionOrchestrator:
    def __init__(
        self,
        settings: Settings,
        factory: SessionFactory,
        bootstrap: Optional[SearchBootstrap] = None,
    ) -> None:
        self.settings = settings
        self.factory = factory
        self.bootstrap = bootstrap or SearchBootstrap(settings)

    def resolve(
        self,
        items: Sequence[RankedItem],
        query: SearchQuery,
        storage_state: Optional[Dict[str, Any]] = None,
    ) -> List[Optional[str]]:
        results: List[Optional[str]] = [None] * len(items)
        identities = [item.identity for item in items]
        if not items:
            return results

        work: "queue.Queue[Tuple[int, RankedItem]]" = queue.Queue()
        for index, item in enumerate(items):
            work.put((index, item))

        worker_count = max(1, min(self.settings.extraction_workers, len(items)))
        started = time.perf_counter()
        with ThreadPoolExecutor(max_workers=worker_count, thread_name_prefix="extract") as executor:
            futures = [
                executor.submit(self.run_worker, worker_id, work, results, identities, query, storage_state)
                for worker_id in range(worker_count)
            ]
            for future in as_completed(futures):
                future.result()

        logger.info(
            "resolved %s/%s links in %.2fs with %s workers",
            sum(1 for link in results if link),
            len(items),
            time.perf_counter() - started,
            worker_count,
        )
        return results

    def run_worker(
        self,
        worker_id: int,
        work: "queue.Queue[Tuple[int, RankedItem]]",
        results: List[Optional[str]],
        identities: Sequence[Identity],
        query: SearchQuery,
        storage_state: Optional[Dict[str, Any]],
    ) -> None:
        try:
            with self.factory.open_page(storage_state=storage_state) as page:
                self.bootstrap.open_listing(page, query)
                panel = LinkPanel(page, self.settings)
                while True:
                    try:
                        index, item = work.get_nowait()
                    except queue.Empty:
                        return
                    others = [identity for i, identity in enumerate(identities) if i != index]
                    results[index] = self.extract_item(page, panel, item, others)
                    if not panel.close():
                        logger.warning("worker %s: panel stuck open, reloading listing", worker_id)
                        self.bootstrap.open_listing(page, query)
                        panel = LinkPanel(page, self.settings)
        except ScoutError as exc:
            logger.warning("worker %s stopped: %s", worker_id, exc)
        except Exception:
            logger.exception("worker %s crashed", worker_id)

    def extract_item(
        self,
        page: PageDriver,
        panel: LinkPanel,
        item: RankedItem,
        others: Sequence[Identity] = (),
    ) -> Optional[str]:
        title = item.candidate.title
        try:
            for _ in range(RESOLVE_ATTEMPTS):
                row = resolve_row(scan_rows(page), item, self.settings.thresholds, others)
                if row is None:
                    raise ExtractionTimeout(f"{title!r} not found on listing")
                if page.read_text(row.handle, TITLE) != row.title:
                    logger.debug("row for %r re-rendered before opening; rescanning", title)
                    continue
                return panel.fetch(row.handle)
            raise ExtractionTimeout(f"{title!r} kept moving while resolving")
        except ExtractionTimeout as exc:
            logger.info("no link for %r: %s", title, exc)
        except Exception:
            logger.exception("link extraction failed for %r", title)
        return None
