from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from .bootstrap import SearchBootstrap
from .classifier import classify_rows
from .config import Settings
from .errors import AuthenticationError, ScoutError
from .listing import scan_rows
from .models import RankedItem, SearchQuery, Tier
from .orchestrator import ExtractionOrchestrator
from .ranker import rank_candidates
from .sessions import Authenticator, BrowserSessionFactory, SessionFactory, SessionManager, SessionStore

logger = logging.getLogger(__name__)


def save_latest(results: List[Dict[str, Any]], output_path: Path) -> None:
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", encoding="utf-8") as file_handle:
            json.dump(results, file_handle, indent=2, ensure_ascii=False)
    except OSError:
        logger.warning("could not write %s", output_path, exc_info=True)


class AffiliateSearchService:
    def __init__(
        self,
        settings: Settings,
        sessions: SessionManager,
        factory: SessionFactory,
        *,
        bootstrap: Optional[SearchBootstrap] = None,
        orchestrator: Optional[ExtractionOrchestrator] = None,
    ) -> None:
        self.settings = settings
        self.sessions = sessions
        self.factory = factory
        self.bootstrap = bootstrap or SearchBootstrap(settings)
        self.orchestrator = orchestrator or ExtractionOrchestrator(settings, factory, self.bootstrap)

    def search(self, query: SearchQuery) -> List[RankedItem]:
        query.validate()
        self.settings.require_credentials()
        started = time.perf_counter()

        storage_state = self.sessions.ensure_authenticated()
        with self.factory.open_page(storage_state=storage_state) as page:
            try:
                self.bootstrap.open_listing(page, query)
            except AuthenticationError:
                self.sessions.invalidate()
                raise
            rows = scan_rows(page, limit=self.settings.scan_limit)

        buckets = classify_rows(rows, query, self.settings.thresholds)
        ranked = rank_candidates(
            buckets,
            limit=self.settings.top_n,
            cap=self.settings.merge_cap,
            min_fill=self.settings.merge_min,
        )
        logger.info(
            "query %r: %s rows, tiers strict=%s soft=%s category=%s, ranked %s",
            query.text,
            len(rows),
            len(buckets[Tier.STRICT]),
            len(buckets[Tier.SOFT]),
            len(buckets[Tier.CATEGORY]),
            len(ranked),
        )

        links = self.orchestrator.resolve(ranked, query, storage_state)
        for item, link in zip(ranked, links):
            item.affiliate_url = link

        if self.settings.output_file is not None:
            save_latest([item.to_output() for item in ranked], self.settings.output_file)
        logger.info("query %r finished in %.2fs", query.text, time.perf_counter() - started)
        return ranked

    def shutdown(self) -> None:
        self.sessions.shutdown()


def build_service(settings: Optional[Settings] = None) -> AffiliateSearchService:
    settings = settings or Settings.from_env()
    factory = BrowserSessionFactory(settings)
    sessions = SessionManager(SessionStore(settings.storage_file), Authenticator(settings, factory))
    return AffiliateSearchService(settings, sessions, factory)


def run_search(service: AffiliateSearchService, query: SearchQuery) -> Dict[str, Any]:
    try:
        items = service.search(query)
    except ScoutError as exc:
        logger.warning("search %r failed: %s", query.text, exc)
        return {"error": str(exc), "results": []}
    except Exception:
        logger.exception("search %r crashed", query.text)
        return {"error": "Internal error", "results": []}
    return {"results": [item.to_output() for item in items]}
