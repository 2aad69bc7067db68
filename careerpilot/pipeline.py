"""
Scrape → store → score → notify, plus the outcome/offer feedback loop.

One cycle: parallel scrape per platform → append to the store → market
snapshot → rank against the profile → notify every channel.
"""
from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Iterable

from careerpilot.config import Settings, ensure_dirs, get_env, load_profile, load_settings
from careerpilot.errors import InsufficientDataError, ValidationError
from careerpilot.feedback import FeedbackAnalyzer
from careerpilot.history import OfferLog, OutcomeLog
from careerpilot.log import get_logger
from careerpilot.matcher import MatchEngine
from careerpilot.models import (
    BatchReport,
    FeedbackAnalysis,
    InterviewOutcome,
    MarketSnapshot,
    NegotiationStrategy,
    Offer,
    OfferComparison,
    PrepAction,
    Vacancy,
)
from careerpilot.notify import NotificationDispatcher, get_channels
from careerpilot.offers import NegotiationAdvisor, OfferComparator
from careerpilot.snapshot import ALL_PLATFORMS, build_snapshot, build_snapshots
from careerpilot.sources import Scraper, get_scrapers
from careerpilot.store import VacancyStore

log = get_logger(__name__)


class Orchestrator:
    def __init__(
        self,
        engine: MatchEngine,
        store: VacancyStore,
        scrapers: list[Scraper],
        dispatcher: NotificationDispatcher,
        outcomes: OutcomeLog,
        offers: OfferLog,
        settings: Settings | None = None,
    ) -> None:
        self.engine = engine
        self.store = store
        self.scrapers = scrapers
        self.dispatcher = dispatcher
        self.outcomes = outcomes
        self.offers = offers
        self.settings = settings or engine.settings

    @classmethod
    def from_config(cls, data_dir: Path | None = None) -> "Orchestrator":
        """Wire everything from config/*.yaml and .env. Raises ConfigurationError."""
        ensure_dirs()
        settings = load_settings()
        profile = load_profile(settings=settings)
        engine = MatchEngine(profile, settings, loader=lambda: load_profile(settings=settings))
        return cls(
            engine=engine,
            store=VacancyStore(data_dir),
            scrapers=get_scrapers(get_env, settings.platforms),
            dispatcher=NotificationDispatcher(get_channels(get_env, settings.max_chunk_size)),
            outcomes=OutcomeLog(data_dir),
            offers=OfferLog(data_dir),
            settings=settings,
        )

    # ── Scrape cycle ────────────────────────────────────────────────────

    def _scrape_one(self, scraper: Scraper, cancel: threading.Event | None) -> list[Vacancy]:
        s = self.settings
        results = scraper.scrape(s.scrape_keywords, s.scrape_max_pages, cancel=cancel)
        log.info("[%s] returned %d vacancies", scraper.platform, len(results))
        return results

    def scrape_all(self, report: BatchReport, cancel: threading.Event | None = None) -> list[Vacancy]:
        """Run every scraper in parallel; a failing platform is recorded, not fatal."""
        batch: list[Vacancy] = []
        if not self.scrapers:
            return batch
        log.info("Scraping %d platform(s) in parallel...", len(self.scrapers))
        with ThreadPoolExecutor(max_workers=len(self.scrapers)) as pool:
            futures = {pool.submit(self._scrape_one, sc, cancel): sc for sc in self.scrapers}
            for future in as_completed(futures):
                scraper = futures[future]
                try:
                    batch.extend(future.result())
                except Exception as exc:
                    log.error("[%s] FAILED: %s", scraper.platform, exc)
                    report.platform_errors[scraper.platform] = str(exc)[:200]
        # as_completed order varies between runs
        batch.sort(key=lambda v: v.key)
        return batch

    def run_cycle(self, cancel: threading.Event | None = None) -> BatchReport:
        report = BatchReport()
        batch = self.scrape_all(report, cancel)
        log.info("Total vacancies scraped: %d", len(batch))

        added, skipped, failed = self.store.add_many(batch)
        report.skipped += skipped
        report.failed += failed

        report.snapshots = build_snapshots(batch)
        report.snapshot = report.snapshots[ALL_PLATFORMS]
        ranked = self.engine.rank_vacancies(added, minimum_score=self.settings.min_notify_score)

        notified: list[Vacancy] = []
        for v in ranked:
            try:
                notified.append(self.store.attach_score(v, v.match_score))
            except ValidationError as exc:
                report.failed += 1
                log.warning("Score rejected: %s", exc)
        report.succeeded = len(added) - (len(ranked) - len(notified))
        report.ranked = notified

        if cancel is not None and cancel.is_set():
            report.cancelled = True
            log.info("Cycle cancelled before notification")
            return report

        report.deliveries.extend(self.dispatcher.notify_matches(notified, cancel=cancel))
        if report.snapshot.total_vacancies:
            report.deliveries.extend(self.dispatcher.notify_snapshot(report.snapshot, cancel=cancel))
        report.cancelled = bool(cancel is not None and cancel.is_set())

        log.info("Cycle complete: %s", report.summary())
        return report

    def run_forever(self, interval_hours: float | None = None, cancel: threading.Event | None = None) -> int:
        """Repeat cycles until ``cancel`` is set; returns the number of cycles run."""
        cancel = cancel or threading.Event()
        interval = (interval_hours or self.settings.interval_hours) * 3600
        cycles = 0
        log.info("Scheduler: one cycle every %.1f hour(s)", interval / 3600)
        while not cancel.is_set():
            self.run_cycle(cancel)
            cycles += 1
            if cancel.wait(interval):
                break
        log.info("Scheduler stopped after %d cycle(s)", cycles)
        return cycles

    def test_channels(self) -> dict[str, bool]:
        return self.dispatcher.test_connections()

    def reload_profile(self) -> None:
        self.engine.reload_profile()

    # ── Outcomes & offers ───────────────────────────────────────────────

    def record_outcome(self, outcome: InterviewOutcome) -> InterviewOutcome:
        return self.outcomes.append(outcome)

    def record_offer(self, offer: Offer) -> Offer:
        return self.offers.append(offer)

    def review_feedback(self, existing_tasks: Iterable[PrepAction | str] = ()) -> FeedbackAnalysis:
        analyzer = FeedbackAnalyzer(self.engine.profile, self.settings)
        try:
            return analyzer.analyze(self.outcomes.all(), existing_tasks)
        except InsufficientDataError as exc:
            log.info("Feedback review skipped: %s", exc)
            return FeedbackAnalysis.not_enough_data(exc.available, exc.required)

    def compare_offers(self) -> OfferComparison:
        comparator = OfferComparator(self.engine.profile, self.settings)
        try:
            return comparator.compare(self.offers.active())
        except InsufficientDataError as exc:
            log.info("Offer comparison skipped: %s", exc)
            return OfferComparison(
                recommendation=f"Not enough data: {exc.available} active offer(s), {exc.required} needed.",
                sufficient_data=False,
            )

    def market_snapshot(self, platform: str = ALL_PLATFORMS) -> MarketSnapshot:
        """Snapshot over every stored vacancy, optionally for one platform."""
        return build_snapshot(self.store.query(), platform=platform)

    def advise(self, offer_id: str, snapshot: MarketSnapshot | None = None) -> NegotiationStrategy:
        current = self.offers.latest()
        if offer_id not in current:
            raise ValidationError(f"Unknown offer: {offer_id}")
        advisor = NegotiationAdvisor(self.engine.profile, self.settings)
        return advisor.advise(
            current[offer_id],
            snapshot or self.market_snapshot(),
            other_offers=self.offers.active(),
        )
