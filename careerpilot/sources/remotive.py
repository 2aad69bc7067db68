"""Remotive: free API for remote tech jobs (no API key required).

Docs: https://remotive.com/api/remote-jobs
"""
from __future__ import annotations

import threading

import requests

from careerpilot.log import get_logger
from careerpilot.models import Vacancy
from careerpilot.retry import retry
from careerpilot.sources.base import Scraper, make_vacancy, parse_salary_text

log = get_logger(__name__)

API_URL = "https://remotive.com/api/remote-jobs"
PAGE_SIZE = 50


class RemotiveScraper(Scraper):
    """Remotive has no paging: one request per keyword, so max_pages does not apply."""

    platform = "remotive"

    def __init__(self, limit: int = PAGE_SIZE, timeout: float = 15) -> None:
        self.limit = limit
        self.timeout = timeout
        self._seen: dict[str, Vacancy] = {}

    @retry(max_attempts=2, base_delay=1.5, retryable=(requests.RequestException, OSError))
    def _fetch(self, search: str, limit: int | None, cancel: threading.Event | None = None) -> list[Vacancy]:
        params: dict = {}
        if limit:
            params["limit"] = limit
        if search:
            params["search"] = search

        r = requests.get(API_URL, params=params, timeout=self.timeout)
        r.raise_for_status()
        data = r.json()

        vacancies: list[Vacancy] = []
        for hit in data.get("jobs", []):
            url = hit.get("url", "")
            if not url:
                continue
            sal_min, sal_max, currency = parse_salary_text(hit.get("salary"))
            vacancies.append(
                make_vacancy(
                    platform=self.platform,
                    url=url,
                    title=hit.get("title", ""),
                    company=hit.get("company_name", ""),
                    description=hit.get("description", ""),
                    tags=hit.get("tags") or [],
                    location=hit.get("candidate_required_location", ""),
                    salary_min=sal_min,
                    salary_max=sal_max,
                    currency=currency,
                    posted_at=hit.get("publication_date"),
                    remote_hint="remote",
                )
            )
        return vacancies

    def scrape(
        self,
        keywords: list[str],
        max_pages: int = 1,
        cancel: threading.Event | None = None,
    ) -> list[Vacancy]:
        results: list[Vacancy] = []
        seen_urls: set[str] = set()
        errors: list[Exception] = []
        attempted = 0
        for term in keywords or [""]:
            if cancel is not None and cancel.is_set():
                log.info("Remotive scrape cancelled before search=%r", term)
                break
            attempted += 1
            try:
                batch = self._fetch(term, self.limit, cancel=cancel)
            except (requests.RequestException, OSError) as exc:
                log.warning("Remotive search=%r error: %s", term, exc)
                errors.append(exc)
                continue
            for v in batch:
                if v.url not in seen_urls:
                    seen_urls.add(v.url)
                    results.append(v)
                    self._seen[v.url] = v
            log.debug("Remotive search=%r returned %d jobs", term, len(batch))
        if errors and len(errors) == attempted:
            raise errors[-1]
        return results

    def scrape_detail(self, url: str) -> Vacancy | None:
        if url in self._seen:
            return self._seen[url]
        for v in self._fetch("", None):
            self._seen[v.url] = v
        return self._seen.get(url)
