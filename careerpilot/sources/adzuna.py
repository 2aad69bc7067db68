"""Adzuna job search: aggregator with salary data for many countries.

Free tier: 250 requests/day.  Sign up at https://developer.adzuna.com/
"""
from __future__ import annotations

import threading

import requests

from careerpilot.log import get_logger
from careerpilot.models import Vacancy
from careerpilot.retry import retry
from careerpilot.sources.base import Scraper, make_vacancy

log = get_logger(__name__)

BASE_URL = "https://api.adzuna.com/v1/api/jobs/{country}/search/{page}"
PER_PAGE = 20

COUNTRY_CURRENCY: dict[str, str] = {
    "us": "USD", "gb": "GBP", "in": "INR", "de": "EUR", "fr": "EUR", "nl": "EUR",
    "ca": "CAD", "au": "AUD", "ch": "CHF", "pl": "PLN",
}


class AdzunaScraper(Scraper):
    platform = "adzuna"

    def __init__(self, app_id: str, app_key: str, country: str = "us", timeout: float = 15) -> None:
        self.app_id = app_id
        self.app_key = app_key
        self.country = country.lower()
        self.currency = COUNTRY_CURRENCY.get(self.country, "USD")
        self.timeout = timeout
        self._seen: dict[str, Vacancy] = {}

    @retry(max_attempts=3, base_delay=2.0, retryable=(requests.RequestException, OSError))
    def _fetch(self, query: str, page: int, cancel: threading.Event | None = None) -> list[Vacancy]:
        params: dict = {
            "app_id": self.app_id,
            "app_key": self.app_key,
            "what": query,
            "results_per_page": PER_PAGE,
            "content-type": "application/json",
        }
        r = requests.get(BASE_URL.format(country=self.country, page=page), params=params, timeout=self.timeout)
        r.raise_for_status()
        data = r.json()

        vacancies: list[Vacancy] = []
        for hit in data.get("results", []):
            url = hit.get("redirect_url", "")
            if not url:
                continue
            location = (hit.get("location") or {}).get("display_name", "")
            vacancies.append(
                make_vacancy(
                    platform=self.platform,
                    url=url,
                    title=hit.get("title", ""),
                    company=(hit.get("company") or {}).get("display_name", ""),
                    description=hit.get("description", ""),
                    location=location,
                    salary_min=hit.get("salary_min"),
                    salary_max=hit.get("salary_max"),
                    currency=self.currency,
                    posted_at=hit.get("created"),
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
        for term in keywords:
            for page in range(1, max_pages + 1):
                if cancel is not None and cancel.is_set():
                    log.info("Adzuna scrape cancelled before what=%r page %d", term, page)
                    return results
                attempted += 1
                try:
                    batch = self._fetch(term, page, cancel=cancel)
                except (requests.RequestException, OSError) as exc:
                    log.warning("Adzuna what=%r page %d error: %s", term, page, exc)
                    errors.append(exc)
                    break
                for v in batch:
                    if v.url not in seen_urls:
                        seen_urls.add(v.url)
                        results.append(v)
                        self._seen[v.url] = v
                log.debug("Adzuna what=%r page %d returned %d jobs", term, page, len(batch))
                if len(batch) < PER_PAGE:
                    break
        if errors and len(errors) == attempted:
            raise errors[-1]
        return results

    def scrape_detail(self, url: str) -> Vacancy | None:
        # Adzuna has no lookup by listing URL; only vacancies seen in a search are known
        return self._seen.get(url)
