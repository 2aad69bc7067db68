from .base import Scraper
from .adzuna import AdzunaScraper
from .mock import MockScraper
from .remotive import RemotiveScraper

from careerpilot.log import get_logger

log = get_logger(__name__)

__all__ = ["Scraper", "AdzunaScraper", "MockScraper", "RemotiveScraper", "get_scrapers"]


def get_scrapers(env_getter, platforms: list[str] | None = None) -> list[Scraper]:
    """Scrapers for the configured platforms; an empty list means all available."""
    wanted = {p.lower() for p in platforms or []}
    scrapers: list[Scraper] = []

    if not wanted or "adzuna" in wanted:
        if env_getter("ADZUNA_APP_ID") and env_getter("ADZUNA_APP_KEY"):
            scrapers.append(
                AdzunaScraper(
                    env_getter("ADZUNA_APP_ID"),
                    env_getter("ADZUNA_APP_KEY"),
                    country=env_getter("ADZUNA_COUNTRY") or "us",
                )
            )
            log.info("Registered source: Adzuna")
        elif "adzuna" in wanted:
            log.warning("Adzuna requested but ADZUNA_APP_ID / ADZUNA_APP_KEY are not set")

    # Remotive is free, no key needed
    if not wanted or "remotive" in wanted:
        scrapers.append(RemotiveScraper())
        log.info("Registered source: Remotive (free, remote jobs)")

    if "mock" in wanted or not scrapers:
        scrapers.append(MockScraper())
        log.info("Registered source: MockScraper")

    return scrapers
