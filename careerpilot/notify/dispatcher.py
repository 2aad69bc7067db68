"""Fan out notifications to every configured channel concurrently."""
from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Sequence

from careerpilot.errors import CareerPilotError, TransportError
from careerpilot.log import get_logger
from careerpilot.models import DeliveryResult, MarketSnapshot, Vacancy
from careerpilot.notify.base import NotificationChannel

log = get_logger(__name__)


class NotificationDispatcher:
    """Channels are independent: one failing never blocks or undoes another."""

    def __init__(self, channels: Sequence[NotificationChannel]) -> None:
        self.channels = list(channels)

    def notify_matches(self, ranked: Sequence[Vacancy], cancel: threading.Event | None = None) -> list[DeliveryResult]:
        return self._fan_out(lambda ch: ch.notify_matches(ranked, cancel=cancel))

    def notify_snapshot(self, snapshot: MarketSnapshot, cancel: threading.Event | None = None) -> list[DeliveryResult]:
        return self._fan_out(lambda ch: ch.notify_snapshot(snapshot, cancel=cancel))

    def test_connections(self) -> dict[str, bool]:
        return {ch.name: ch.test_connection() for ch in self.channels}

    def _fan_out(self, call: Callable[[NotificationChannel], DeliveryResult]) -> list[DeliveryResult]:
        """One DeliveryResult per channel, in channel order."""
        if not self.channels:
            log.info("No notification channels configured")
            return []

        results: list[DeliveryResult | None] = [None] * len(self.channels)
        with ThreadPoolExecutor(max_workers=len(self.channels)) as pool:
            futures = {pool.submit(call, ch): i for i, ch in enumerate(self.channels)}
            for future in as_completed(futures):
                i = futures[future]
                ch = self.channels[i]
                try:
                    results[i] = future.result()
                    log.info(
                        "[%s] delivered %d/%d chunk(s)",
                        ch.name, results[i].chunks_sent, results[i].chunks_total,
                    )
                except TransportError as exc:
                    log.error("[%s] FAILED: %s", ch.name, exc)
                    results[i] = DeliveryResult(
                        channel=ch.name,
                        chunks_total=exc.chunks_total or 0,
                        chunks_sent=exc.chunk_index,
                        error=exc,
                    )
                except CareerPilotError as exc:
                    log.error("[%s] FAILED: %s", ch.name, exc)
                    results[i] = DeliveryResult(channel=ch.name, chunks_total=0, error=exc)
                except Exception as exc:
                    log.exception("[%s] FAILED unexpectedly", ch.name)
                    results[i] = DeliveryResult(channel=ch.name, chunks_total=0, error=exc)
        return results
