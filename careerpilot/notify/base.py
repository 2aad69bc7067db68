"""Notification channel contract and the shared sequential delivery loop."""
from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from typing import Sequence

from careerpilot.errors import TransportError
from careerpilot.log import get_logger
from careerpilot.models import DeliveryResult, MarketSnapshot, Vacancy
from careerpilot.notify.chunking import pack_chunks

log = get_logger(__name__)


def format_salary(v: Vacancy) -> str:
    if v.salary_min is not None and v.salary_max is not None:
        return f"{v.currency} {v.salary_min:,.0f} - {v.salary_max:,.0f}"
    if v.salary_max is not None:
        return f"Up to {v.currency} {v.salary_max:,.0f}"
    if v.salary_min is not None:
        return f"From {v.currency} {v.salary_min:,.0f}"
    return "Not specified"


class NotificationChannel(ABC):
    """One delivery channel.

    Subclasses format semantic units (one vacancy entry, one table row)
    and send single chunks; packing, ordering, cancellation and error
    reporting live here.
    """

    name: str = "channel"
    max_message_size: int | None = None
    # errors from send_chunk that mean "this chunk was not delivered"
    transport_errors: tuple[type[BaseException], ...] = (OSError,)

    # ── Formatting ──────────────────────────────────────────────────────

    @abstractmethod
    def match_units(self, ranked: Sequence[Vacancy]) -> tuple[str, list[str]]:
        """(header, units) for a ranked vacancy list."""

    @abstractmethod
    def snapshot_units(self, snapshot: MarketSnapshot) -> tuple[str, list[str]]:
        """(header, units) for a market snapshot."""

    # ── Transport ───────────────────────────────────────────────────────

    @abstractmethod
    def send_chunk(self, text: str, *, subject: str = "", cancel: threading.Event | None = None) -> None:
        """Deliver one chunk or raise one of ``transport_errors``."""

    @abstractmethod
    def test_connection(self) -> bool:
        """Check credentials and reachability without sending anything."""

    # ── Contract ────────────────────────────────────────────────────────

    def notify_matches(self, ranked: Sequence[Vacancy], cancel: threading.Event | None = None) -> DeliveryResult:
        if not ranked:
            log.info("[%s] No matches to notify", self.name)
            return DeliveryResult(channel=self.name, chunks_total=0)
        header, units = self.match_units(ranked)
        chunks = pack_chunks(units, self.max_message_size, header=header)
        log.info("[%s] Sending %d matches in %d chunk(s)", self.name, len(ranked), len(chunks))
        return self._deliver(chunks, cancel, subject=f"{len(ranked)} new job matches")

    def notify_snapshot(self, snapshot: MarketSnapshot, cancel: threading.Event | None = None) -> DeliveryResult:
        header, units = self.snapshot_units(snapshot)
        chunks = pack_chunks(units, self.max_message_size, header=header) or [header]
        log.info("[%s] Sending market snapshot in %d chunk(s)", self.name, len(chunks))
        return self._deliver(chunks, cancel, subject=f"Market snapshot {snapshot.date:%Y-%m-%d}")

    def _deliver(self, chunks: list[str], cancel: threading.Event | None, subject: str = "") -> DeliveryResult:
        """Send chunks in order; stop at the first chunk that cannot be delivered."""
        result = DeliveryResult(channel=self.name, chunks_total=len(chunks))
        for index, chunk in enumerate(chunks):
            if cancel is not None and cancel.is_set():
                result.cancelled = True
                log.info("[%s] Cancelled before chunk %d/%d", self.name, index + 1, len(chunks))
                return result
            try:
                self.send_chunk(chunk, subject=subject, cancel=cancel)
            except self.transport_errors as exc:
                if cancel is not None and cancel.is_set():
                    result.cancelled = True
                    log.info("[%s] Cancelled while retrying chunk %d/%d", self.name, index + 1, len(chunks))
                    return result
                log.error("[%s] Chunk %d/%d failed: %s", self.name, index + 1, len(chunks), exc)
                raise TransportError(self.name, index, exc, chunks_total=len(chunks)) from exc
            result.chunks_sent += 1
            log.debug("[%s] Chunk %d/%d sent (%d chars)", self.name, index + 1, len(chunks), len(chunk))
        return result
