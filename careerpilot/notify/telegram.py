"""Telegram Bot API channel (HTML parse mode, 4096-char messages).

Docs: https://core.telegram.org/bots/api#sendmessage
"""
from __future__ import annotations

import threading
from typing import Sequence

import requests

from careerpilot.log import get_logger
from careerpilot.models import MarketSnapshot, Vacancy
from careerpilot.notify.base import NotificationChannel, format_salary
from careerpilot.retry import retry

log = get_logger(__name__)

API_BASE = "https://api.telegram.org/bot"
MAX_MESSAGE_LENGTH = 4096
TOP_SNAPSHOT_SKILLS = 15


def escape_html(text: str) -> str:
    return (text or "").replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def format_vacancy_entry(v: Vacancy) -> str:
    lines = [f"<b>{escape_html(v.title)}</b>", f"Company: {escape_html(v.company)}"]
    if v.has_salary:
        lines.append(f"Salary: {format_salary(v)}")
    score = v.match_score
    if score is not None:
        lines.append(f"Match: <b>{score.overall:.0f}/100</b> - {escape_html(score.action_label)}")
        if score.matching_skills:
            lines.append("Matching: " + ", ".join(escape_html(s) for s in score.matching_skills[:5]))
        if score.missing_skills:
            lines.append("Missing: " + ", ".join(escape_html(s) for s in score.missing_skills[:3]))
    if v.url:
        lines.append(f'<a href="{escape_html(v.url)}">View Vacancy</a>')
    return "\n".join(lines) + "\n\n"


class TelegramChannel(NotificationChannel):
    name = "telegram"
    max_message_size = MAX_MESSAGE_LENGTH
    transport_errors = (requests.RequestException, OSError)

    def __init__(self, bot_token: str, chat_id: str, max_message_size: int | None = None, timeout: float = 15) -> None:
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.timeout = timeout
        if max_message_size is not None:
            self.max_message_size = min(max_message_size, MAX_MESSAGE_LENGTH)

    def _url(self, method: str) -> str:
        return f"{API_BASE}{self.bot_token}/{method}"

    def match_units(self, ranked: Sequence[Vacancy]) -> tuple[str, list[str]]:
        return "<b>New Job Matches Found</b>\n\n", [format_vacancy_entry(v) for v in ranked]

    def snapshot_units(self, snapshot: MarketSnapshot) -> tuple[str, list[str]]:
        header = (
            "<b>Market Snapshot</b>\n"
            f"Date: {snapshot.date:%Y-%m-%d}\n"
            f"Platform: {escape_html(snapshot.platform)}\n"
            f"Total Vacancies: <b>{snapshot.total_vacancies}</b>\n\n"
        )
        units: list[str] = []
        top = snapshot.top_skills(TOP_SNAPSHOT_SKILLS)
        if top:
            units.append("<b>Top Skills by Demand:</b>\n")
            units.extend(
                f"  {rank}. {escape_html(skill)} ({count} vacancies)\n"
                for rank, (skill, count) in enumerate(top, start=1)
            )
            units.append("\n")
        if snapshot.avg_salary_by_level:
            units.append("<b>Average Salary by Seniority:</b>\n")
            units.extend(
                f"  {level.name.title()}: ${salary:,.0f}\n"
                for level, salary in sorted(snapshot.avg_salary_by_level.items())
            )
            units.append("\n")
        if snapshot.remote_distribution:
            units.append("<b>Remote Policy Distribution:</b>\n")
            units.extend(
                f"  {policy.value}: {count}\n"
                for policy, count in sorted(
                    snapshot.remote_distribution.items(), key=lambda pc: (-pc[1], pc[0].value)
                )
            )
        return header, units

    @retry(max_attempts=3, base_delay=2.0, retryable=(requests.RequestException, OSError))
    def send_chunk(self, text: str, *, subject: str = "", cancel: threading.Event | None = None) -> None:
        payload = {
            "chat_id": self.chat_id,
            "text": text,
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }
        r = requests.post(self._url("sendMessage"), json=payload, timeout=self.timeout)
        r.raise_for_status()
        data = r.json()
        if not data.get("ok"):
            raise requests.RequestException(f"Telegram API error: {data.get('description', data)}")
        log.debug("Telegram message sent (%d chars)", len(text))

    def test_connection(self) -> bool:
        try:
            r = requests.get(self._url("getMe"), timeout=self.timeout)
            r.raise_for_status()
            ok = bool(r.json().get("ok"))
        except (requests.RequestException, ValueError) as exc:
            log.warning("Telegram connection test failed: %s", exc)
            return False
        if ok:
            log.info("Telegram bot connected")
        else:
            log.warning("Telegram getMe returned ok=false")
        return ok
