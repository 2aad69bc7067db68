"""Email channel: SMTP with STARTTLS, multipart plain + HTML body."""
from __future__ import annotations

import html
import re
import smtplib
import threading
from datetime import datetime, timezone
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Sequence

from careerpilot.log import get_logger
from careerpilot.models import MarketSnapshot, Vacancy
from careerpilot.notify.base import NotificationChannel, format_salary
from careerpilot.retry import retry

log = get_logger(__name__)

TOP_SNAPSHOT_SKILLS = 15


def _md_to_html(md: str) -> str:
    """Lightweight markdown-to-HTML for the notification email."""
    html_parts: list[str] = []
    in_table = False

    for line in md.split("\n"):
        stripped = line.strip()

        if not stripped:
            if in_table:
                html_parts.append("</table>")
                in_table = False
            html_parts.append("<br>")
            continue

        if stripped.startswith("## "):
            html_parts.append(f'<h2 style="margin:18px 0 6px;color:#2c3e50;border-bottom:1px solid #ddd;padding-bottom:4px">{_inline(stripped[3:])}</h2>')
            continue
        if stripped.startswith("# "):
            html_parts.append(f'<h1 style="margin:0 0 8px;color:#2c3e50">{_inline(stripped[2:])}</h1>')
            continue

        if stripped.startswith("|") and stripped.endswith("|"):
            cells = [c.strip() for c in stripped.split("|")[1:-1]]
            if all(set(c) <= {"-", " ", ":"} for c in cells):
                continue
            if not in_table:
                html_parts.append('<table style="border-collapse:collapse;width:100%;font-size:13px;margin:8px 0">')
                html_parts.append("<tr>" + "".join(
                    f'<th style="border:1px solid #ddd;padding:6px 8px;background:#f5f7fa;text-align:left;white-space:nowrap">{_inline(c)}</th>' for c in cells
                ) + "</tr>")
                in_table = True
                continue
            color = "#e8f5e9" if "Apply Now" in cells else "#fff"
            html_parts.append("<tr>" + "".join(
                f'<td style="border:1px solid #ddd;padding:5px 8px;background:{color}">{_inline(c)}</td>' for c in cells
            ) + "</tr>")
            continue

        if stripped.startswith("- "):
            html_parts.append(f'<div style="margin:2px 0 2px 16px">• {_inline(stripped[2:])}</div>')
            continue

        html_parts.append(f"<p style='margin:4px 0'>{_inline(stripped)}</p>")

    if in_table:
        html_parts.append("</table>")

    return "\n".join(html_parts)


def _inline(text: str) -> str:
    """Escape, then convert inline markdown (bold, links) to HTML."""
    text = html.escape(text, quote=False)
    text = re.sub(r'\*\*(.+?)\*\*', r'<strong>\1</strong>', text)
    text = re.sub(r'\[([^\]]+)\]\(([^)]+)\)', r'<a href="\2" style="color:#1a73e8">\1</a>', text)
    return text


def _cell(text: str) -> str:
    return (text or "").replace("|", "/").replace("\n", " ").strip()


@retry(max_attempts=3, base_delay=3.0, retryable=(smtplib.SMTPException, OSError))
def _smtp_send(
    host: str, port: int, user: str, password: str,
    from_addr: str, to_addr: str, msg: MIMEMultipart,
    cancel: threading.Event | None = None,
) -> None:
    with smtplib.SMTP(host, port, timeout=30) as server:
        server.starttls()
        server.login(user, password)
        server.sendmail(from_addr, [to_addr], msg.as_string())


class EmailChannel(NotificationChannel):
    """One email per notify call; no size limit unless one is configured."""

    name = "email"
    transport_errors = (smtplib.SMTPException, OSError)

    def __init__(
        self,
        host: str,
        port: int,
        user: str,
        password: str,
        to_addr: str,
        from_addr: str = "",
        max_message_size: int | None = None,
    ) -> None:
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.to_addr = to_addr
        self.from_addr = from_addr or user
        self.max_message_size = max_message_size

    def match_units(self, ranked: Sequence[Vacancy]) -> tuple[str, list[str]]:
        header = (
            f"# New Job Matches ({len(ranked)})\n\n"
            "| Vacancy | Company | Salary | Match | Action | Missing |\n"
            "|---|---|---|---|---|---|\n"
        )
        units = []
        for v in ranked:
            score = v.match_score
            title = f"[{_cell(v.title)}]({v.url})" if v.url else _cell(v.title)
            match = f"**{score.overall:.0f}/100**" if score else "-"
            action = score.action_label if score else "-"
            missing = ", ".join(score.missing_skills[:3]) if score and score.missing_skills else "-"
            units.append(
                f"| {title} | {_cell(v.company)} | {_cell(format_salary(v))} | {match} | {action} | {_cell(missing)} |\n"
            )
        return header, units

    def snapshot_units(self, snapshot: MarketSnapshot) -> tuple[str, list[str]]:
        header = (
            f"# Market Snapshot: {snapshot.date:%Y-%m-%d}\n\n"
            f"Platform: **{snapshot.platform}** | Total vacancies: **{snapshot.total_vacancies}**\n\n"
        )
        units: list[str] = []
        top = snapshot.top_skills(TOP_SNAPSHOT_SKILLS)
        if top:
            units.append("## Top Skills by Demand\n\n| # | Skill | Vacancies |\n|---|---|---|\n")
            units.extend(f"| {rank} | {_cell(skill)} | {count} |\n" for rank, (skill, count) in enumerate(top, start=1))
            units.append("\n")
        if snapshot.avg_salary_by_level:
            units.append("## Salary by Seniority\n\n| Level | Average | Maximum |\n|---|---|---|\n")
            units.extend(
                f"| {level.name.title()} | ${avg:,.0f} | ${snapshot.max_salary_by_level.get(level, avg):,.0f} |\n"
                for level, avg in sorted(snapshot.avg_salary_by_level.items())
            )
            units.append("\n")
        if snapshot.remote_distribution:
            units.append("## Remote Policy Distribution\n\n")
            units.extend(
                f"- {policy.value}: {count}\n"
                for policy, count in sorted(snapshot.remote_distribution.items(), key=lambda pc: (-pc[1], pc[0].value))
            )
        return header, units

    def send_chunk(self, text: str, *, subject: str = "", cancel: threading.Event | None = None) -> None:
        subject = subject or f"Job matches – {datetime.now(timezone.utc):%Y-%m-%d}"
        html_body = f"""<div style="font-family:-apple-system,BlinkMacSystemFont,'Segoe UI',Roboto,sans-serif;max-width:900px;margin:0 auto;padding:16px;color:#333">
{_md_to_html(text)}
<hr style="border:none;border-top:1px solid #e0e0e0;margin:20px 0 8px">
<p style="font-size:11px;color:#999">Sent by careerpilot</p>
</div>"""

        msg = MIMEMultipart("alternative")
        msg["Subject"] = f"careerpilot: {subject}"
        msg["From"] = self.from_addr
        msg["To"] = self.to_addr
        msg.attach(MIMEText(text, "plain", "utf-8"))
        msg.attach(MIMEText(html_body, "html", "utf-8"))

        _smtp_send(
            self.host, self.port, self.user, self.password,
            self.from_addr, self.to_addr, msg, cancel=cancel,
        )
        log.info("Email sent to %s", self.to_addr)

    def test_connection(self) -> bool:
        try:
            with smtplib.SMTP(self.host, self.port, timeout=15) as server:
                server.starttls()
                server.login(self.user, self.password)
                code, _ = server.noop()
        except (smtplib.SMTPException, OSError) as exc:
            log.warning("SMTP connection test failed: %s", exc)
            return False
        log.info("SMTP connection OK (%s:%d)", self.host, self.port)
        return code == 250
