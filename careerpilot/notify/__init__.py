from .base import NotificationChannel
from .chunking import CONTINUED_MARKER, pack_chunks
from .dispatcher import NotificationDispatcher
from .mail import EmailChannel
from .telegram import TelegramChannel

from careerpilot.log import get_logger

log = get_logger(__name__)

__all__ = [
    "NotificationChannel", "NotificationDispatcher", "EmailChannel",
    "TelegramChannel", "pack_chunks", "CONTINUED_MARKER", "get_channels",
]


def get_channels(env_getter, max_chunk_size: int | None = None) -> list[NotificationChannel]:
    channels: list[NotificationChannel] = []

    if env_getter("TELEGRAM_BOT_TOKEN") and env_getter("TELEGRAM_CHAT_ID"):
        channels.append(
            TelegramChannel(
                env_getter("TELEGRAM_BOT_TOKEN"),
                env_getter("TELEGRAM_CHAT_ID"),
                max_message_size=max_chunk_size,
            )
        )
        log.info("Registered channel: Telegram")

    host, user, password, to_addr = (
        env_getter("SMTP_HOST"), env_getter("SMTP_USER"),
        env_getter("SMTP_PASSWORD"), env_getter("TO_EMAIL"),
    )
    if all([host, user, password, to_addr]):
        try:
            port = int(env_getter("SMTP_PORT", "587") or 587)
        except ValueError:
            port = 587
        channels.append(
            EmailChannel(host, port, user, password, to_addr, from_addr=env_getter("FROM_EMAIL"))
        )
        log.info("Registered channel: Email (%s)", to_addr)

    if not channels:
        log.info("No notification channels configured (set TELEGRAM_* or SMTP_* in .env)")

    return channels
