"""Greedy packing of pre-formatted message units into size-limited chunks."""
from __future__ import annotations

from typing import Iterable

from careerpilot.errors import ValidationError

CONTINUED_MARKER = "(continued)\n"


def pack_chunks(
    units: Iterable[str],
    max_size: int | None,
    header: str = "",
    marker: str = CONTINUED_MARKER,
) -> list[str]:
    """Pack ``units`` in order into chunks no longer than ``max_size``.

    The first chunk starts with ``header``, every later chunk with ``marker``.
    Units are never split; one that cannot fit even into an otherwise empty
    chunk raises ValidationError. ``max_size=None`` means a single chunk.
    Stripping the header and markers and joining the chunks gives back
    ``"".join(units)``.
    """
    units = list(units)
    if not units:
        return []
    if max_size is None:
        return [header + "".join(units)]
    if len(header) >= max_size:
        raise ValidationError(f"Header does not leave room in a {max_size}-char chunk")

    chunks: list[str] = []
    current = header
    has_units = False
    for i, unit in enumerate(units):
        if has_units and len(current) + len(unit) > max_size:
            chunks.append(current)
            current = marker
            has_units = False
        if len(current) + len(unit) > max_size:
            raise ValidationError(
                f"Unit {i} ({len(unit)} chars) does not fit in a {max_size}-char chunk"
            )
        current += unit
        has_units = True
    chunks.append(current)
    return chunks
