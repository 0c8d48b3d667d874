"""Merge a transcript with flagged character ranges into render-ready segments."""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Sequence

from app.models.analysis import Severity, ThreatFinding


class SegmentKind(str, Enum):
    PLAIN = "plain"
    FLAGGED = "flagged"


@dataclass(frozen=True)
class Span:
    """Half-open range [start, end) of flagged text."""

    start: int
    end: int
    severity: Severity
    label: str


@dataclass(frozen=True)
class Segment:
    kind: SegmentKind
    text: str
    start: int
    end: int
    severity: Severity | None = None
    label: str | None = None


def normalize_span(start: int | None, end: int | None, length: int) -> tuple[int, int] | None:
    """
    Clamp a range to [0, length] and reject empty or missing ranges.

    Args:
        start: Range start, may be out of bounds or missing
        end: Range end, may be out of bounds or missing
        length: Length of the text the range points into

    Returns:
        Clamped (start, end) tuple, or None if the range is unusable
    """
    if start is None or end is None:
        return None
    start = max(0, min(start, length))
    end = max(0, min(end, length))
    if start >= end:
        return None
    return start, end


def spans_from_threats(threats: Iterable[ThreatFinding]) -> list[Span]:
    """Build highlight spans from threat findings that carry offsets."""
    spans = []
    for threat in threats:
        if threat.start_index is None or threat.end_index is None:
            continue
        spans.append(
            Span(
                start=threat.start_index,
                end=threat.end_index,
                severity=threat.severity,
                label=threat.threat_type,
            )
        )
    return spans


def highlight(text: str, spans: Sequence[Span]) -> list[Segment]:
    """
    Split text into plain and flagged segments.

    Spans are clamped to the text, ordered by start then end (input order
    breaks remaining ties), and text that is already flagged is never
    flagged again: an overlapping span is truncated to start where the
    previous one ended. Joining the segment texts gives back ``text``.

    Args:
        text: Transcript to split
        spans: Flagged ranges, in any order, possibly overlapping

    Returns:
        Ordered list of segments covering the whole text
    """
    length = len(text)

    ordered: list[tuple[int, int, int, Span]] = []
    for position, span in enumerate(spans):
        bounds = normalize_span(span.start, span.end, length)
        if bounds is None:
            continue
        ordered.append((bounds[0], bounds[1], position, span))
    ordered.sort(key=lambda item: (item[0], item[1], item[2]))

    segments: list[Segment] = []
    cursor = 0
    for start, end, _, span in ordered:
        start = max(start, cursor)
        if start >= end:
            continue
        if start > cursor:
            segments.append(Segment(SegmentKind.PLAIN, text[cursor:start], cursor, start))
        segments.append(
            Segment(
                SegmentKind.FLAGGED,
                text[start:end],
                start,
                end,
                severity=span.severity,
                label=span.label,
            )
        )
        cursor = end

    if cursor < length:
        segments.append(Segment(SegmentKind.PLAIN, text[cursor:], cursor, length))

    return segments
