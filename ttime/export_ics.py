"""
iCalendar (.ics) export.

We convert projected occurrences into a calendar file that can be imported
into:
- Google Calendar
- Outlook
- Apple Calendar

Weekly classes are written once with an RRULE; exams become all-day events.
"""

from __future__ import annotations

import hashlib
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from pathlib import Path
from typing import Dict, Iterable, List, Tuple

from ttime.projection import DatedOccurrence


def _ics_escape(text: str) -> str:
    """
    Escape text for ICS fields (very small subset, sufficient for our use).
    """
    return (
        text.replace("\\", "\\\\").replace("\r\n", "\\n").replace("\n", "\\n").replace(";", "\\;").replace(",", "\\,")
    )


def _dt_local(dt: datetime) -> str:
    """
    Wall-clock datetime string 'YYYYMMDDTHHMMSS' (zone given by TZID).
    """
    return dt.strftime("%Y%m%dT%H%M%S")


def _until_utc(occ: DatedOccurrence) -> str:
    """
    RFC 5545 wants UNTIL in UTC when DTSTART has a TZID. The rule is
    inclusive of the whole last day, so use its last second.
    """
    assert occ.recurrence is not None
    last = datetime.combine(occ.recurrence.until, time(23, 59, 59), tzinfo=occ.start.tzinfo)
    return last.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def _uid(occ: DatedOccurrence, index: int) -> str:
    key = f"{occ.kind}|{occ.summary}|{occ.start.isoformat()}|{index}"
    return hashlib.sha1(key.encode("utf-8")).hexdigest() + "@ttime"


def _tzid(occ: DatedOccurrence) -> str:
    tz = occ.start.tzinfo
    return getattr(tz, "key", None) or str(tz)


def _offset(delta: timedelta) -> str:
    """timedelta(hours=3) -> '+0300'"""
    minutes = int(delta.total_seconds() // 60)
    sign = "+" if minutes >= 0 else "-"
    h, m = divmod(abs(minutes), 60)
    return f"{sign}{h:02d}{m:02d}"


def _observance(local: datetime, before: timedelta) -> List[str]:
    # onset is written as wall time in the offset being left
    onset = local.astimezone(timezone.utc).replace(tzinfo=None) + before
    kind = "DAYLIGHT" if local.dst() else "STANDARD"
    return [
        f"BEGIN:{kind}",
        f"DTSTART:{_dt_local(onset)}",
        f"TZOFFSETFROM:{_offset(before)}",
        f"TZOFFSETTO:{_offset(local.utcoffset())}",
        f"TZNAME:{local.tzname()}",
        f"END:{kind}",
    ]


def _vtimezone(tzid: str, tz: tzinfo, first: date, last: date) -> List[str]:
    """
    VTIMEZONE for one zone, covering whole years from `first` to `last`.

    Offset changes are found by stepping through UTC hours; DTSTART of each
    observance is the wall time at which the change happens.
    """
    t = datetime(first.year, 1, 1, tzinfo=timezone.utc)
    end = datetime(last.year + 1, 1, 1, tzinfo=timezone.utc)

    local = t.astimezone(tz)
    lines = ["BEGIN:VTIMEZONE", f"TZID:{tzid}"]
    lines += _observance(local, local.utcoffset())
    prev = local.utcoffset()

    while t < end:
        t += timedelta(hours=1)
        local = t.astimezone(tz)
        if local.utcoffset() != prev:
            lines += _observance(local, prev)
            prev = local.utcoffset()

    lines.append("END:VTIMEZONE")
    return lines


def _timezones(occurrences: List[DatedOccurrence]) -> List[str]:
    """One VTIMEZONE per zone used by a timed occurrence."""
    spans: Dict[str, Tuple[tzinfo, date, date]] = {}
    for occ in occurrences:
        if occ.all_day or occ.start.tzinfo is None:
            continue
        first = occ.start.date()
        last = occ.recurrence.until if occ.recurrence is not None else occ.end.date()
        tzid = _tzid(occ)
        if tzid in spans:
            tz, lo, hi = spans[tzid]
            spans[tzid] = (tz, min(lo, first), max(hi, last))
        else:
            spans[tzid] = (occ.start.tzinfo, first, last)

    lines: List[str] = []
    for tzid, (tz, lo, hi) in spans.items():
        lines += _vtimezone(tzid, tz, lo, hi)
    return lines


def occurrences_to_ics(occurrences: Iterable[DatedOccurrence]) -> str:
    items = list(occurrences)
    lines: List[str] = []
    lines.append("BEGIN:VCALENDAR")
    lines.append("VERSION:2.0")
    lines.append("PRODID:-//TTime//EN")
    lines.append("CALSCALE:GREGORIAN")
    lines.extend(_timezones(items))

    dtstamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")

    for i, occ in enumerate(items):
        lines.append("BEGIN:VEVENT")
        lines.append(f"UID:{_uid(occ, i)}")
        lines.append(f"DTSTAMP:{dtstamp}")
        if occ.all_day:
            day = occ.start.date()
            lines.append(f"DTSTART;VALUE=DATE:{day.strftime('%Y%m%d')}")
            lines.append(f"DTEND;VALUE=DATE:{(day + timedelta(days=1)).strftime('%Y%m%d')}")
        else:
            tzid = _tzid(occ)
            lines.append(f"DTSTART;TZID={tzid}:{_dt_local(occ.start)}")
            lines.append(f"DTEND;TZID={tzid}:{_dt_local(occ.end)}")
        if occ.recurrence is not None:
            lines.append(f"RRULE:{occ.recurrence.as_rrule(_until_utc(occ))}")
        lines.append(f"SUMMARY:{_ics_escape(occ.summary)}")
        if occ.location:
            lines.append(f"LOCATION:{_ics_escape(occ.location)}")
        if occ.description:
            lines.append(f"DESCRIPTION:{_ics_escape(occ.description)}")
        lines.append("END:VEVENT")

    lines.append("END:VCALENDAR")

    # ICS standard uses CRLF
    return "\r\n".join(lines) + "\r\n"


def export_occurrences_to_ics(occurrences: Iterable[DatedOccurrence], out_path: str | Path) -> int:
    """
    Export occurrences to an .ics file. Returns number of exported events.
    """
    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)

    items = list(occurrences)
    out.write_text(occurrences_to_ics(items), encoding="utf-8")
    return len(items)
