"""Status derivation shared by editing forms and recaps.

For a student and a date:

* date absent from the ledger -> ``-`` (not taken / holiday)
* NISN listed for that date -> its status, normalised to S/I/A/H
* date present, NISN not listed -> ``H`` (attendance by exception)

Late (``terlambat``) counts as present.
"""

from __future__ import annotations

from typing import Iterable, Mapping, Optional, Sequence

from ..attendance.model import AttendanceRecord, parse_status
from ..core.enums import AttendanceStatus, RecapMark

_MARKS = {
    AttendanceStatus.SICK: RecapMark.SICK,
    AttendanceStatus.SICK_LONG: RecapMark.SICK,
    AttendanceStatus.PERMITTED: RecapMark.PERMITTED,
    AttendanceStatus.PERMITTED_LONG: RecapMark.PERMITTED,
    AttendanceStatus.UNEXCUSED: RecapMark.UNEXCUSED,
    AttendanceStatus.UNEXCUSED_LONG: RecapMark.UNEXCUSED,
    AttendanceStatus.PRESENT: RecapMark.PRESENT,
    AttendanceStatus.LATE: RecapMark.PRESENT,
}

TALLY_MARKS = (RecapMark.SICK, RecapMark.PERMITTED, RecapMark.UNEXCUSED, RecapMark.PRESENT)


def to_mark(status: AttendanceStatus) -> RecapMark:
    return _MARKS[status]


def derive_mark(day_records: Optional[Sequence[AttendanceRecord]], nisn: str) -> RecapMark:
    if day_records is None:
        return RecapMark.NO_DATA
    for record in day_records:
        if record.nisn == nisn:
            return to_mark(record.status)
    return RecapMark.PRESENT


def tally(marks: Iterable[RecapMark]) -> dict[str, int]:
    counts = {m.value: 0 for m in TALLY_MARKS}
    for mark in marks:
        if mark.value in counts:
            counts[mark.value] += 1
    return counts


def form_stats(statuses: Mapping[str, str]) -> dict[str, int]:
    """H/S/I/A counts of an editing form."""
    return tally(to_mark(parse_status(s)) for s in statuses.values())
