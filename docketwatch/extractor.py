"""
docketwatch - Record Extractor

Turns raw upstream content (HTML, plain text or JSON) into a ``CaseRecord``.

HTML is flattened to lines first: scripts and styles are dropped, table rows
become ``cell | cell | ...`` lines and block elements start new lines. Scalar
fields are then recognized through ``FIELD_PATTERNS``, an ordered pattern list
per field where the first match wins. The register of actions and upcoming
events are read as repeated rows inside their own sections so their labels
never leak into the case-level fields.

Rejection policy: the record must confirm either its title or the presence of
the queried case number, otherwise ``MalformedContentError`` is raised and the
caller reports the case as not found.
"""

from __future__ import annotations

import json
import re
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from bs4 import BeautifulSoup

from .case_numbers import CASE_TYPE_CODES, case_type_code, iter_case_numbers, normalize_case_id
from .errors import MalformedContentError
from .models import (
    UNKNOWN,
    CaseRecord,
    CaseStatus,
    QueryIntent,
    RegisterAction,
    UpcomingEvent,
    VirtualMeeting,
    utcnow,
)
from .utils.log import get_logger

_LOG = get_logger(__name__)

_FLAGS = re.IGNORECASE | re.MULTILINE
_BLOCK_TAGS = [
    "p", "div", "li", "ul", "ol", "dl", "dt", "dd", "table", "section", "article",
    "header", "footer", "h1", "h2", "h3", "h4", "h5", "h6", "form", "fieldset",
    "caption", "legend",
]
_HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6", "caption", "legend"]


def _labeled(*labels: str, value: str = r"[^|\n]*[^|\s]") -> re.Pattern[str]:
    """``Label: value`` or ``Label | value`` at a line or cell start."""

    names = "|".join(labels)
    return re.compile(
        rf"(?:^|\|)[ \t]*(?:{names})[ \t]*(?::[ \t]*\|?|\|)[ \t]*(?P<value>{value})",
        _FLAGS,
    )


_DATE_VALUE = r"\d{1,2}/\d{1,2}/\d{4}|\d{4}-\d{2}-\d{2}|[A-Z][a-z]{2,8}\.? \d{1,2}, \d{4}"

FIELD_PATTERNS: Dict[str, Tuple[re.Pattern[str], ...]] = {
    "title": (
        _labeled("Case Title", "Case Name", "Title", "Case Style"),
        re.compile(
            r"(?:^|\|)[ \t]*(?P<value>[^|\n]*?\S[ \t]+(?:vs?\.?|versus)[ \t]+\S[^|\n]*?)[ \t]*(?=\||$)",
            _FLAGS,
        ),
        re.compile(
            r"(?:^|\|)[ \t]*(?P<value>(?:In re|In the Matter of|Marriage of)\b[^|\n]*[^|\s])",
            _FLAGS,
        ),
    ),
    "case_type": (
        _labeled("Case Type", "Case Category", "Type"),
    ),
    "status": (
        _labeled("Case Status", "Status"),
    ),
    "filed_date": (
        _labeled("Date Filed", "Filing Date", "Filed On", "Filed", value=_DATE_VALUE),
    ),
    "department": (
        _labeled("Department", r"Dept\.?", "Court Location", "Courtroom"),
    ),
    "judge": (
        _labeled("Judicial Officer", "Judge", "Assigned Judge", "Assigned To"),
        re.compile(r"\bHon(?:orable|\.)?[ \t]+(?P<value>[A-Z][^|\n]*[^|\s])", re.MULTILINE),
    ),
}

_PARTY_ROLES = r"Petitioner|Respondent|Plaintiff|Defendant|Appellant|Appellee|Claimant|Minor|Decedent"
PARTY_PATTERNS: Tuple[re.Pattern[str], ...] = (
    _labeled(_PARTY_ROLES),
    re.compile(rf"^[ \t]*(?P<value>[^|\n]*[^|\s])[ \t]*\|[ \t]*(?:{_PARTY_ROLES})\b", _FLAGS),
)
_PARTY_ROW = re.compile(rf"(?:^|\|)[ \t]*(?:{_PARTY_ROLES})\b", re.IGNORECASE)
_VERSUS = re.compile(r"^(?P<first>.+?)\s+(?:vs?\.?|versus)\s+(?P<second>.+)$", re.IGNORECASE)
_IMAGED = re.compile(r"\[IMAGED\]", re.IGNORECASE)

SECTION_HEADINGS: Dict[str, re.Pattern[str]] = {
    "register": re.compile(r"^(?:register of actions|roa|case history|docket entries)\b[^|\d]{0,40}$", re.I),
    "events": re.compile(
        r"^(?:upcoming (?:events|hearings)|future (?:events|hearings)|scheduled hearings|calendar)\b[^|\d]{0,40}$",
        re.I,
    ),
    "parties": re.compile(r"^(?:parties|party information|participants)\b[^|\d]{0,40}$", re.I),
}

_REGISTER_ROW = re.compile(
    r"^(?:\d{1,4}[ \t]*\|[ \t]*)?(?P<date>\d{1,2}/\d{1,2}/\d{4})[ \t]*\|?[ \t]*(?P<rest>.+)$"
)
_EVENT_ROW = re.compile(
    r"^(?P<date>\d{1,2}/\d{1,2}/\d{4})[ \t]*\|?[ \t]*"
    r"(?:(?P<time>\d{1,2}:\d{2}(?:[ \t]*[AaPp]\.?[ \t]*[Mm]\.?)?)[ \t]*\|?[ \t]*)?(?P<rest>.*)$"
)
_FILED_BY = re.compile(r"\bfiled by:?\s+(?P<who>.+)$", re.IGNORECASE)

_MEETING_ID = re.compile(
    r"\b(?:zoom[ \t]*(?:meeting[ \t]*)?id|meeting[ \t]*id)\b[ \t]*[:#]?[ \t]*(?P<value>\d{3}[ \t-]?\d{3,4}[ \t-]?\d{3,5})",
    re.IGNORECASE,
)
_PASSCODE = re.compile(r"\b(?:passcode|pass code|password)\b[ \t]*[:#]?[ \t]*(?P<value>[A-Za-z0-9]+)", re.IGNORECASE)
_ZOOM_LINK = re.compile(r"https?://[\w.-]*zoom(?:gov)?\.(?:us|com)/[^\s|\"'<>]+", re.IGNORECASE)
_VIRTUAL_HINT = re.compile(r"zoom|meeting id|passcode", re.IGNORECASE)

_STATUS_WORD = re.compile(
    r"^(post[- ]?judgment|reopened|active|open|closed|disposed|terminated|pending|dismissed|stayed)\b",
    re.IGNORECASE,
)
_TIME_12H = re.compile(r"^(?P<h>\d{1,2}):(?P<m>\d{2})\s*(?P<ap>[AaPp])\.?\s*[Mm]\.?$")
_TIME_24H = re.compile(r"^(?P<h>\d{1,2}):(?P<m>\d{2})$")

# Column header -> CaseRecord field for ROASearch style result tables.
HEADER_FIELDS: Dict[str, Optional[str]] = {
    "case number": "case_id",
    "case no": "case_id",
    "case #": "case_id",
    "case title": "title",
    "case name": "title",
    "title": "title",
    "case type": "case_type",
    "type": "case_type",
    "status": "status",
    "case status": "status",
    "department": "department",
    "dept": "department",
    "court location": "department",
    "date filed": "filed_date",
    "filed": "filed_date",
    "filing date": "filed_date",
    "judge": "judge",
    "judicial officer": "judge",
    "date": None,
    "time": None,
    "action": None,
    "description": None,
    "filed by": None,
    "event": None,
    "event type": None,
    "hearing type": None,
    "location": None,
    "party": None,
    "name": None,
    "role": None,
}

JSON_ALIASES: Dict[str, Tuple[str, ...]] = {
    "case_id": ("caseNumber", "case_number", "caseId", "case_id", "case"),
    "title": ("caseTitle", "case_title", "title", "name"),
    "case_type": ("caseType", "case_type", "type"),
    "status": ("status", "caseStatus", "case_status"),
    "filed_date": ("dateFiled", "date_filed", "filedDate", "filed_date"),
    "department": ("department", "dept", "courtLocation", "court_location"),
    "judge": ("judge", "judicialOfficer", "judicial_officer"),
    "parties": ("parties",),
    "register_of_actions": ("registerOfActions", "register_of_actions", "actions"),
    "upcoming_events": ("upcomingEvents", "upcoming_events", "events"),
}
_JSON_CONTAINERS = ("cases", "results", "data", "items", "records")
_PARTY_PAIRS = (("petitioner", "respondent"), ("plaintiff", "defendant"))


# ---------------------------------------------------------------------------
# Normalization helpers
# ---------------------------------------------------------------------------


def normalize_date(raw: Optional[str]) -> str:
    """Return ``YYYY-MM-DD`` for the date formats the court sites use."""

    if not raw:
        return UNKNOWN
    value = str(raw).strip()
    match = re.fullmatch(r"(\d{1,2})/(\d{1,2})/(\d{4})", value)
    if match:
        month, day, year = match.groups()
        return f"{year}-{int(month):02d}-{int(day):02d}"
    for fmt in ("%Y-%m-%d", "%B %d, %Y", "%b %d, %Y", "%b. %d, %Y"):
        try:
            return datetime.strptime(value[:10] if fmt == "%Y-%m-%d" else value, fmt).strftime("%Y-%m-%d")
        except ValueError:
            continue
    return UNKNOWN


def normalize_time(raw: Optional[str]) -> str:
    if not raw:
        return UNKNOWN
    value = " ".join(str(raw).split())
    match = _TIME_12H.match(value)
    if match:
        return f"{int(match.group('h'))}:{match.group('m')} {match.group('ap').upper()}M"
    match = _TIME_24H.match(value)
    if match:
        return f"{int(match.group('h')):02d}:{match.group('m')}"
    return UNKNOWN


def _parse_status(raw: Optional[str]) -> CaseStatus:
    status = CaseStatus.parse(raw)
    if status is CaseStatus.UNKNOWN and raw:
        match = _STATUS_WORD.match(raw.strip())
        if match:
            status = CaseStatus.parse(match.group(1))
    return status


def _text(value: Any) -> str:
    if value is None or isinstance(value, (dict, list)):
        return UNKNOWN
    cleaned = " ".join(_IMAGED.sub("", str(value)).split())
    return cleaned or UNKNOWN


def _cells(line: str) -> List[str]:
    return [cell.strip() for cell in line.split("|")]


def _dedupe(values: Sequence[str]) -> List[str]:
    seen = set()
    result = []
    for value in values:
        key = value.lower()
        if value and value != UNKNOWN and key not in seen:
            seen.add(key)
            result.append(value)
    return result


# ---------------------------------------------------------------------------
# Markup flattening
# ---------------------------------------------------------------------------


def _flatten(content: str) -> Tuple[List[str], Set[str]]:
    """Return the flattened lines plus the text of every heading element."""

    soup = BeautifulSoup(content, "html.parser")
    for tag in soup(["script", "style", "noscript", "template"]):
        tag.decompose()
    for anchor in soup.find_all("a", href=True):
        href = anchor["href"]
        if _ZOOM_LINK.match(href) and href not in anchor.get_text():
            anchor.append(f" {href}")
    headings = {" ".join(tag.get_text(" ", strip=True).split()) for tag in soup.find_all(_HEADING_TAGS)}
    for row in soup.find_all("tr"):
        cells = [cell.get_text(" ", strip=True) for cell in row.find_all(["td", "th"])]
        row.replace_with("\n" + " | ".join(cells) + "\n")
    for br in soup.find_all("br"):
        br.replace_with("\n")
    for tag in soup.find_all(_BLOCK_TAGS):
        tag.insert_before("\n")
        tag.insert_after("\n")

    lines = []
    for raw_line in soup.get_text().splitlines():
        line = " ".join(raw_line.split())
        if line.strip(" |"):
            lines.append(line)
    return lines, headings


def flatten_markup(content: str) -> List[str]:
    """Flatten HTML (or plain text) into non-empty, whitespace-collapsed lines."""

    return _flatten(content)[0]


def _section_heading(line: str) -> Optional[str]:
    return next((name for name, pattern in SECTION_HEADINGS.items() if pattern.match(line)), None)


def _is_section_row(section: str, line: str) -> bool:
    if _is_header_row(_cells(line)):
        return True
    if section == "register":
        return bool(_REGISTER_ROW.match(line))
    if section == "events":
        return bool(_EVENT_ROW.match(line))
    return bool(_PARTY_ROW.search(line))


def _is_meeting_detail(line: str) -> bool:
    return "|" not in line and bool(_MEETING_ID.search(line) or _ZOOM_LINK.search(line))


def _split_sections(
    lines: Sequence[str], headings: Set[str]
) -> Tuple[List[str], Dict[str, List[str]]]:
    """Route section rows to their section and everything else to ``general``.

    A heading only opens its section when it is a heading element or the next
    line is a header row or one of the section's rows. The section closes at
    the first line that is none of those; meeting details directly under an
    event row stay with the event.
    """

    general: List[str] = []
    sections: Dict[str, List[str]] = {name: [] for name in SECTION_HEADINGS}
    current: Optional[str] = None
    for index, line in enumerate(lines):
        heading = _section_heading(line)
        if heading:
            following = lines[index + 1] if index + 1 < len(lines) else ""
            if line in headings or _is_section_row(heading, following):
                current = heading
                continue
        if current is not None:
            if _is_section_row(current, line):
                sections[current].append(line)
                continue
            if current == "events" and _is_meeting_detail(line):
                sections[current].append(line)
                continue
            current = None
        general.append(line)
    return general, sections


def _header_key(cell: str) -> str:
    return " ".join(cell.lower().replace(":", " ").replace(".", " ").split())


def _is_header_row(cells: Sequence[str]) -> bool:
    named = [cell for cell in cells if cell]
    return len(named) >= 2 and all(_header_key(cell) in HEADER_FIELDS for cell in named)


def _table_fields(lines: Sequence[str], case_id: str) -> Dict[str, str]:
    """Values from the result-table row that carries ``case_id``."""

    header: Optional[List[Optional[str]]] = None
    for line in lines:
        cells = _cells(line)
        if _is_header_row(cells):
            header = [HEADER_FIELDS.get(_header_key(cell)) for cell in cells]
            continue
        if not header or "case_id" not in header or len(cells) != len(header):
            continue
        if case_id not in iter_case_numbers(cells[header.index("case_id")]):
            continue
        return {
            field: cells[index]
            for index, field in enumerate(header)
            if field and field != "case_id" and cells[index]
        }
    return {}


def _search(patterns: Sequence[re.Pattern[str]], text: str) -> Optional[str]:
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            value = match.group("value").strip()
            if value:
                return value
    return None


def _field_value(field: str, text: str, table: Dict[str, str]) -> Optional[str]:
    """Labeled match first, then the result-table row, then looser shapes."""

    patterns = FIELD_PATTERNS[field]
    return _search(patterns[:1], text) or table.get(field) or _search(patterns[1:], text)


# ---------------------------------------------------------------------------
# Repeated groups
# ---------------------------------------------------------------------------


def _register_rows(lines: Sequence[str]) -> List[RegisterAction]:
    actions: List[RegisterAction] = []
    for line in lines:
        match = _REGISTER_ROW.match(line)
        if not match:
            continue
        cells = _cells(match.group("rest"))
        if len(cells) == 1:
            text = cells[0]
            filed_by = _FILED_BY.search(text)
            action = text[: filed_by.start()].strip(" ,;-") if filed_by else text
            who = filed_by.group("who") if filed_by else None
            description = ""
        else:
            action = cells[0]
            description = cells[1]
            who = cells[2] if len(cells) > 2 else None
        if not action:
            continue
        actions.append(
            RegisterAction(
                date=normalize_date(match.group("date")),
                action=_text(action),
                description=" ".join(description.split()),
                filed_by=_text(who),
            )
        )
    return actions


def _virtual_meeting(text: str) -> Optional[VirtualMeeting]:
    meeting_id = _MEETING_ID.search(text)
    passcode = _PASSCODE.search(text)
    link = _ZOOM_LINK.search(text)
    if not (meeting_id or passcode or link):
        return None
    return VirtualMeeting(
        meeting_id=re.sub(r"[ \t-]", "", meeting_id.group("value")) if meeting_id else UNKNOWN,
        passcode=passcode.group("value") if passcode else UNKNOWN,
        link=link.group(0) if link else None,
    )


def _event_rows(lines: Sequence[str]) -> List[UpcomingEvent]:
    rows: List[Tuple[re.Match[str], List[str]]] = []
    for line in lines:
        match = _EVENT_ROW.match(line)
        if match:
            rows.append((match, []))
        elif rows and _is_meeting_detail(line):
            # Meeting details printed under the row belong to it.
            rows[-1][1].append(line)

    events: List[UpcomingEvent] = []
    for match, extra in rows:
        cells = [cell for cell in _cells(match.group("rest")) if cell]
        plain = [cell for cell in cells if not _VIRTUAL_HINT.search(cell) and not _ZOOM_LINK.search(cell)]
        virtual_text = " ".join([match.group("rest"), *extra])
        events.append(
            UpcomingEvent(
                date=normalize_date(match.group("date")),
                time=normalize_time(match.group("time")),
                event_type=_text(plain[0]) if plain else UNKNOWN,
                department=_text(plain[1]) if len(plain) > 1 else UNKNOWN,
                judge=_text(plain[2]) if len(plain) > 2 else UNKNOWN,
                description=" ".join(plain[3:]),
                virtual_info=_virtual_meeting(virtual_text),
            )
        )
    return events


def _parties(general: Sequence[str], party_lines: Sequence[str], title: str) -> List[str]:
    found: List[str] = []
    for text in ("\n".join(general), "\n".join(party_lines)):
        for pattern in PARTY_PATTERNS:
            found.extend(_text(match.group("value")) for match in pattern.finditer(text))
    if not found and title != UNKNOWN:
        versus = _VERSUS.match(title)
        if versus:
            found = [_text(versus.group("first")), _text(versus.group("second"))]
    return _dedupe(found)


# ---------------------------------------------------------------------------
# Case identifier resolution
# ---------------------------------------------------------------------------


def _resolve_case_id(lines: Sequence[str], query: str, intent: QueryIntent) -> Tuple[str, bool]:
    """Return the record's case id and whether it was seen in the content."""

    found = list(iter_case_numbers("\n".join(lines)))
    if intent is QueryIntent.CASE_NUMBER:
        wanted = normalize_case_id(query)
        if wanted is None:
            raise MalformedContentError(f"{query!r} is not a recognized case number")
        if wanted in found:
            return wanted, True
        if found:
            raise MalformedContentError(f"content lists other cases but not {wanted}")
        return wanted, False

    needle = query.strip().lower()
    if needle:
        for line in lines:
            if needle in line.lower():
                on_line = list(iter_case_numbers(line))
                if on_line:
                    return on_line[0], True
    if found:
        return found[0], True
    raise MalformedContentError(f"no case number found for {intent.value} query {query!r}")


def _case_type(raw: Optional[str], case_id: str, confirmed: bool) -> str:
    if raw:
        return _text(raw)
    code = case_type_code(case_id) if confirmed else None
    return CASE_TYPE_CODES.get(code or "", UNKNOWN)


def _extract_markup(
    content: str,
    query: str,
    intent: QueryIntent,
    strategy: Optional[str],
    fetched_at: Optional[datetime],
) -> CaseRecord:
    lines, headings = _flatten(content)
    if not lines:
        raise MalformedContentError("content has no text")
    general, sections = _split_sections(lines, headings)
    case_id, confirmed = _resolve_case_id(lines, query, intent)

    scan = "\n".join(line for line in general if not _is_header_row(_cells(line)))
    table = _table_fields(general, case_id)
    values = {field: _field_value(field, scan, table) for field in FIELD_PATTERNS}

    title = _text(values["title"]) if values["title"] else UNKNOWN
    if not confirmed and title == UNKNOWN:
        raise MalformedContentError(f"content confirms neither the title nor case {case_id}")

    return CaseRecord(
        case_id=case_id,
        title=title,
        case_type=_case_type(values["case_type"], case_id, confirmed),
        status=_parse_status(values["status"]),
        filed_date=normalize_date(values["filed_date"]),
        department=_text(values["department"]) if values["department"] else UNKNOWN,
        judge=_text(values["judge"]) if values["judge"] else UNKNOWN,
        parties=_parties(general, sections["parties"], title),
        register_of_actions=_register_rows(sections["register"]),
        upcoming_events=_event_rows(sections["events"]),
        source_strategy=strategy or UNKNOWN,
        last_fetched_at=fetched_at or utcnow(),
    )


# ---------------------------------------------------------------------------
# JSON payloads
# ---------------------------------------------------------------------------


def _load_json(content: str) -> Optional[Any]:
    stripped = content.lstrip()
    if not stripped.startswith(("{", "[")):
        return None
    try:
        return json.loads(stripped)
    except ValueError:
        return None


def _json_entries(payload: Any) -> List[Dict[str, Any]]:
    if isinstance(payload, dict):
        for key in _JSON_CONTAINERS:
            inner = payload.get(key)
            if isinstance(inner, list):
                return [entry for entry in inner if isinstance(entry, dict)]
            if isinstance(inner, dict):
                return [inner]
        return [payload]
    if isinstance(payload, list):
        return [entry for entry in payload if isinstance(entry, dict)]
    return []


def _alias(entry: Dict[str, Any], field: str) -> Any:
    for key in JSON_ALIASES[field]:
        value = entry.get(key)
        if value not in (None, "", [], {}):
            return value
    return None


def _select_entry(
    entries: Sequence[Dict[str, Any]], query: str, intent: QueryIntent
) -> Optional[Tuple[Dict[str, Any], str]]:
    candidates = []
    for entry in entries:
        raw_id = _alias(entry, "case_id")
        candidates.append((entry, normalize_case_id(str(raw_id)) if raw_id is not None else None))

    if intent is QueryIntent.CASE_NUMBER:
        wanted = normalize_case_id(query)
        if wanted is None:
            return None
        for entry, case_id in candidates:
            if case_id == wanted:
                return entry, case_id
        if len(candidates) == 1 and candidates[0][1] is None and _alias(candidates[0][0], "title"):
            return candidates[0][0], wanted
        return None

    needle = query.strip().lower()
    for entry, case_id in candidates:
        if case_id and needle and needle in json.dumps(entry, default=str).lower():
            return entry, case_id
    for entry, case_id in candidates:
        if case_id:
            return entry, case_id
    return None


def _json_parties(entry: Dict[str, Any]) -> List[str]:
    raw = _alias(entry, "parties")
    if raw is not None:
        items = raw if isinstance(raw, list) else [raw]
        return _dedupe([_text(item.get("name") if isinstance(item, dict) else item) for item in items])
    for first, second in _PARTY_PAIRS:
        if entry.get(first) and entry.get(second):
            return _dedupe([_text(entry[first]), _text(entry[second])])
    return []


def _json_actions(entry: Dict[str, Any]) -> List[RegisterAction]:
    actions = []
    for item in _alias(entry, "register_of_actions") or []:
        if not isinstance(item, dict):
            continue
        actions.append(
            RegisterAction(
                date=normalize_date(item.get("date")),
                action=_text(item.get("action") or item.get("actionType") or item.get("type")),
                description=str(item.get("description") or ""),
                filed_by=_text(item.get("filedBy") or item.get("filed_by")),
            )
        )
    return actions


def _json_events(entry: Dict[str, Any]) -> List[UpcomingEvent]:
    events = []
    for item in _alias(entry, "upcoming_events") or []:
        if not isinstance(item, dict):
            continue
        virtual = item.get("virtualInfo") or item.get("virtual_info")
        meeting = None
        if isinstance(virtual, dict) and virtual:
            meeting = VirtualMeeting(
                meeting_id=_text(virtual.get("zoomId") or virtual.get("meetingId") or virtual.get("meeting_id")),
                passcode=_text(virtual.get("passcode")),
                link=virtual.get("link") or virtual.get("url"),
            )
        events.append(
            UpcomingEvent(
                date=normalize_date(item.get("date")),
                time=normalize_time(item.get("time")),
                event_type=_text(item.get("eventType") or item.get("event_type") or item.get("type")),
                department=_text(item.get("department")),
                judge=_text(item.get("judge")),
                description=str(item.get("description") or ""),
                virtual_info=meeting,
            )
        )
    return events


def _extract_json(
    payload: Any,
    query: str,
    intent: QueryIntent,
    strategy: Optional[str],
    fetched_at: Optional[datetime],
) -> CaseRecord:
    selected = _select_entry(_json_entries(payload), query, intent)
    if selected is None:
        raise MalformedContentError(f"JSON payload holds no entry for {query!r}")
    entry, case_id = selected
    title = _text(_alias(entry, "title"))
    raw_type = _alias(entry, "case_type")
    return CaseRecord(
        case_id=case_id,
        title=title,
        case_type=_case_type(str(raw_type) if raw_type else None, case_id, True),
        status=_parse_status(_text(_alias(entry, "status"))),
        filed_date=normalize_date(_alias(entry, "filed_date")),
        department=_text(_alias(entry, "department")),
        judge=_text(_alias(entry, "judge")),
        parties=_json_parties(entry),
        register_of_actions=_json_actions(entry),
        upcoming_events=_json_events(entry),
        source_strategy=strategy or UNKNOWN,
        last_fetched_at=fetched_at or utcnow(),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def extract(
    content: str,
    query: str,
    intent: QueryIntent = QueryIntent.CASE_NUMBER,
    *,
    strategy: Optional[str] = None,
    fetched_at: Optional[datetime] = None,
) -> CaseRecord:
    """Build a ``CaseRecord`` from ``content`` or raise ``MalformedContentError``."""

    if not content or not content.strip():
        raise MalformedContentError("empty content")
    payload = _load_json(content)
    if payload is not None:
        record = _extract_json(payload, query, intent, strategy, fetched_at)
    else:
        record = _extract_markup(content, query, intent, strategy, fetched_at)
    _LOG.debug(
        "Extracted %s via %s: %d actions, %d events",
        record.case_id,
        record.source_strategy,
        len(record.register_of_actions),
        len(record.upcoming_events),
    )
    return record


def looks_like_case(content: str, query: str, intent: QueryIntent = QueryIntent.CASE_NUMBER) -> bool:
    """Cheap check that ``content`` is still in a shape the extractor understands."""

    if not content:
        return False
    payload = _load_json(content)
    if payload is not None:
        return _select_entry(_json_entries(payload), query, intent) is not None
    found = set(iter_case_numbers(content))
    if intent is QueryIntent.CASE_NUMBER:
        wanted = normalize_case_id(query)
        if wanted is None:
            return False
        if wanted in found:
            return True
        return not found and _search(FIELD_PATTERNS["title"][:1], "\n".join(flatten_markup(content))) is not None
    return bool(found)
