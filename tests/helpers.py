"""
tests/helpers.py

Hand-written fakes shared by the docketwatch test suite: a controllable clock,
scripted HTTP sessions and canned case pages. No network access is needed.
"""

from __future__ import annotations

import textwrap
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union

import requests


class FakeClock:
    """Monotonic clock whose ``sleep`` advances time instead of blocking."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def advance(self, seconds: float) -> None:
        self.now += seconds


@dataclass
class FakeResponse:
    status_code: int = 200
    text: str = ""
    url: str = ""


Scripted = Union[FakeResponse, Exception, Callable[..., FakeResponse]]


@dataclass
class FakeSession:
    """Stand-in for ``requests.Session`` answering from a URL-prefix script.

    ``routes`` maps a URL prefix to a response, an exception to raise or a
    callable building the response. The longest matching prefix wins;
    unmatched URLs answer 404.
    """

    routes: Dict[str, Scripted] = field(default_factory=dict)
    calls: List[Dict[str, Any]] = field(default_factory=list)
    closed: bool = False

    def request(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        matches = [prefix for prefix in self.routes if url.startswith(prefix)]
        if not matches:
            return FakeResponse(404, "", url)
        scripted = self.routes[max(matches, key=len)]
        if isinstance(scripted, Exception):
            raise scripted
        if callable(scripted) and not isinstance(scripted, FakeResponse):
            return scripted(method, url, **kwargs)
        if not scripted.url:
            return FakeResponse(scripted.status_code, scripted.text, url)
        return scripted

    def close(self) -> None:
        self.closed = True


class SessionPool:
    """``session_factory`` that hands every upstream the same scripted session."""

    def __init__(self, routes: Optional[Dict[str, Scripted]] = None) -> None:
        self.session = FakeSession(dict(routes or {}))
        self.created = 0

    def __call__(self) -> FakeSession:
        self.created += 1
        return self.session

    @property
    def calls(self) -> List[Dict[str, Any]]:
        return self.session.calls

    def urls(self) -> List[str]:
        return [call["url"] for call in self.calls]


def timeout_error() -> requests.Timeout:
    return requests.Timeout("read timed out")


CLOUDFLARE_PAGE = textwrap.dedent(
    """
    <!DOCTYPE html>
    <html><head><title>Just a moment...</title></head>
    <body>
      <div id="challenge-running">Checking your browser before accessing roasearch.sdcourt.ca.gov.</div>
      <script src="/cdn-cgi/challenge-platform/h/g/orchestrate/jsch/v1"></script>
    </body></html>
    """
)

NO_RESULTS_PAGE = textwrap.dedent(
    """
    <html><body>
      <h1>Register of Actions Search</h1>
      <p>No cases found matching your search criteria. Please verify the case number
      and try again. Searches are limited to cases filed in San Diego County.</p>
    </body></html>
    """
)


def case_page(
    case_id: str = "22FL001581C",
    *,
    status: str = "Active",
    actions: int = 3,
    hearings: Optional[List[Dict[str, str]]] = None,
) -> str:
    """Render a synthetic ROASearch style case detail page."""

    action_rows = "\n".join(
        f"<tr><td>{month:02d}/15/2024</td><td>Filing {month}</td>"
        f"<td>Document {month} filed</td><td>Petitioner</td></tr>"
        for month in range(1, actions + 1)
    )
    hearing_rows = "\n".join(
        "<tr><td>{date}</td><td>{time}</td><td>{type}</td><td>Dept 602</td>"
        "<td>Hon. Maria Lopez</td><td>{virtual}</td></tr>".format(
            date=hearing["date"],
            time=hearing["time"],
            type=hearing.get("type", "Review Hearing"),
            virtual=hearing.get("virtual", ""),
        )
        for hearing in hearings or []
    )
    return textwrap.dedent(
        f"""
        <html>
        <head><title>Case {case_id}</title><script>var tracking = "Case Status: Closed";</script></head>
        <body>
          <h1>Case Summary</h1>
          <table>
            <tr><td>Case Number:</td><td>{case_id}</td></tr>
            <tr><td>Case Title:</td><td>SMITH, JANE vs SMITH, JOHN</td></tr>
            <tr><td>Case Type:</td><td>Family Law</td></tr>
            <tr><td>Case Status:</td><td>{status}</td></tr>
            <tr><td>Date Filed:</td><td>3/7/2022</td></tr>
            <tr><td>Department:</td><td>F-12</td></tr>
            <tr><td>Judicial Officer:</td><td>Hon. Maria Lopez</td></tr>
          </table>
          <h2>Parties</h2>
          <table>
            <tr><th>Name</th><th>Role</th></tr>
            <tr><td>SMITH, JANE</td><td>Petitioner</td></tr>
            <tr><td>SMITH, JOHN</td><td>Respondent</td></tr>
          </table>
          <h2>Register of Actions</h2>
          <table>
            <tr><th>Date</th><th>Action</th><th>Description</th><th>Filed By</th></tr>
            {action_rows}
          </table>
          <h2>Upcoming Events</h2>
          <table>
            <tr><th>Date</th><th>Time</th><th>Event Type</th><th>Department</th><th>Judge</th></tr>
            {hearing_rows}
          </table>
        </body>
        </html>
        """
    )
