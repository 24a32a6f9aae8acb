"""
Tests for the record extractor.

Synthetic pages are built with known field values; extraction must recover
exactly those values and leave everything else at the unknown sentinel.
"""

from __future__ import annotations

import json
import textwrap
from datetime import datetime, timezone

import pytest

from docketwatch.errors import MalformedContentError
from docketwatch.extractor import extract, flatten_markup, looks_like_case, normalize_date, normalize_time
from docketwatch.models import UNKNOWN, CaseStatus, QueryIntent
from tests.helpers import NO_RESULTS_PAGE, case_page

CASE_ID = "22FL001581C"
FETCHED_AT = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

ZOOM_CELL = (
    '<a href="https://sdcourt.zoomgov.com/j/1234567890">Join</a> '
    "Meeting ID: 123 456 7890 Passcode: 555111"
)

SEARCH_RESULTS_PAGE = textwrap.dedent(
    """
    <html><body>
      <h1>Search Results</h1>
      <table>
        <tr><th>Case Number</th><th>Case Title</th><th>Case Type</th><th>Status</th><th>Date Filed</th></tr>
        <tr><td>23CV004411</td><td>ACME LLC vs BROWN</td><td>Civil Unlimited</td><td>Pending</td><td>01/05/2023</td></tr>
        <tr><td>21FL009876</td><td>JONES, ANN vs JONES, BOB</td><td>Family Law</td><td>Closed</td><td>6/30/2021</td></tr>
      </table>
    </body></html>
    """
)


class TestCasePageRoundTrip:
    def test_known_fields_are_recovered(self):
        record = extract(case_page(CASE_ID), CASE_ID, strategy="roasearch-parties", fetched_at=FETCHED_AT)

        assert record.case_id == CASE_ID
        assert record.title == "SMITH, JANE vs SMITH, JOHN"
        assert record.case_type == "Family Law"
        assert record.status is CaseStatus.ACTIVE
        assert record.filed_date == "2022-03-07"
        assert record.department == "F-12"
        assert record.judge == "Hon. Maria Lopez"
        assert record.parties == ["SMITH, JANE", "SMITH, JOHN"]
        assert record.source_strategy == "roasearch-parties"
        assert record.last_fetched_at == FETCHED_AT

    def test_register_rows_keep_source_order(self):
        record = extract(case_page(CASE_ID, actions=3), CASE_ID)

        assert [(a.date, a.action, a.description, a.filed_by) for a in record.register_of_actions] == [
            ("2024-01-15", "Filing 1", "Document 1 filed", "Petitioner"),
            ("2024-02-15", "Filing 2", "Document 2 filed", "Petitioner"),
            ("2024-03-15", "Filing 3", "Document 3 filed", "Petitioner"),
        ]

    def test_upcoming_events_with_and_without_virtual_info(self):
        page = case_page(
            CASE_ID,
            hearings=[
                {"date": "6/3/2024", "time": "9:00 AM", "type": "Review Hearing"},
                {"date": "7/15/2024", "time": "1:30 PM", "type": "Trial", "virtual": ZOOM_CELL},
            ],
        )

        record = extract(page, CASE_ID)

        first, second = record.upcoming_events
        assert (first.date, first.time, first.event_type) == ("2024-06-03", "9:00 AM", "Review Hearing")
        assert first.department == "Dept 602"
        assert first.judge == "Hon. Maria Lopez"
        assert first.virtual_info is None
        assert (second.date, second.time, second.event_type) == ("2024-07-15", "1:30 PM", "Trial")
        assert second.virtual_info is not None
        assert second.virtual_info.meeting_id == "1234567890"
        assert second.virtual_info.passcode == "555111"
        assert second.virtual_info.link == "https://sdcourt.zoomgov.com/j/1234567890"

    def test_script_content_is_ignored(self):
        """The page script mentions a closed status; only visible text counts."""

        record = extract(case_page(CASE_ID, status="Active"), CASE_ID)

        assert record.status is CaseStatus.ACTIVE


class TestUnknownSentinels:
    def test_absent_fields_stay_unknown(self):
        page = "<html><body><p>Case Number: 22FL001581C</p><p>Case Title: DOE, JANE vs DOE, JOHN</p></body></html>"

        record = extract(page, CASE_ID)

        assert record.status is CaseStatus.UNKNOWN
        assert record.filed_date == UNKNOWN
        assert record.department == UNKNOWN
        assert record.judge == UNKNOWN
        assert record.register_of_actions == []
        assert record.upcoming_events == []
        assert record.parties == ["DOE, JANE", "DOE, JOHN"]

    def test_case_type_comes_from_confirmed_case_number(self):
        page = "<p>Case Number: 22FL001581C</p><p>Case Title: DOE vs DOE</p>"

        assert extract(page, CASE_ID).case_type == "Family Law"

    def test_case_type_unknown_when_number_not_in_content(self):
        page = "<p>Case Title: DOE, JANE vs DOE, JOHN</p><p>Status: Pending</p>"

        record = extract(page, CASE_ID)

        assert record.case_id == CASE_ID
        assert record.case_type == UNKNOWN
        assert record.status is CaseStatus.PENDING

    def test_unrecognized_status_text_is_unknown(self):
        page = "<p>Case Number: 22FL001581C</p><p>Case Status: Under Review</p>"

        assert extract(page, CASE_ID).status is CaseStatus.UNKNOWN


class TestRejection:
    def test_page_without_title_or_case_number(self):
        page = "<html><body><p>Welcome to the court portal. Choose a service below.</p></body></html>"

        with pytest.raises(MalformedContentError):
            extract(page, CASE_ID)

    def test_page_about_another_case(self):
        page = "<p>Case Number: 23CV004411</p><p>Case Title: ACME LLC vs BROWN</p>"

        with pytest.raises(MalformedContentError) as excinfo:
            extract(page, CASE_ID)

        assert "other cases" in str(excinfo.value)

    def test_empty_result_page(self):
        with pytest.raises(MalformedContentError):
            extract(NO_RESULTS_PAGE, CASE_ID)

    def test_party_search_needs_a_case_number(self):
        page = "<p>Case Title: DOE vs DOE</p>"

        with pytest.raises(MalformedContentError):
            extract(page, "DOE", QueryIntent.PARTY_NAME)

    def test_blank_content(self):
        with pytest.raises(MalformedContentError):
            extract("   ", CASE_ID)


class TestCaseNumbers:
    def test_dashed_query_matches_dashed_content(self):
        page = "<p>Case Number: FL-2024-001234</p><p>Case Title: DOE vs ROE</p>"

        record = extract(page, "fl-2024-001234")

        assert record.case_id == "24FL001234"

    def test_party_search_picks_row_mentioning_query(self):
        record = extract(SEARCH_RESULTS_PAGE, "JONES", QueryIntent.PARTY_NAME)

        assert record.case_id == "21FL009876"
        assert record.title == "JONES, ANN vs JONES, BOB"
        assert record.case_type == "Family Law"
        assert record.status is CaseStatus.CLOSED
        assert record.filed_date == "2021-06-30"
        assert record.parties == ["JONES, ANN", "JONES, BOB"]

    def test_case_number_query_reads_its_own_result_row(self):
        record = extract(SEARCH_RESULTS_PAGE, "23CV004411")

        assert record.title == "ACME LLC vs BROWN"
        assert record.status is CaseStatus.PENDING
        assert record.case_type == "Civil Unlimited"


def test_plain_text_register_with_filed_by():
    content = textwrap.dedent(
        """
        Case Number: 22FL001581C
        Register of Actions
        1/3/2024 Request for Order filed by Respondent
        1/9/2024 Proof of Service
        """
    )

    record = extract(content, CASE_ID)

    assert [(a.date, a.action, a.filed_by) for a in record.register_of_actions] == [
        ("2024-01-03", "Request for Order", "Respondent"),
        ("2024-01-09", "Proof of Service", UNKNOWN),
    ]


class TestSections:
    NAV = "<ul><li><a href=\"/calendar\">Calendar</a></li><li><a href=\"/roa\">Register of Actions</a></li></ul>"

    def test_navigation_links_do_not_open_sections(self):
        page = case_page(CASE_ID).replace("<body>", "<body>" + self.NAV, 1)

        record = extract(page, CASE_ID)

        assert record.title == "SMITH, JANE vs SMITH, JOHN"
        assert record.status is CaseStatus.ACTIVE
        assert record.filed_date == "2022-03-07"
        assert record.judge == "Hon. Maria Lopez"
        assert len(record.register_of_actions) == 3

    def test_case_details_after_the_register_are_read(self):
        page = textwrap.dedent(
            """
            <html><body>
              <h2>Register of Actions</h2>
              <table>
                <tr><td>01/15/2024</td><td>Petition</td><td>Filed</td><td>Petitioner</td></tr>
              </table>
              <h2>Case Information</h2>
              <table>
                <tr><td>Case Number:</td><td>22FL001581C</td></tr>
                <tr><td>Case Title:</td><td>SMITH, JANE vs SMITH, JOHN</td></tr>
                <tr><td>Case Status:</td><td>Active</td></tr>
                <tr><td>Date Filed:</td><td>3/7/2022</td></tr>
                <tr><td>Judicial Officer:</td><td>Hon. Maria Lopez</td></tr>
              </table>
            </body></html>
            """
        )

        record = extract(page, CASE_ID)

        assert record.title == "SMITH, JANE vs SMITH, JOHN"
        assert record.status is CaseStatus.ACTIVE
        assert record.filed_date == "2022-03-07"
        assert record.judge == "Hon. Maria Lopez"
        assert [a.action for a in record.register_of_actions] == ["Petition"]

    def test_footer_after_events_is_not_meeting_info(self):
        page = case_page(CASE_ID, hearings=[{"date": "6/3/2024", "time": "9:00 AM"}]).replace(
            "</body>", "<p>For Zoom hearings the passcode is sent by email.</p></body>"
        )

        (hearing,) = extract(page, CASE_ID).upcoming_events

        assert hearing.virtual_info is None

    def test_meeting_details_under_an_event_row(self):
        content = textwrap.dedent(
            """
            Case Number: 22FL001581C
            Case Title: SMITH, JANE vs SMITH, JOHN
            Upcoming Events
            6/3/2024 9:00 AM Review Hearing
            Zoom Meeting ID: 123 456 7890 Passcode: 555111
            Please arrive early.
            """
        )

        (hearing,) = extract(content, CASE_ID).upcoming_events

        assert hearing.virtual_info is not None
        assert hearing.virtual_info.meeting_id == "1234567890"
        assert hearing.virtual_info.passcode == "555111"


class TestJsonPayloads:
    payload = {
        "results": [
            {"caseNumber": "23CV004411", "caseTitle": "ACME LLC vs BROWN", "status": "Pending"},
            {
                "case_number": "22FL001581C",
                "case_title": "SMITH vs SMITH",
                "case_status": "Open",
                "date_filed": "03/07/2022",
                "dept": "F-12",
                "judicialOfficer": "Hon. Maria Lopez",
                "petitioner": "SMITH, JANE",
                "respondent": "SMITH, JOHN",
                "actions": [
                    {"date": "01/15/2024", "action": "Petition", "description": "Filed", "filedBy": "Petitioner"}
                ],
                "events": [
                    {
                        "date": "2024-02-20",
                        "time": "9:00am",
                        "eventType": "Review Hearing",
                        "department": "602",
                        "judge": "Hon. Maria Lopez",
                        "virtualInfo": {"zoomId": "1234567890", "passcode": "555111"},
                    }
                ],
            },
        ]
    }

    def test_aliases_map_onto_record(self):
        record = extract(json.dumps(self.payload), CASE_ID, strategy="json-api")

        assert record.case_id == CASE_ID
        assert record.title == "SMITH vs SMITH"
        assert record.status is CaseStatus.ACTIVE
        assert record.filed_date == "2022-03-07"
        assert record.department == "F-12"
        assert record.judge == "Hon. Maria Lopez"
        assert record.parties == ["SMITH, JANE", "SMITH, JOHN"]
        assert record.case_type == "Family Law"
        assert record.register_of_actions[0].filed_by == "Petitioner"
        event = record.upcoming_events[0]
        assert (event.date, event.time, event.event_type) == ("2024-02-20", "9:00 AM", "Review Hearing")
        assert event.virtual_info is not None
        assert event.virtual_info.meeting_id == "1234567890"

    def test_missing_entry_is_rejected(self):
        with pytest.raises(MalformedContentError):
            extract(json.dumps(self.payload), "24CR000001")


class TestLooksLikeCase:
    def test_case_page_is_accepted(self):
        assert looks_like_case(case_page(CASE_ID), CASE_ID)

    def test_empty_result_page_is_not(self):
        assert not looks_like_case(NO_RESULTS_PAGE, CASE_ID)

    def test_other_case_is_not(self):
        assert not looks_like_case("<p>Case Number: 23CV004411</p>", CASE_ID)

    def test_party_search_needs_any_case_number(self):
        assert looks_like_case(SEARCH_RESULTS_PAGE, "JONES", QueryIntent.PARTY_NAME)
        assert not looks_like_case("<p>No parties</p>", "JONES", QueryIntent.PARTY_NAME)

    def test_json_payload(self):
        assert looks_like_case(json.dumps(TestJsonPayloads.payload), CASE_ID)
        assert not looks_like_case(json.dumps(TestJsonPayloads.payload), "24CR000001")


def test_flatten_turns_rows_into_pipe_lines():
    html = "<table><tr><th>Date</th><th>Action</th></tr><tr><td>1/2/2024</td><td>Filed</td></tr></table>"

    assert flatten_markup(html) == ["Date | Action", "1/2/2024 | Filed"]


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("3/7/2022", "2022-03-07"),
        ("12/31/2023", "2023-12-31"),
        ("2024-02-20", "2024-02-20"),
        ("2024-02-20T10:00:00", "2024-02-20"),
        ("January 5, 2024", "2024-01-05"),
        ("Jan 5, 2024", "2024-01-05"),
        ("", UNKNOWN),
        ("sometime soon", UNKNOWN),
    ],
)
def test_normalize_date(raw: str, expected: str):
    assert normalize_date(raw) == expected


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("9:00 AM", "9:00 AM"),
        ("09:00am", "9:00 AM"),
        ("1:30 p.m.", "1:30 PM"),
        ("13:30", "13:30"),
        ("", UNKNOWN),
        ("noon", UNKNOWN),
    ],
)
def test_normalize_time(raw: str, expected: str):
    assert normalize_time(raw) == expected
