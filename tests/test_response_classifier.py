"""
Tests for the single response classifier.

Fixture markup is inline so the signature table can be exercised without any
network access.
"""

from __future__ import annotations

import textwrap

import pytest
import requests

from docketwatch.classifier import ResponseKind, classify_response
from tests.helpers import CLOUDFLARE_PAGE, NO_RESULTS_PAGE, case_page

INCAPSULA_PAGE = textwrap.dedent(
    """
    <html><head><META NAME="robots" CONTENT="noindex,nofollow"></head>
    <body><iframe src="/_Incapsula_Resource?CWUDNSAI=9&xinfo=1"></iframe>
    Request unsuccessful. Incapsula incident ID: 1234-5678</body></html>
    """
)

AKAMAI_PAGE = textwrap.dedent(
    """
    <HTML><HEAD><TITLE>Access Denied</TITLE></HEAD><BODY>
    <H1>Access Denied</H1>
    You don't have permission to access this server.
    Reference #18.6f0a1c17.1714560000.2b3c4d5e
    </BODY></HTML>
    """
)

PROHIBITED_IP_PAGE = "<html><body>Error 1000: DNS points to prohibited IP. Cloudflare</body></html>"

CAPTCHA_PAGE = textwrap.dedent(
    """
    <html><body>
    <form action="/verify"><div class="g-recaptcha" data-sitekey="abc"></div></form>
    </body></html>
    """
)

SEARCH_FORM_PAGE = textwrap.dedent(
    """
    <html><body>
      <h1>Online Services</h1>
      <form method="post" action="/search">
        <input type="hidden" name="csrf_token" value="tok-123">
        <label>Search by party name or number</label>
        <input name="partyName"><button>Search</button>
      </form>
      <p>Please enter search criteria above. Results will be displayed below the form
      once a search has been submitted. Some records may be restricted by law.</p>
    </body></html>
    """
)


@pytest.mark.parametrize(
    "body, signature",
    [
        (CLOUDFLARE_PAGE, "cloudflare_interstitial"),
        ("<html><script>window._cf_chl_opt={}</script></html>", "cloudflare_challenge"),
        ("<title>Attention Required! | Cloudflare</title>", "cloudflare_block"),
        (PROHIBITED_IP_PAGE, "cloudflare_prohibited_ip"),
        (INCAPSULA_PAGE, "incapsula"),
        (AKAMAI_PAGE, "akamai_denied"),
        (CAPTCHA_PAGE, "captcha"),
    ],
)
def test_bot_challenge_signatures(body: str, signature: str):
    result = classify_response(200, body)

    assert result.kind is ResponseKind.BOT_CHALLENGE
    assert signature in result.reason


@pytest.mark.parametrize("status_code", [401, 403])
def test_access_denied_statuses_are_challenges(status_code: int):
    assert classify_response(status_code, "Forbidden").kind is ResponseKind.BOT_CHALLENGE


@pytest.mark.parametrize("status_code", [408, 429, 500, 502, 503, 504, 522])
def test_retryable_statuses_are_transient(status_code: int):
    assert classify_response(status_code, "<html>busy</html>").kind is ResponseKind.TRANSIENT_ERROR


def test_challenge_signature_wins_over_status():
    """A 503 that carries the Cloudflare interstitial is a challenge, not an outage."""

    assert classify_response(503, CLOUDFLARE_PAGE).kind is ResponseKind.BOT_CHALLENGE


@pytest.mark.parametrize(
    "error",
    [requests.Timeout("read timed out"), requests.ConnectionError("reset by peer")],
)
def test_request_errors_are_transient(error: Exception):
    result = classify_response(None, error=error)

    assert result.kind is ResponseKind.TRANSIENT_ERROR
    assert type(error).__name__ in result.reason


class TestNotFound:
    def test_empty_result_page(self):
        result = classify_response(200, NO_RESULTS_PAGE, query="22FL001581C")

        assert result.kind is ResponseKind.NOT_FOUND
        assert "no_cases" in result.reason

    @pytest.mark.parametrize("status_code", [404, 410])
    def test_missing_resource(self, status_code: int):
        assert classify_response(status_code, "").kind is ResponseKind.NOT_FOUND

    def test_tiny_body_without_query(self):
        assert classify_response(200, "<html></html>", query="22FL001581C").kind is ResponseKind.NOT_FOUND

    def test_bare_search_form(self):
        result = classify_response(200, SEARCH_FORM_PAGE, query="22FL001581C")

        assert result.kind is ResponseKind.NOT_FOUND
        assert "search form" in result.reason


class TestSuccess:
    def test_case_page(self):
        result = classify_response(200, case_page(), query="22FL001581C")

        assert result.kind is ResponseKind.SUCCESS

    def test_short_body_mentioning_query(self):
        body = "<p>22FL001581C SMITH vs SMITH</p>"

        assert classify_response(200, body, query="22FL001581C").kind is ResponseKind.SUCCESS

    def test_case_page_with_empty_table_message(self):
        body = case_page("22FL001581C") + "<table><tr><td>No records found.</td></tr></table>"

        result = classify_response(200, body, query="22FL001581C")

        assert result.kind is ResponseKind.SUCCESS

    def test_name_search_listing_a_case_with_empty_section(self):
        body = case_page("22FL001581C").replace("</body>", "<p>No matching records found.</p></body>")

        assert classify_response(200, body, query="SMITH, JANE").kind is ResponseKind.SUCCESS


def test_empty_result_mentioning_another_case_is_not_found():
    body = NO_RESULTS_PAGE.replace("</body>", "<p>Recently viewed: 23CV004411</p></body>")

    result = classify_response(200, body, query="22FL001581C")

    assert result.kind is ResponseKind.NOT_FOUND
    assert "no_cases" in result.reason
