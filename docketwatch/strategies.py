"""Ordered access strategies for the San Diego Superior Court case systems.

A strategy is data, not code: which upstream host it hits, the URL per query
intent, the header profile it presents and the optional warm-up or form page it
needs first. The fetcher walks the table in order, so adding, removing or
reordering strategies is an edit to ``DEFAULT_STRATEGIES`` or to the JSON file
named by ``STRATEGIES_FILE``.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from .errors import StrategyConfigError
from .models import QueryIntent
from .utils.log import get_logger

_LOG = get_logger(__name__)

_CHROME_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

# Stable identities: a strategy always presents the same header set.
HEADER_PROFILES: Dict[str, Dict[str, str]] = {
    "chrome_navigation": {
        "User-Agent": _CHROME_UA,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
        "Connection": "keep-alive",
        "Upgrade-Insecure-Requests": "1",
        "Sec-Fetch-Dest": "document",
        "Sec-Fetch-Mode": "navigate",
        "Sec-Fetch-Site": "same-origin",
        "Sec-Fetch-User": "?1",
    },
    "chrome_form": {
        "User-Agent": _CHROME_UA,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
        "Connection": "keep-alive",
        "Content-Type": "application/x-www-form-urlencoded",
        "Origin": "https://www.sdcourt.ca.gov",
    },
    "plain": {
        "User-Agent": _CHROME_UA,
        "Accept": "text/html,application/json;q=0.9,*/*;q=0.8",
    },
}

# Render proxies a strategy may route through; the target URL goes in ``url``.
PROXY_ENDPOINTS: Dict[str, Dict[str, str]] = {
    "scraperapi": {
        "endpoint": "https://api.scraperapi.com/",
        "render": "true",
        "country_code": "us",
    },
}


class Strategy(BaseModel):
    """One (upstream, query shape, header set) combination."""

    model_config = ConfigDict(frozen=True)

    name: str
    upstream: str
    method: str = "GET"
    urls: Dict[QueryIntent, str]
    form_fields: Dict[QueryIntent, str] = Field(default_factory=dict)
    header_profile: str = "chrome_navigation"
    referer: Optional[str] = None
    warm_url: Optional[str] = None
    form_page_url: Optional[str] = None
    proxy: Optional[str] = None
    requires_secret: Optional[str] = None
    timeout_seconds: Optional[float] = None

    def supports(self, intent: QueryIntent) -> bool:
        return intent in self.urls

    @property
    def headers(self) -> Dict[str, str]:
        headers = dict(HEADER_PROFILES[self.header_profile])
        if self.referer:
            headers["Referer"] = self.referer
        return headers


_ROA = "https://roasearch.sdcourt.ca.gov"
_ODYROA = "https://odyroa.sdcourt.ca.gov"
_COURT_INDEX = "https://courtindex.sdcourt.ca.gov"
_CASE_SEARCH = "https://www.sdcourt.ca.gov/sdcourt/generalinformation/courtrecords2/onlinecasesearch"

_CN = QueryIntent.CASE_NUMBER
_PARTY = QueryIntent.PARTY_NAME
_ATTY = QueryIntent.ATTORNEY_NAME

DEFAULT_STRATEGIES: Tuple[Strategy, ...] = (
    Strategy(
        name="roasearch-parties",
        upstream="roasearch",
        urls={
            _CN: _ROA + "/Parties?caseNumber={query}",
            _PARTY: _ROA + "/Parties?partyName={query}",
        },
        referer=_ROA + "/",
        warm_url=_ROA + "/",
    ),
    Strategy(
        name="roasearch-search",
        upstream="roasearch",
        urls={
            _CN: _ROA + "/search?search={query}",
            _PARTY: _ROA + "/search?search={query}",
            _ATTY: _ROA + "/search?search={query}",
        },
        referer=_ROA + "/",
        warm_url=_ROA + "/",
    ),
    Strategy(
        name="odyroa-parties",
        upstream="odyroa",
        urls={
            _CN: _ODYROA + "/Parties?caseNumber={query}",
            _PARTY: _ODYROA + "/Parties?partyName={query}",
        },
        referer=_ODYROA + "/",
        warm_url=_ODYROA + "/",
    ),
    Strategy(
        name="courtindex-parties",
        upstream="courtindex",
        urls={
            _CN: _COURT_INDEX + "/Parties?caseNumber={query}",
            _PARTY: _COURT_INDEX + "/Parties?partyName={query}",
        },
        referer=_COURT_INDEX + "/CISPublic/enter",
        warm_url=_COURT_INDEX + "/CISPublic/enter",
    ),
    Strategy(
        name="sdcourt-casesearch-get",
        upstream="sdcourt",
        urls={
            _CN: _CASE_SEARCH + "?caseNumber={query}",
            _PARTY: _CASE_SEARCH + "?partyName={query}",
            _ATTY: _CASE_SEARCH + "?attorneyName={query}",
        },
        referer=_CASE_SEARCH,
    ),
    Strategy(
        name="sdcourt-casesearch-post",
        upstream="sdcourt",
        method="POST",
        urls={_CN: _CASE_SEARCH, _PARTY: _CASE_SEARCH, _ATTY: _CASE_SEARCH},
        form_fields={_CN: "caseNumber", _PARTY: "partyName", _ATTY: "attorneyName"},
        header_profile="chrome_form",
        referer=_CASE_SEARCH,
        form_page_url=_CASE_SEARCH,
    ),
    Strategy(
        name="scraperapi-render",
        upstream="scraperapi",
        urls={
            _CN: _CASE_SEARCH + "?caseNumber={query}",
            _PARTY: _CASE_SEARCH + "?partyName={query}",
            _ATTY: _CASE_SEARCH + "?attorneyName={query}",
        },
        header_profile="plain",
        proxy="scraperapi",
        requires_secret="scraperapi_key",
        timeout_seconds=60.0,
    ),
)

_STRATEGY_LIST = TypeAdapter(List[Strategy])


def validate_strategies(strategies: Sequence[Strategy]) -> Tuple[Strategy, ...]:
    seen = set()
    for strategy in strategies:
        if strategy.name in seen:
            raise StrategyConfigError(f"duplicate strategy name {strategy.name!r}")
        seen.add(strategy.name)
        if strategy.header_profile not in HEADER_PROFILES:
            raise StrategyConfigError(
                f"strategy {strategy.name!r} uses unknown header profile {strategy.header_profile!r}"
            )
        if strategy.proxy and strategy.proxy not in PROXY_ENDPOINTS:
            raise StrategyConfigError(f"strategy {strategy.name!r} uses unknown proxy {strategy.proxy!r}")
        if strategy.method.upper() == "POST" and set(strategy.urls) - set(strategy.form_fields):
            raise StrategyConfigError(f"POST strategy {strategy.name!r} needs a form field per intent")
    if not strategies:
        raise StrategyConfigError("strategy table is empty")
    return tuple(strategies)


def load_strategies(path: Optional[str | Path] = None) -> Tuple[Strategy, ...]:
    """Return the strategy table from ``path`` (a JSON list) or the defaults."""

    if path is None:
        return DEFAULT_STRATEGIES
    source = Path(path).expanduser()
    try:
        raw = json.loads(source.read_text(encoding="utf-8"))
        strategies = _STRATEGY_LIST.validate_python(raw)
    except (OSError, ValueError, ValidationError) as exc:
        raise StrategyConfigError(f"cannot load strategies from {source}: {exc}") from exc
    table = validate_strategies(strategies)
    _LOG.info("Loaded %d strategies from %s", len(table), source)
    return table
