"""Tests for the service wiring."""

import pytest

from subreddit_trends.collector.resolver import API_ABOUT_URL
from subreddit_trends.errors import SubredditNotFound
from subreddit_trends.models import Provenance
from subreddit_trends.service import TrendsService
from tests.stubs import FakeUpstream, json_response, listing_payload, make_config, oauth_config

API_TOP = "https://api.reddit.com/r/Cooking/top"


@pytest.fixture
def upstream():
    about_url = API_ABOUT_URL.format(name="cooking")
    return FakeUpstream({
        about_url: json_response(about_url, {"data": {"display_name": "Cooking", "subreddit_type": "public"}}),
        API_TOP: json_response(API_TOP, listing_payload(8)),
    })


@pytest.fixture
def service(upstream):
    return TrendsService.from_config(make_config(), client=upstream)


def test_default_chain(service):
    assert service.fetcher.stage_names == ["oauth", "json", "rss", "html"]
    assert not service.token_manager.configured


def test_oauth_configured():
    service = TrendsService.from_config(oauth_config(), client=FakeUpstream())

    assert service.token_manager.configured


@pytest.mark.asyncio
async def test_trending_uses_canonical_name(service, upstream):
    posts = await service.trending("r/cooking", "week")

    assert len(posts) == 5
    assert posts[0].provenance is Provenance.JSON
    assert API_TOP in upstream.urls()


@pytest.mark.asyncio
async def test_trending_unknown_subreddit(service, upstream):
    with pytest.raises(SubredditNotFound) as exc_info:
        await service.trending("doesnotexist123", "week")

    assert exc_info.value.name == "doesnotexist123"
    assert not any("/top" in url for url in upstream.urls())


@pytest.mark.asyncio
async def test_cached_fetch_makes_no_network_calls(service, upstream):
    await service.fetch_top("Cooking", "week")
    calls = len(upstream.calls)

    posts = await service.fetch_top("Cooking", "week")

    assert len(posts) == 5
    assert len(upstream.calls) == calls


@pytest.mark.asyncio
async def test_context_manager_closes_client(upstream):
    async with TrendsService.from_config(make_config(), client=upstream) as service:
        await service.resolve("cooking")

    assert upstream.closed
