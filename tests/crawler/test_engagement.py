from __future__ import annotations

import logging

import pytest

from newsrank import config
from newsrank.crawler.engagement import MAX_PAGES, EngagementAggregator
from newsrank.crawler.types import ArticleRecord, EngagementSample
from tests.helpers.fakes import FakeAdapter

ARTICLE = ArticleRecord(article_id="20240301000001", title="t", url="u")


@pytest.mark.asyncio
async def test_paging_is_capped_at_max_pages():
    # 2000 comments of 1 reaction each, more than the cap can reach
    pages = {ARTICLE.article_id: [[1] * 100 for _ in range(25)]}
    adapter = FakeAdapter(pages=pages)

    sample = await EngagementAggregator(client=None, max_pages=20).measure(
        adapter, ARTICLE
    )

    assert len(adapter.engagement_calls) == 20
    assert [index for _, index in adapter.engagement_calls] == list(range(20))
    assert sample == EngagementSample(reactions=2000, comments=2000)


@pytest.mark.asyncio
async def test_short_page_stops_paging():
    pages = {ARTICLE.article_id: [[1] * 100, [2, 3], [50] * 100]}
    adapter = FakeAdapter(pages=pages)

    sample = await EngagementAggregator(client=None).measure(adapter, ARTICLE)

    assert len(adapter.engagement_calls) == 2
    assert sample == EngagementSample(reactions=105, comments=102)


@pytest.mark.asyncio
async def test_full_last_page_costs_one_empty_request():
    adapter = FakeAdapter(pages={ARTICLE.article_id: [[0] * 100]})

    sample = await EngagementAggregator(client=None).measure(adapter, ARTICLE)

    assert len(adapter.engagement_calls) == 2
    assert sample == EngagementSample(reactions=0, comments=100)


@pytest.mark.asyncio
async def test_no_comments_is_zero():
    adapter = FakeAdapter()

    sample = await EngagementAggregator(client=None).measure(adapter, ARTICLE)

    assert sample == EngagementSample()
    assert len(adapter.engagement_calls) == 1


@pytest.mark.asyncio
async def test_failure_zeroes_the_article_and_logs_a_warning(caplog):
    adapter = FakeAdapter(
        pages={ARTICLE.article_id: [[5] * 100]},
        failing_articles={ARTICLE.article_id},
    )

    with caplog.at_level(logging.WARNING):
        sample = await EngagementAggregator(client=None).measure(adapter, ARTICLE)

    assert sample == EngagementSample(reactions=0, comments=0)
    assert ARTICLE.article_id in caplog.text


@pytest.mark.asyncio
async def test_configured_page_limit_cannot_exceed_hard_cap(monkeypatch):
    monkeypatch.setattr(config, "ENGAGEMENT_MAX_PAGES", 50)
    pages = {ARTICLE.article_id: [[1] * 100 for _ in range(30)]}
    adapter = FakeAdapter(pages=pages)

    aggregator = EngagementAggregator(client=None)
    sample = await aggregator.measure(adapter, ARTICLE)

    assert aggregator.max_pages == MAX_PAGES == 20
    assert len(adapter.engagement_calls) == 20
    assert sample == EngagementSample(reactions=2000, comments=2000)
