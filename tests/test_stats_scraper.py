from __future__ import annotations

import json

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from netmon.core.nodes import NodeRecord
from netmon.core.stats_scraper import HTTPNodesStatsScraper, ScrapeError

NODES = {
    "mainnet-aws-fr-4.wavesnodes.com": {
        "netbyte": "W",
        "height": 2878787,
        "statehash": "801c38b4960d45125e621aa718a68aa6db74bd25c09c9373c17daa49cac04cfe",
        "statehash_height": 2878785,
        "version": "Waves v1.3.10-12-g2fb491a",
    },
    "testnet-htz-nbg1-2.wavesnodes.com": {
        "netbyte": "T",
        "height": 1813844,
        "statehash": "5d11b19998ff03f4e9ab2fb5d55588050d3973806542cf3feeac0964efbec531",
        "statehash_height": 1813842,
        "version": "Waves v1.3.9-1-gca8c26b",
    },
}


def stats_app(body: bytes, status: int = 200) -> web.Application:
    async def handler(request: web.Request) -> web.Response:
        return web.Response(body=body, status=status, content_type="application/json")

    app = web.Application()
    app.router.add_get("/", handler)
    return app


@pytest.mark.asyncio
async def test_scrape_node_stats():
    async with TestServer(stats_app(json.dumps(NODES).encode())) as server:
        async with HTTPNodesStatsScraper(str(server.make_url("/"))) as scraper:
            nodes = await scraper.scrape_node_stats()

    actual = sorted(nodes, key=lambda n: n.domain)
    assert actual == [
        NodeRecord(
            domain="mainnet-aws-fr-4.wavesnodes.com",
            height=2878787,
            state_hash="801c38b4960d45125e621aa718a68aa6db74bd25c09c9373c17daa49cac04cfe",
            state_hash_height=2878785,
            version="Waves v1.3.10-12-g2fb491a",
            net_byte="W",
        ),
        NodeRecord(
            domain="testnet-htz-nbg1-2.wavesnodes.com",
            height=1813844,
            state_hash="5d11b19998ff03f4e9ab2fb5d55588050d3973806542cf3feeac0964efbec531",
            state_hash_height=1813842,
            version="Waves v1.3.9-1-gca8c26b",
            net_byte="T",
        ),
    ]


@pytest.mark.asyncio
async def test_scrape_without_started_session():
    async with TestServer(stats_app(json.dumps(NODES).encode())) as server:
        scraper = HTTPNodesStatsScraper(str(server.make_url("/")))
        nodes = await scraper.scrape_node_stats()

    assert len(nodes) == 2
    assert scraper.session is None


@pytest.mark.asyncio
async def test_scrape_bad_status():
    async with TestServer(stats_app(b"oops", status=502)) as server:
        async with HTTPNodesStatsScraper(str(server.make_url("/"))) as scraper:
            with pytest.raises(ScrapeError, match="502"):
                await scraper.scrape_node_stats()


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [
    b"{not json",
    b"[1, 2, 3]",
    b'{"node": {"height": "high"}}',
])
async def test_scrape_malformed_document(body):
    async with TestServer(stats_app(body)) as server:
        async with HTTPNodesStatsScraper(str(server.make_url("/"))) as scraper:
            with pytest.raises(ScrapeError):
                await scraper.scrape_node_stats()


@pytest.mark.asyncio
async def test_scrape_response_size_is_limited():
    body = json.dumps(NODES).encode()
    async with TestServer(stats_app(body)) as server:
        async with HTTPNodesStatsScraper(str(server.make_url("/")), max_response_size=len(body) // 2) as scraper:
            # truncated document can't be decoded
            with pytest.raises(ScrapeError):
                await scraper.scrape_node_stats()


@pytest.mark.parametrize("kwargs", [
    {"max_response_size": 0},
    {"timeout": 0},
])
def test_invalid_scraper_options(kwargs):
    with pytest.raises(ValueError):
        HTTPNodesStatsScraper("http://localhost/", **kwargs)
