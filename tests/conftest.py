"""
Shared pytest fixtures for webhere tests.
"""
import asyncio

import pytest

from webhere.config import ServerConfig
from webhere.server import create_app


@pytest.fixture
def site(tmp_path):
    """A small served tree.

    site/
        index.html
        readme          (extensionless, "hi")
        a.txt
        logo.png
        sub/
            page.HTML
    """
    root = tmp_path / "site"
    root.mkdir()
    (root / "index.html").write_text("<h1>Index</h1>", encoding="utf-8")
    (root / "readme").write_text("hi", encoding="utf-8")
    (root / "a.txt").write_text("plain text", encoding="utf-8")
    (root / "logo.png").write_bytes(b"\x89PNG\r\n\x1a\n\x00\x01\x02")
    (root / "sub").mkdir()
    (root / "sub" / "page.HTML").write_text("<p>page</p>", encoding="utf-8")
    return root.resolve()


@pytest.fixture
def make_client(aiohttp_client):
    """Factory returning a test client for a webhere app serving a directory."""

    async def _make(root, live=False, watch=False, broadcaster=None):
        config = ServerConfig(root=root, live=live)
        app = create_app(config, broadcaster=broadcaster, watch=watch)
        return await aiohttp_client(app)

    return _make


async def wait_for_subscribers(broadcaster, count, timeout=2.0):
    """Wait until the broadcaster has exactly `count` subscriptions."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while broadcaster.subscriber_count != count:
        if loop.time() > deadline:
            raise AssertionError(
                f"expected {count} subscriber(s), have {broadcaster.subscriber_count}"
            )
        await asyncio.sleep(0.01)
