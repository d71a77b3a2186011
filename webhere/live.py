"""Live reload endpoints: the client script and its websocket."""

import asyncio
import logging

from aiohttp import WSMsgType, web

from .broadcast import ChangeBroadcaster
from .templates import live_js_content

logger = logging.getLogger(__name__)

BROADCASTER_KEY = web.AppKey("broadcaster", ChangeBroadcaster)

CHANGED_MESSAGE = "server_files_changed"


async def live_js_handler(request):
    return web.Response(
        body=live_js_content().encode("utf-8"),
        headers={"Content-Type": "text/javascript;charset=UTF-8"},
    )


async def forward_changes(ws, subscription):
    """Send a reload message for every change signal until something fails."""
    # A lag counts as a signal, iteration stops when the channel closes.
    async for _ in subscription:
        try:
            await ws.send_str(CHANGED_MESSAGE)
        except (ConnectionError, RuntimeError) as e:
            logger.debug("Live connection send failed: %s", e)
            return


async def _drain(ws):
    # Client payloads are ignored, reading only processes close frames.
    async for msg in ws:
        if msg.type == WSMsgType.ERROR:
            logger.debug("Live connection error: %s", ws.exception())
            break


async def live_ws_handler(request):
    ws = web.WebSocketResponse()
    await ws.prepare(request)

    broadcaster = request.app[BROADCASTER_KEY]
    with broadcaster.subscribe() as subscription:
        logger.debug("Live connection opened (%d open)", broadcaster.subscriber_count)
        forward = asyncio.create_task(forward_changes(ws, subscription))
        drain = asyncio.create_task(_drain(ws))
        try:
            await asyncio.wait({forward, drain}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (forward, drain):
                task.cancel()
            await asyncio.gather(forward, drain, return_exceptions=True)

    await ws.close()
    logger.debug("Live connection closed (%d open)", broadcaster.subscriber_count)
    return ws
