import asyncio
import functools
import logging
from pathlib import Path

from aiohttp import web
from aiohttp.abc import AbstractAccessLogger

from .broadcast import ChangeBroadcaster
from .config import ServerConfig
from .listing import render_listing
from .live import BROADCASTER_KEY, live_js_handler, live_ws_handler
from .paths import Directory, ExtensionlessFile, HtmlFile, Ordinary, classify, resolve_target
from .templates import LIVE_JS_PATH, LIVE_SCRIPT_TAG, LIVE_WS_PATH
from .watcher import FileSystemWatcher

logger = logging.getLogger(__name__)

CONFIG_KEY = web.AppKey("config", ServerConfig)


# -------- Special files (directories, extensionless and html files) --------
def handle_special(classification, live_mode):
    """
    Build the response for a special path, or None when it isn't one.

    None means the request should be served as an ordinary static file.
    """
    if isinstance(classification, Directory):
        html = render_listing(classification.root, classification.target)
        return web.Response(text=html, content_type="text/html")

    if isinstance(classification, (ExtensionlessFile, HtmlFile)):
        try:
            html = classification.target.read_bytes().decode("utf-8")
        except (OSError, UnicodeDecodeError):
            logger.exception("Cannot read %s", classification.target)
            raise web.HTTPInternalServerError(text=f"Cannot read '{classification.target.name}'")
        if live_mode:
            html += LIVE_SCRIPT_TAG
        return web.Response(text=html, content_type="text/html")

    if isinstance(classification, Ordinary):
        return None

    raise TypeError(f"Unknown path classification {classification!r}")


# -------- Static files --------
def serve_static(root: Path, request_path: str):
    file_path = resolve_target(root, request_path)
    if file_path is None or not file_path.is_file():
        raise web.HTTPNotFound()
    return web.FileResponse(file_path)


# -------- HTTP handler --------
async def file_handler(request):
    config = request.app[CONFIG_KEY]
    path = request.match_info.get("path", "")

    response = handle_special(classify(config.root, path), config.live)
    if response is None:
        response = serve_static(config.root, path)
    return response


# -------- Request log --------
class RequestLogger(AbstractAccessLogger):
    def log(self, request, response, time):
        self.logger.info(
            " %s %s %s (%.3fms)", request.method, response.status, request.path, time * 1000.0
        )


# -------- Watcher --------
async def watch_root(app):
    """Run the filesystem watcher for the app's lifetime."""
    broadcaster = app[BROADCASTER_KEY]
    loop = asyncio.get_running_loop()
    watcher = FileSystemWatcher(
        app[CONFIG_KEY].root,
        functools.partial(loop.call_soon_threadsafe, broadcaster.publish),
    )
    watcher.start()
    yield
    await loop.run_in_executor(None, watcher.stop)


async def _close_broadcaster(app):
    # Ends every live connection's forwarding loop.
    app[BROADCASTER_KEY].close()


def create_app(config: ServerConfig, broadcaster=None, watch=True) -> web.Application:
    app = web.Application()
    app[CONFIG_KEY] = config
    app[BROADCASTER_KEY] = broadcaster if broadcaster is not None else ChangeBroadcaster()

    app.router.add_get(LIVE_JS_PATH, live_js_handler)
    app.router.add_get(LIVE_WS_PATH, live_ws_handler)
    app.router.add_get("/{path:.*}", file_handler)

    if watch:
        app.cleanup_ctx.append(watch_root)
    app.on_shutdown.append(_close_broadcaster)
    return app
