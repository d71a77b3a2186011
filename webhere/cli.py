import argparse
import logging
import sys

from aiohttp import web

from . import __version__
from .config import DEFAULT_PORT, ServerConfig
from .server import RequestLogger, create_app
from .templates import LIVE_JS_PATH
from .watcher import WatchError

logger = logging.getLogger("webhere")


def build_parser():
    parser = argparse.ArgumentParser(
        prog="webhere", description="Simple static file web serving with live reload"
    )
    parser.add_argument("root", nargs="?", help="directory to serve (default ./)")
    parser.add_argument("-d", "--dir", help="directory to serve, same as ROOT")
    # Kept as a string so a bad value falls back to the default port.
    parser.add_argument("-p", "--port", help=f"port (default {DEFAULT_PORT})")
    parser.add_argument(
        "-l", "--live", action="store_true", help="add the live reload script tag to served html files"
    )
    parser.add_argument("--public", action="store_true", help="listen on all interfaces, not just localhost")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def log_banner(config):
    logger.info("Starting webhere server http://localhost:%d/ at dir %s", config.port, config.root)
    if config.live:
        logger.info("\tlive mode on.")
    else:
        logger.info(
            "\tFor live mode add '<script src=\"%s\"></script>' to htmls,\n"
            "\tor run command with 'webhere -l' to automatically add script tag to all served html files.",
            LIVE_JS_PATH,
        )


def main(argv=None):
    args = build_parser().parse_args(argv)
    config = ServerConfig.from_args(args)

    logging.basicConfig(level=logging.DEBUG if config.verbose else logging.INFO, format="%(message)s")
    # watchdog is chatty at debug level
    logging.getLogger("watchdog").setLevel(logging.INFO)

    if not config.root.is_dir():
        logger.error("Cannot serve '%s': not a directory", config.root)
        return 1

    app = create_app(config)
    log_banner(config)
    try:
        web.run_app(
            app,
            host=config.host,
            port=config.port,
            access_log_class=RequestLogger,
            print=None,
        )
    except WatchError as e:
        logger.error("%s", e)
        return 1
    except OSError as e:
        logger.error("Cannot listen on %s:%d: %s", config.host, config.port, e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
