"""Server configuration built from command line arguments."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_PORT = 8080
DEFAULT_WEB_FOLDER = "./"

LOCAL_HOST = "127.0.0.1"
PUBLIC_HOST = "0.0.0.0"


def parse_port(value: Optional[str]) -> int:
    """Parse a port number, falling back to DEFAULT_PORT on anything invalid."""
    if value is None:
        return DEFAULT_PORT
    try:
        port = int(str(value).strip())
    except ValueError:
        logger.debug("Ignoring invalid port %r, using %d", value, DEFAULT_PORT)
        return DEFAULT_PORT
    if not 0 <= port <= 65535:
        logger.debug("Ignoring out of range port %r, using %d", value, DEFAULT_PORT)
        return DEFAULT_PORT
    return port


@dataclass(frozen=True)
class ServerConfig:
    root: Path
    live: bool = False
    public: bool = False
    port: int = DEFAULT_PORT
    verbose: bool = False

    @property
    def host(self) -> str:
        return PUBLIC_HOST if self.public else LOCAL_HOST

    @classmethod
    def from_args(cls, args) -> "ServerConfig":
        root = args.dir or args.root or DEFAULT_WEB_FOLDER
        return cls(
            root=Path(root).expanduser().resolve(),
            live=args.live,
            public=args.public,
            port=parse_port(args.port),
            verbose=args.verbose,
        )
