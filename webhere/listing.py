import html
import logging
import os
from pathlib import Path
from urllib.parse import quote

from .templates import DIR_LIST_END, DIR_LIST_START

logger = logging.getLogger(__name__)


def _entry_link(root: Path, entry: os.DirEntry) -> str:
    path = Path(entry.path)
    is_dir = entry.is_dir()
    suffix = "/" if is_dir else ""
    rel = path.relative_to(root).as_posix()
    href = "/" + quote(rel) + suffix
    label = html.escape(entry.name) + suffix
    return f'<a href="{html.escape(href)}">{label}</a>'


def render_listing(root: Path, directory: Path) -> str:
    """
    Render an HTML page linking to the immediate children of directory.

    Hrefs are absolute from the served root. Entries are sorted by name,
    case-insensitively. A directory that cannot be read produces an inline
    message instead of an error.
    """
    root = root.resolve()
    lines = []
    try:
        with os.scandir(directory.resolve()) as entries:
            children = sorted(entries, key=lambda e: (e.name.lower(), e.name))
        for entry in children:
            try:
                lines.append(_entry_link(root, entry))
            except UnicodeError:
                # Names that aren't valid UTF-8 can't be linked to.
                logger.debug("Skipping undecodable name %r in %s", entry.name, directory)
    except OSError as e:
        logger.debug("Cannot read dir %s: %s", directory, e)
        lines = [html.escape(f"Cannot read dir of '{directory}'")]

    body = "\n".join(lines)
    return f"{DIR_LIST_START}{body}{DIR_LIST_END}"
