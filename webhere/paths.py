"""
Request path classification.

Decides, per request, whether the target is answered with a directory
listing, served as script-injected text, or handed to plain static transfer.
Only filesystem metadata is consulted, file contents are never read.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union


@dataclass(frozen=True)
class _SpecialPath:
    root: Path
    target: Path


class Directory(_SpecialPath):
    pass


class ExtensionlessFile(_SpecialPath):
    pass


class HtmlFile(_SpecialPath):
    pass


@dataclass(frozen=True)
class Ordinary:
    pass


PathClassification = Union[Directory, ExtensionlessFile, HtmlFile, Ordinary]


def resolve_target(root: Path, request_path: str) -> Optional[Path]:
    """Join a request path onto root, or None if it escapes root."""
    web_path = request_path.lstrip("/")
    try:
        target = (root / web_path).resolve()
        target.relative_to(root.resolve())
    except (OSError, ValueError, RuntimeError):
        # ValueError covers both "outside root" and embedded NUL bytes
        return None
    return target


def classify(root: Path, request_path: str) -> PathClassification:
    target = resolve_target(root, request_path)
    if target is None:
        return Ordinary()

    try:
        if target.is_dir():
            return Directory(root, target)
        if not target.is_file():
            return Ordinary()
    except OSError:
        return Ordinary()

    ext = os.path.splitext(target.name)[1]
    if not ext:
        return ExtensionlessFile(root, target)
    if ext[1:].lower() == "html":
        return HtmlFile(root, target)
    return Ordinary()
