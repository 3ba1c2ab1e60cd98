"""Slash-separated remote path helpers.

Every function here is pure. Internal callers always pass absolute paths built
by navigation, so only `normalize` validates; it is meant for raw input at the
HTTP boundary.
"""
from pathlib import PurePosixPath
from typing import List

from panelfiles.models import Breadcrumb

ROOT = "/"
ROOT_LABEL = "Root"


def normalize(path: str) -> str:
    raw = path or ROOT
    clean = raw.strip() or ROOT
    target = PurePosixPath(ROOT).joinpath(PurePosixPath(clean.lstrip("/")))
    if ".." in target.parts:
        raise ValueError(f"Path traversal detected: {path}")
    result = target.as_posix()
    if len(result) > 1 and result.endswith("/"):
        result = result.rstrip("/")
    return result or ROOT


def segments(path: str) -> List[str]:
    return [part for part in path.split("/") if part]


def join(base: str, segment: str) -> str:
    if base == ROOT:
        return f"/{segment}"
    return f"{base}/{segment}"


def join_relative(base: str, relative: str) -> str:
    """Append a slash-separated relative path one segment at a time."""
    result = base
    for part in segments(relative):
        result = join(result, part)
    return result


def parent(path: str) -> str:
    parts = segments(path)
    if len(parts) <= 1:
        return ROOT
    return "/" + "/".join(parts[:-1])


def basename(path: str) -> str:
    parts = segments(path)
    return parts[-1] if parts else ""


def depth(path: str) -> int:
    return len(segments(path))


def breadcrumbs(path: str) -> List[Breadcrumb]:
    crumbs = [Breadcrumb(label=ROOT_LABEL, path=ROOT)]
    current = ROOT
    for part in segments(path):
        current = join(current, part)
        crumbs.append(Breadcrumb(label=part, path=current))
    return crumbs
