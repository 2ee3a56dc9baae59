# Refer – Semantic search over local files and web pages
# Copyright (c) 2026 4rce.com Digital Technologies GmbH.
# Use of this software is governed by the Business Source License 1.1. See LICENSE.md.

"""
Path/URL -> Document.

fetch_document() returns None for skip conditions (directories, binary
files) and raises FetchError when a path cannot be read. YouTube URLs are
indexed by their captions. expand_paths() turns a CLI argument into the
flat list of candidate paths, honoring .gitignore rules.
"""
from pathlib import Path
from typing import Optional

import httpx
import pathspec

from .errors import FetchError
from .models import Document
from .readers import extract_title, html_to_markdown, is_text_file
from .youtube import fetch_youtube, is_youtube_url

IGNORED_DIRS = {".git", ".jj"}
USER_AGENT = "refer/0.1"


def is_remote_url(path: str) -> bool:
    return path.startswith("http://") or path.startswith("https://")


def fetch_document(
    path: str, client: Optional[httpx.Client] = None, timeout: float = 30.0,
) -> Optional[Document]:
    if is_youtube_url(path):
        return fetch_youtube(path, client=client, timeout=timeout)
    if is_remote_url(path):
        return fetch_remote(path, client=client, timeout=timeout)
    return fetch_local(path)


def fetch_local(path: str) -> Optional[Document]:
    p = Path(path)
    try:
        if p.is_dir():
            return None
        p.stat()
        if not is_text_file(p):
            return None
        content = p.read_bytes().decode("utf-8", errors="replace")
    except OSError as e:
        raise FetchError(f"read file {path}: {e}") from e
    return Document(path=path, content=content, title=path, is_remote=False)


def fetch_remote(
    url: str, client: Optional[httpx.Client] = None, timeout: float = 30.0,
) -> Document:
    if client is None:
        with httpx.Client(
            timeout=timeout, follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
        ) as own_client:
            return fetch_remote(url, client=own_client, timeout=timeout)

    try:
        resp = client.get(url)
    except httpx.HTTPError as e:
        raise FetchError(f"fetch URL {url}: {e}") from e
    if not resp.is_success:
        raise FetchError(f"HTTP {resp.status_code}: {url}")

    body = resp.text
    content_type = resp.headers.get("content-type", "").lower()
    if "html" in content_type or (not content_type and body.lstrip().startswith("<")):
        content = html_to_markdown(body)
        title = extract_title(body)
    else:
        content = body
        title = ""

    return Document(
        path=url,
        content=content.strip(),
        title=title or url,
        is_remote=True,
    )


IgnoreRules = list[tuple[Path, pathspec.GitIgnoreSpec]]


def find_git_root(start: Path) -> Optional[Path]:
    """Closest directory at or above *start* holding a .git entry."""
    for d in [start, *start.parents]:
        if (d / ".git").exists():
            return d
    return None


def _read_gitignore(base: Path) -> Optional[tuple[Path, pathspec.GitIgnoreSpec]]:
    try:
        lines = (base / ".gitignore").read_text(errors="replace").splitlines()
    except OSError:
        return None
    return base, pathspec.GitIgnoreSpec.from_lines(lines)


def load_ignore_rules(root: Path) -> IgnoreRules:
    """.gitignore files that apply to a walk of *root*: those from the
    enclosing repository's top down to *root*, then every one below it.
    Each spec is matched against paths relative to its own directory."""
    root = root.absolute()
    repo = find_git_root(root)
    bases = [root]
    if repo is not None:
        bases = [d for d in reversed(root.parents) if d.is_relative_to(repo)] + [root]
    for g in sorted(root.rglob(".gitignore")):
        rel_parts = g.relative_to(root).parts
        if len(rel_parts) > 1 and not any(part in IGNORED_DIRS for part in rel_parts):
            bases.append(g.parent)
    return [rule for rule in map(_read_gitignore, bases) if rule is not None]


def is_ignored(path: Path, rules: IgnoreRules) -> bool:
    path = path.absolute()
    for base, spec in rules:
        if path.is_relative_to(base) and spec.match_file(path.relative_to(base).as_posix()):
            return True
    return False


def _nested_repos(root: Path) -> set[Path]:
    return {
        child for child in root.iterdir()
        if child.is_dir() and (child / ".git").exists()
    }


def expand_paths(target: str, recursive: bool = True) -> list[str]:
    """Return the candidate paths below *target*, deduplicated and sorted.
    Skips .git/.jj, subdirectories that are repositories of their own and
    anything matched by a .gitignore."""
    if is_remote_url(target):
        return [target]

    root = Path(target)
    if not root.is_dir():
        return [target]

    rules = load_ignore_rules(root)
    if not recursive:
        return sorted(
            str(p) for p in root.iterdir()
            if p.is_file() and not is_ignored(p, rules)
        )

    nested = _nested_repos(root)
    seen: set[str] = set()
    out: list[str] = []
    for p in sorted(root.rglob("*")):
        if not p.is_file():
            continue
        rel_parts = p.relative_to(root).parts
        if any(part in IGNORED_DIRS for part in rel_parts[:-1]):
            continue
        if any(p.is_relative_to(nr) for nr in nested):
            continue
        if is_ignored(p, rules):
            continue
        key = str(p)
        if key not in seen:
            seen.add(key)
            out.append(key)
    return out
