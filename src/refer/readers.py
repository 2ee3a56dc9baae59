# Refer – Semantic search over local files and web pages
# Copyright (c) 2026 4rce.com Digital Technologies GmbH.
# Use of this software is governed by the Business Source License 1.1. See LICENSE.md.

"""
Content readers: binary sniffing for local files and HTML -> markdown-like
text for remote pages.
"""
from pathlib import Path

from bs4 import BeautifulSoup

SNIFF_BYTES = 512
HEADING_TAGS = ("h1", "h2", "h3", "h4", "h5", "h6")
BLOCK_TAGS = [*HEADING_TAGS, "pre", "li", "p", "tr"]


def is_printable(b: int) -> bool:
    """ASCII printable (32-126) or the Latin-1 letter range (192-255)."""
    return 32 <= b <= 126 or 192 <= b <= 255


def looks_binary(data: bytes) -> bool:
    for b in data[:SNIFF_BYTES]:
        if b == 0:
            return True
        if b > 127 and not is_printable(b):
            return True
    return False


def is_text_file(path: Path) -> bool:
    """Sniff the first 512 bytes; empty files count as text."""
    with open(path, "rb") as f:
        head = f.read(SNIFF_BYTES)
    return not looks_binary(head)


def extract_title(html: str) -> str:
    soup = BeautifulSoup(html, "html.parser")
    if soup.title and soup.title.string:
        return soup.title.string.strip()
    return ""


def html_to_markdown(html: str) -> str:
    """Convert an HTML page to markdown-like text (headings, lists, code, tables)."""
    soup = BeautifulSoup(html, "html.parser")

    for tag in soup(["script", "style", "nav", "footer", "header", "noscript"]):
        tag.decompose()

    lines: list[str] = []
    for el in soup.descendants:
        if not el.name:
            continue
        # text of a nested element is already part of its enclosing block
        if el.find_parent(BLOCK_TAGS) is not None:
            continue
        if el.name in HEADING_TAGS:
            level = int(el.name[1])
            lines.append(f"\n{'#' * level} {el.get_text(strip=True)}\n")
        elif el.name == "pre":
            code = el.get_text()
            lines.append(f"\n```\n{code}\n```\n")
        elif el.name == "code":
            lines.append(f"`{el.get_text()}`")
        elif el.name == "li":
            lines.append(f"- {el.get_text(' ', strip=True)}")
        elif el.name == "p":
            text = el.get_text(" ", strip=True)
            if text:
                lines.append(f"\n{text}\n")
        elif el.name == "tr":
            cells = [td.get_text(strip=True) for td in el.find_all(["td", "th"])]
            if cells:
                lines.append("| " + " | ".join(cells) + " |")

    body = "\n".join(lines).strip()
    if not body:
        # no block markup
        body = soup.get_text("\n", strip=True)
    return body
