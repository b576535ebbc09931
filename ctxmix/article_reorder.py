"""Reorder the pages of a dump and sort them back by id."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

NUM_OF_ARTICLES = 243425

_PATTERNS = ("<page>", "<id>", "</page>")
_INT_RE = re.compile(r"\s*[+-]?\d+")


@dataclass
class Article:
    """A page's id and the numbers of its first and last lines."""

    id: int = 0
    start: int = 0
    end: int = 0


def parse_id(line: str) -> int:
    """Read the number from an ``<id>`` line."""
    s = line.replace(" ", "").replace("<id>", "", 1).replace("</id>", "", 1)
    match = _INT_RE.match(s)
    if not match:
        raise ValueError(f"no id in line {line!r}")
    return int(match.group())


def parse_articles(lines: Iterable[str]) -> list[Article]:
    """Find each page's line span and first id."""
    articles: list[Article] = []
    state = 0
    acc = Article()
    for number, line in enumerate(lines):
        if _PATTERNS[state] in line:
            if state == 0:
                acc.start = number
            elif state == 1:
                acc.id = parse_id(line)
            else:
                acc.end = number
                articles.append(Article(acc.id, acc.start, acc.end))
            state = (state + 1) % 3
    return articles


def sort_articles(articles: Iterable[Article]) -> list[Article]:
    """Return the articles ordered by id, keeping ties in their order."""
    return sorted(articles, key=lambda article: article.id)


def _read_lines(path: Path) -> list[str]:
    lines = path.read_text(encoding="utf-8", errors="surrogateescape").split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return lines


def _write(path: Path, lines: list[str], articles: Iterable[Article]) -> None:
    with open(path, "w", encoding="utf-8", errors="surrogateescape",
              newline="") as out:
        for article in articles:
            for line in lines[article.start:article.end + 1]:
                out.write(line + "\n")


def reorder(directory: str | os.PathLike,
            num_articles: int = NUM_OF_ARTICLES) -> None:
    """Write ``.main_reordered`` with pages in ``.new_article_order`` order.

    Pages missing from the order file follow in their original order.
    """
    d = Path(directory)
    lines = _read_lines(d / ".main")
    articles = parse_articles(lines)
    positions: list[int] = []
    used = [False] * num_articles
    for entry in _read_lines(d / ".new_article_order"):
        position = parse_id(entry)
        positions.append(position)
        used[position] = True
    if len(positions) < num_articles:
        positions.extend(i for i, seen in enumerate(used) if not seen)
    _write(d / ".main_reordered", lines, (articles[pos] for pos in positions))


def sort(directory: str | os.PathLike) -> None:
    """Write ``.main_decomp_restored_sorted`` with pages sorted by id."""
    d = Path(directory)
    lines = _read_lines(d / ".main_decomp_restored")
    _write(d / ".main_decomp_restored_sorted", lines,
           sort_articles(parse_articles(lines)))