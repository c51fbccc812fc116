"""
Read-only HTML document shared by every check.

Checks only go through select_all / select_one / text / attr / visible_text,
so nothing downstream depends on the BeautifulSoup tree itself.
"""
import re
from typing import Iterable, List, Optional

from bs4 import BeautifulSoup
from bs4.element import Comment, Declaration, Doctype, ProcessingInstruction, Tag

_WS = re.compile(r"\s+")
_SKIPPED_STRINGS = (Comment, Declaration, Doctype, ProcessingInstruction)


class ParsedDocument:
    def __init__(self, html: str, raw_length: Optional[int] = None):
        self._soup = BeautifulSoup(html or "", "lxml")
        self.raw_length = raw_length if raw_length is not None else len((html or "").encode("utf-8"))

    def select_all(self, selector: str) -> List[Tag]:
        return self._soup.select(selector)

    def select_one(self, selector: str) -> Optional[Tag]:
        return self._soup.select_one(selector)

    @staticmethod
    def text(element: Optional[Tag]) -> str:
        if element is None:
            return ""
        return _WS.sub(" ", element.get_text(" ")).strip()

    @staticmethod
    def attr(element: Optional[Tag], name: str) -> Optional[str]:
        """Attribute value as a string; multi-valued attributes (rel, class) are space-joined."""
        if element is None:
            return None
        value = element.get(name)
        if isinstance(value, list):
            return " ".join(value)
        return value

    def raw_content(self, element: Tag) -> str:
        """Unparsed inner text of an element, e.g. the JSON inside a <script>."""
        return "".join(str(child) for child in element.contents)

    def visible_text(self, exclude: Iterable[str] = ()) -> str:
        """
        Whitespace-normalized text of <body> (or the whole document), skipping
        any string that sits inside one of the ``exclude`` tags. The tree is
        walked, never modified.
        """
        excluded = set(exclude)
        root = self._soup.body or self._soup
        parts = []
        for s in root.find_all(string=True):
            if isinstance(s, _SKIPPED_STRINGS):
                continue
            if any(p.name in excluded for p in s.parents):
                continue
            parts.append(str(s))
        return _WS.sub(" ", " ".join(parts)).strip()
