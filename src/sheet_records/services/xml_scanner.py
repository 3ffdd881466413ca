"""Minimal tokenizer for SpreadsheetML parts.

The workbook, relationship, shared-string and sheet parts are produced by
writers that emit a small, regular subset of XML. Rather than building a
tree, the reader walks tags in document order with ``XmlScanner`` and pulls
the raw text it needs out of each element.

Simplifying assumptions:
- Tags and attributes are matched by local name; namespace prefixes and
  declarations are ignored.
- Processing instructions, comments, CDATA sections and doctype declarations
  are skipped whole while looking for tags. Inside text content, CDATA
  sections are unwrapped by ``decode_text``.
- A ``<`` that does not start a well-formed tag is stepped over, so
  malformed input degrades to missing elements rather than errors.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum

_TAG_RE = re.compile(
    r"<(?P<close>/)?(?P<name>[A-Za-z_][\w.\-]*(?::[A-Za-z_][\w.\-]*)?)"
    r"(?P<attrs>(?:\s+[^\s=/>]+\s*=\s*(?:\"[^\"]*\"|'[^']*'))*)"
    r"\s*(?P<empty>/)?>"
)
_ATTR_RE = re.compile(r"([^\s=/>]+)\s*=\s*(?:\"([^\"]*)\"|'([^']*)')")
_ENTITY_RE = re.compile(r"&(#[xX][0-9a-fA-F]+|#[0-9]+|amp|lt|gt|quot|apos);")
_CDATA_RE = re.compile(r"<!\[CDATA\[(.*?)\]\]>", re.DOTALL)

_NAMED_ENTITIES = {
    "amp": "&",
    "lt": "<",
    "gt": ">",
    "quot": '"',
    "apos": "'",
}

# Markup that is skipped whole: opening sequence -> terminator
_SKIPPED_MARKUP = (
    ("<!--", "-->"),
    ("<![CDATA[", "]]>"),
    ("<?", "?>"),
    ("<!", ">"),
)


class TagKind(str, Enum):
    """Kind of a scanned tag."""

    START = "start"
    END = "end"
    EMPTY = "empty"


def local_name(name: str) -> str:
    """Strip any namespace prefix from a tag or attribute name."""
    return name.rpartition(":")[2]


@dataclass(frozen=True)
class XmlTag:
    """One tag found by the scanner.

    ``start`` and ``end`` are offsets of the ``<`` and just past the ``>``.
    """

    name: str
    kind: TagKind
    start: int
    end: int
    attributes: dict[str, str] = field(default_factory=dict)

    @property
    def local_name(self) -> str:
        return local_name(self.name)

    def attribute(self, name: str) -> str | None:
        """Look up an attribute by local name, ignoring its prefix.

        An exact match on the qualified name is preferred, so ``r:id`` can be
        requested explicitly when an unprefixed ``id`` is also present.
        """
        if name in self.attributes:
            return self.attributes[name]
        wanted = local_name(name)
        for key, value in self.attributes.items():
            if local_name(key) == wanted:
                return value
        return None


def decode_entities(raw: str) -> str:
    """Decode the predefined XML entities and numeric character references.

    Unrecognised entities and references outside the Unicode range are left
    in place as literal text.
    """
    if "&" not in raw:
        return raw
    return _ENTITY_RE.sub(_replace_entity, raw)


def decode_text(raw: str) -> str:
    """Decode raw element text: unwrap CDATA sections, decode entities elsewhere.

    CDATA content is taken literally. An unterminated CDATA opener is left
    as ordinary text.
    """
    if "<![CDATA[" not in raw:
        return decode_entities(raw)
    parts: list[str] = []
    pos = 0
    for match in _CDATA_RE.finditer(raw):
        parts.append(decode_entities(raw[pos : match.start()]))
        parts.append(match.group(1))
        pos = match.end()
    parts.append(decode_entities(raw[pos:]))
    return "".join(parts)


def _replace_entity(match: re.Match[str]) -> str:
    token = match.group(1)
    if not token.startswith("#"):
        return _NAMED_ENTITIES[token]
    if token[1] in "xX":
        codepoint = int(token[2:], 16)
    else:
        codepoint = int(token[1:])
    if codepoint > 0x10FFFF:
        return match.group(0)
    return chr(codepoint)


class XmlScanner:
    """Forward-only scanner over the tags of an XML text."""

    def __init__(self, text: str) -> None:
        self._text = text
        self._pos = 0

    @property
    def position(self) -> int:
        return self._pos

    def next_tag(self, *local_names: str) -> XmlTag | None:
        """Advance to the next tag, optionally filtered by local name.

        Args:
            *local_names: When given, tags with other local names are skipped.

        Returns:
            The tag, or None when the input is exhausted.
        """
        while True:
            tag = self._scan_tag()
            if tag is None:
                return None
            if not local_names or tag.local_name in local_names:
                return tag

    def read_content(self, tag: XmlTag) -> str:
        """Return the raw text between ``tag`` and its matching end tag.

        The scanner moves past the end tag. Empty elements have no content.
        An element that is never closed runs to the end of the input.
        """
        if tag.kind is not TagKind.START:
            return ""
        content_start = tag.end
        content_end, after = self._find_close(tag.local_name, content_start)
        self._pos = after
        return self._text[content_start:content_end]

    def read_element(self, tag: XmlTag) -> str:
        """Return the full text of an element, tags included."""
        if tag.kind is TagKind.EMPTY:
            return self._text[tag.start : tag.end]
        self.read_content(tag)
        return self._text[tag.start : self._pos]

    def iter_elements(self, *local_names: str) -> Iterator[tuple[XmlTag, str]]:
        """Yield ``(tag, content)`` for each matching element in order.

        End tags are never yielded; nested elements of the same name are
        consumed as part of their parent's content.
        """
        while True:
            tag = self.next_tag(*local_names)
            if tag is None:
                return
            if tag.kind is TagKind.END:
                continue
            yield tag, self.read_content(tag)

    def _scan_tag(self) -> XmlTag | None:
        text = self._text
        pos = self._pos
        while True:
            lt = text.find("<", pos)
            if lt == -1:
                self._pos = len(text)
                return None

            skip_to = self._skip_markup(lt)
            if skip_to is not None:
                pos = skip_to
                continue

            match = _TAG_RE.match(text, lt)
            if match is None:
                pos = lt + 1
                continue

            self._pos = match.end()
            if match.group("close"):
                kind = TagKind.END
            elif match.group("empty"):
                kind = TagKind.EMPTY
            else:
                kind = TagKind.START
            return XmlTag(
                name=match.group("name"),
                kind=kind,
                start=lt,
                end=match.end(),
                attributes=_parse_attributes(match.group("attrs")),
            )

    def _skip_markup(self, lt: int) -> int | None:
        text = self._text
        for opener, terminator in _SKIPPED_MARKUP:
            if text.startswith(opener, lt):
                end = text.find(terminator, lt + len(opener))
                return len(text) if end == -1 else end + len(terminator)
        return None

    def _find_close(self, name: str, start: int) -> tuple[int, int]:
        """Locate the end tag closing an element named ``name``.

        Returns:
            Offset where the end tag begins and offset just past it.
        """
        saved = self._pos
        self._pos = start
        depth = 0
        try:
            while True:
                tag = self._scan_tag()
                if tag is None:
                    return len(self._text), len(self._text)
                if tag.local_name != name:
                    continue
                if tag.kind is TagKind.START:
                    depth += 1
                elif tag.kind is TagKind.END:
                    if depth == 0:
                        return tag.start, tag.end
                    depth -= 1
        finally:
            self._pos = saved


def _parse_attributes(raw: str) -> dict[str, str]:
    attributes: dict[str, str] = {}
    for name, double_quoted, single_quoted in _ATTR_RE.findall(raw):
        value = double_quoted if double_quoted or not single_quoted else single_quoted
        attributes[name] = decode_entities(value)
    return attributes
