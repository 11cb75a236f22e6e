"""
Extension tokenizer for Wellington markdown.

Scans raw post text for the two constructs layered on top of standard
markdown, before the markdown renderer ever sees the text:

* ``{...}`` note markers (footnotes / sidenotes), and
* relative link and asset targets that must be rewritten per post.

Code spans and code blocks are excluded from both scans, so programming
examples (or math written as code) with literal braces never become notes.
The output is a sequence of tagged spans whose texts concatenate back to the
input exactly.
"""

import bisect
import re
from enum import Enum
from typing import Iterator, List, NamedTuple, Optional, Tuple
from urllib.parse import urlparse

from .errors import ParseError


class SpanKind(Enum):
    PLAIN = 'plain'
    NOTE = 'note'
    LINK = 'link'


class Span(NamedTuple):
    """One classified slice of the source text."""
    kind: SpanKind
    text: str
    start: int
    end: int
    body: Optional[str] = None
    syntax: Optional[str] = None


FENCE_RE = re.compile(r'^ {0,3}(`{3,}|~{3,})')
INDENTED_RE = re.compile(r'^(?: {4}|\t)')
LIST_ITEM_RE = re.compile(r'^ {0,3}(?:[*+-]|\d{1,9}[.)])(?:[ \t]|$)')
BACKTICKS_RE = re.compile(r'`+')
BLANK_LINE_RE = re.compile(r'\r?\n[ \t]*(?:\r?\n|\r?\Z)')
INLINE_TARGET_RE = re.compile(r'\(\s*(?:<([^<>\n]*)>|([^\s()<>]+))')
DEFINITION_RE = re.compile(r' {0,3}\[[^\]{}\n]+\]:[ \t]*(?:<([^<>\n]*)>|(\S+))')
HTML_TAG_RE = re.compile(r'<[a-zA-Z][a-zA-Z0-9-]*(?:\s[^<>{}]*)?/?>')
HTML_LINK_ATTR_RE = re.compile(r'\s(?:src|href)\s*=\s*(?:"([^"]*)"|\'([^\']*)\')', re.IGNORECASE)
ATX_H1_RE = re.compile(r'^ {0,3}#[ \t]+(.*?)(?:[ \t]+#+)?[ \t]*$')
SETEXT_H1_RE = re.compile(r'^ {0,3}=+[ \t]*$')
ESCAPED_PUNCT_RE = re.compile(r'\\([!-/:-@\[-`{-~])')

ASCII_PUNCTUATION = set('!"#$%&\'()*+,-./:;<=>?@[\\]^_`{|}~')


def line_number(text: str, pos: int) -> int:
    return text.count('\n', 0, pos) + 1


def is_relative_target(target: str) -> bool:
    """True for a path relative to the post directory."""
    if not target or target.startswith(('/', '#')):
        return False
    return not urlparse(target).scheme


def find_block_regions(text: str) -> List[Tuple[int, int]]:
    """Return (start, end) offsets of fenced and indented code blocks."""
    regions = []
    offset = 0
    fence = None
    indented = None
    prev_blank = True
    in_list = False

    for line in text.splitlines(keepends=True):
        line_end = offset + len(line)
        blank = not line.strip()

        if fence is not None:
            match = FENCE_RE.match(line)
            if (match and match.group(1)[0] == fence[0]
                    and len(match.group(1)) >= fence[1]
                    and not line[match.end():].strip()):
                regions.append((fence[2], line_end))
                fence = None
            offset = line_end
            prev_blank = False
            continue

        if indented is not None:
            if blank or INDENTED_RE.match(line):
                if not blank:
                    indented = (indented[0], line_end)
                offset = line_end
                prev_blank = blank
                continue
            regions.append(indented)
            indented = None

        match = FENCE_RE.match(line)
        if match and not (match.group(1)[0] == '`' and '`' in line[match.end():]):
            fence = (match.group(1)[0], len(match.group(1)), offset)
        elif not blank and INDENTED_RE.match(line) and prev_blank and not in_list:
            indented = (offset, line_end)
        elif LIST_ITEM_RE.match(line):
            in_list = True
        elif not blank and prev_blank and not INDENTED_RE.match(line):
            in_list = False

        offset = line_end
        prev_blank = blank

    if fence is not None:
        regions.append((fence[2], len(text)))
    if indented is not None:
        regions.append(indented)
    return regions


def _find_code_spans(text: str, start: int, end: int) -> List[Tuple[int, int]]:
    spans = []
    pos = start
    while True:
        opener = BACKTICKS_RE.search(text, pos, end)
        if opener is None:
            break
        if opener.start() > start and text[opener.start() - 1] == '\\':
            pos = opener.start() + 1
            continue
        # A code span never crosses a paragraph break.
        blank = BLANK_LINE_RE.search(text, opener.end(), end)
        limit = blank.start() if blank else end
        size = len(opener.group(0))
        closer = BACKTICKS_RE.search(text, opener.end(), limit)
        while closer is not None and len(closer.group(0)) != size:
            closer = BACKTICKS_RE.search(text, closer.end(), limit)
        if closer is None:
            pos = opener.end()
        else:
            spans.append((opener.start(), closer.end()))
            pos = closer.end()
    return spans


def find_code_regions(text: str) -> List[Tuple[int, int]]:
    """Return sorted (start, end) offsets of every code block and code span."""
    blocks = find_block_regions(text)
    regions = list(blocks)
    gap_start = 0
    for block_start, block_end in blocks + [(len(text), len(text))]:
        regions.extend(_find_code_spans(text, gap_start, block_start))
        gap_start = block_end
    regions.sort()
    return regions


class Tokenizer:
    """
    Lazy, restartable scanner producing Span tuples in source order.

    Iterating raises ParseError when a note marker is unbalanced: an open
    brace that is never closed, a stray closing brace, or a marker that runs
    across a blank line.
    """

    def __init__(self, text: str):
        self.text = text
        self._regions = None
        self._region_starts = None

    @property
    def code_regions(self) -> List[Tuple[int, int]]:
        if self._regions is None:
            self._regions = find_code_regions(self.text)
            self._region_starts = [start for start, _ in self._regions]
        return self._regions

    def __iter__(self) -> Iterator[Span]:
        return self._scan()

    def _code_end(self, pos: int) -> Optional[int]:
        """End offset of the code region containing pos, if any."""
        regions = self.code_regions
        index = bisect.bisect_right(self._region_starts, pos) - 1
        if index >= 0 and regions[index][0] <= pos < regions[index][1]:
            return regions[index][1]
        return None

    def _scan(self) -> Iterator[Span]:
        text = self.text
        size = len(text)
        plain_start = 0
        brackets = []
        i = 0

        while i < size:
            code_end = self._code_end(i)
            if code_end is not None:
                i = code_end
                continue

            if i == 0 or text[i - 1] == '\n':
                link = self._match_definition(i)
                if link is not None:
                    span = link
                    if plain_start < span.start:
                        yield Span(SpanKind.PLAIN, text[plain_start:span.start], plain_start, span.start)
                    yield span
                    plain_start = i = span.end
                    continue

            char = text[i]
            if char == '\\' and i + 1 < size and text[i + 1] in ASCII_PUNCTUATION:
                i += 2
                continue

            if char == '{':
                end = self._match_brace(i)
                if plain_start < i:
                    yield Span(SpanKind.PLAIN, text[plain_start:i], plain_start, i)
                yield Span(SpanKind.NOTE, text[i:end], i, end, body=text[i + 1:end - 1])
                plain_start = i = end
                continue

            if char == '}':
                raise ParseError('closing brace without an opening note marker',
                                 line=line_number(text, i))

            if char == '[':
                brackets.append(i)
            elif char == ']':
                opener = brackets.pop() if brackets else None
                if opener is not None and text.startswith('](', i):
                    is_image = opener > 0 and text[opener - 1] == '!'
                    syntax = 'image' if is_image else 'link'
                    link = self._match_inline_target(i + 1, syntax)
                    if link is not None:
                        if plain_start < link.start:
                            yield Span(SpanKind.PLAIN, text[plain_start:link.start], plain_start, link.start)
                        yield link
                        plain_start = i = link.end
                        continue
            elif char == '<':
                tag = HTML_TAG_RE.match(text, i)
                if tag is not None:
                    for link in self._match_html_targets(tag):
                        if plain_start < link.start:
                            yield Span(SpanKind.PLAIN, text[plain_start:link.start], plain_start, link.start)
                        yield link
                        plain_start = link.end
                    i = tag.end()
                    continue
            i += 1

        if plain_start < size:
            yield Span(SpanKind.PLAIN, text[plain_start:], plain_start, size)

    def _match_brace(self, start: int) -> int:
        text = self.text
        depth = 0
        i = start
        while i < len(text):
            code_end = self._code_end(i)
            if code_end is not None:
                i = code_end
                continue
            char = text[i]
            if char == '\\' and i + 1 < len(text) and text[i + 1] in ASCII_PUNCTUATION:
                i += 2
                continue
            if char == '{':
                depth += 1
            elif char == '}':
                depth -= 1
                if depth == 0:
                    return i + 1
            elif char == '\n' and BLANK_LINE_RE.match(text, i):
                raise ParseError('note marker runs across a paragraph break',
                                 line=line_number(text, start))
            i += 1
        raise ParseError('note marker is never closed', line=line_number(text, start))

    def _link_span(self, match, syntax: str) -> Optional[Span]:
        group = 1 if match.group(1) is not None else 2
        target = match.group(group)
        if not is_relative_target(target):
            return None
        return Span(SpanKind.LINK, target, match.start(group), match.end(group), syntax=syntax)

    def _match_inline_target(self, pos: int, syntax: str) -> Optional[Span]:
        match = INLINE_TARGET_RE.match(self.text, pos)
        if match is None:
            return None
        return self._link_span(match, syntax)

    def _match_definition(self, pos: int) -> Optional[Span]:
        match = DEFINITION_RE.match(self.text, pos)
        if match is None:
            return None
        return self._link_span(match, 'definition')

    def _match_html_targets(self, tag) -> Iterator[Span]:
        base = tag.start()
        for attr in HTML_LINK_ATTR_RE.finditer(tag.group(0)):
            group = 1 if attr.group(1) is not None else 2
            target = attr.group(group)
            if is_relative_target(target):
                yield Span(SpanKind.LINK, target, base + attr.start(group), base + attr.end(group),
                           syntax='html')


def tokenize(text: str) -> Iterator[Span]:
    """Iterate the spans of text; a fresh scan on every call."""
    return iter(Tokenizer(text))


def strip_notes(text: str) -> str:
    """Return text with every note marker removed."""
    return ''.join(span.text for span in Tokenizer(text) if span.kind is not SpanKind.NOTE)


def find_title(text: str) -> Optional[str]:
    """
    Return the text of the first level-1 heading outside code blocks.

    Both ATX (``# Title``) and setext (``Title`` over ``=====``) headings
    count. Note markers are dropped from the title and backslash escapes are
    resolved. Returns None when the post has no such heading.
    """
    blocks = find_block_regions(text)
    block_starts = [start for start, _ in blocks]

    def in_block(pos):
        index = bisect.bisect_right(block_starts, pos) - 1
        return index >= 0 and blocks[index][0] <= pos < blocks[index][1]

    offset = 0
    previous = None
    for line in text.splitlines(keepends=True):
        heading = None
        if not in_block(offset):
            content = line.rstrip('\r\n')
            match = ATX_H1_RE.match(content)
            if match:
                heading = match.group(1)
            elif SETEXT_H1_RE.match(content) and previous and previous.strip() \
                    and not INDENTED_RE.match(previous):
                heading = previous.strip()
            previous = content
        else:
            previous = None
        if heading is not None:
            title = ESCAPED_PUNCT_RE.sub(r'\1', strip_notes(heading)).strip()
            if title:
                return title
        offset += len(line)
    return None
