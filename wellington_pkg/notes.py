"""
Note registry: numbers the note markers of one post and formats them.

Each marker becomes a small inline anchor carrying its ordinal, and its body
is collected for a notes section appended after the post content. Sidenote
versus footnote presentation is left to the stylesheet; both use the same
markup.
"""

import html
import re
from typing import List, NamedTuple

from .tokenizer import Span, SpanKind

WHITESPACE_RE = re.compile(r'\s+')


class Note(NamedTuple):
    ordinal: int
    anchor_id: str
    ref_id: str
    body: str


def note_ids(ordinal):
    """Return (body id, inline anchor id) for an ordinal."""
    return f"note-{ordinal}", f"note-ref-{ordinal}"


class NoteRegistry:
    """Per-post collection of notes; ordinals start at 1 for every registry."""

    def __init__(self):
        self._notes: List[Note] = []

    def __len__(self):
        return len(self._notes)

    @property
    def notes(self) -> List[Note]:
        return list(self._notes)

    def register(self, span: Span) -> str:
        """Record a note marker span and return its inline anchor html."""
        if span.kind is not SpanKind.NOTE:
            raise ValueError(f"expected a note span, got {span.kind.value}")
        ordinal = len(self._notes) + 1
        anchor_id, ref_id = note_ids(ordinal)
        # Note bodies are kept as literal text, markdown inside them is not rendered.
        body = WHITESPACE_RE.sub(' ', span.body).strip()
        self._notes.append(Note(ordinal, anchor_id, ref_id, body))
        return (f'<sup class="note-ref" id="{ref_id}">'
                f'<a href="#{anchor_id}">{ordinal}</a></sup>')

    def render_section(self) -> str:
        """Return the trailing notes section, or '' when the post has no notes."""
        if not self._notes:
            return ''
        items = []
        for note in self._notes:
            items.append(
                f'<li class="note" id="{note.anchor_id}" value="{note.ordinal}">'
                f'{html.escape(note.body, quote=False)} '
                f'<a class="note-backref" href="#{note.ref_id}">&#8617;</a></li>'
            )
        return '<section class="notes">\n<ol>\n' + '\n'.join(items) + '\n</ol>\n</section>\n'
