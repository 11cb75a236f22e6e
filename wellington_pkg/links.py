"""Rewrite relative link and asset targets so they resolve from the site root."""

from typing import Iterable, Iterator
from urllib.parse import quote

from .tokenizer import Span, SpanKind, is_relative_target


def is_relative(target: str) -> bool:
    """True when target is a path relative to the post directory."""
    return is_relative_target(target)


def rewrite_link(slug: str, target: str) -> str:
    """
    Prefix a relative target with the post slug.

    Absolute paths, URLs with a scheme and fragment-only references are
    returned unchanged. Only the strings are inspected; whether the asset
    exists is not this function's concern.
    """
    if not is_relative(target):
        return target
    while target.startswith('./'):
        target = target[2:]
    return f"{quote(slug.strip('/'))}/{target}"


def rewrite_spans(spans: Iterable[Span], slug: str) -> Iterator[Span]:
    for span in spans:
        if span.kind is SpanKind.LINK:
            yield span._replace(text=rewrite_link(slug, span.text))
        else:
            yield span
