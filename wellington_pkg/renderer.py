"""
Post renderer: one post directory in, one rendered page out.

The raw source goes through the extension tokenizer first; note markers are
replaced by inline anchors and relative link targets are rewritten, then the
result is handed to mistune and finally to the post template.
"""

import html
import logging
import os
import re
import threading
from datetime import datetime, timezone

import mistune

from .errors import ContentError, PostIOError, WellingtonError
from .links import rewrite_spans
from .models import PostWarning, RenderedPost
from .notes import NoteRegistry
from .templating import TemplateEngine
from .tokenizer import SpanKind, Tokenizer, find_title

SOURCE_FILE = 'index.md'
OUTPUT_FILE = 'index.html'
EXCERPT_WORDS = 30

FIRST_H1_RE = re.compile(r'<h1[^>]*>.*?</h1>', re.DOTALL)
NOTE_REF_RE = re.compile(r'<sup class="note-ref"[^>]*>.*?</sup>', re.DOTALL)
TAG_RE = re.compile(r'<[^>]+>')

# Per-process renderer for ProcessPoolExecutor workers
thread_local = threading.local()


def format_date(timestamp):
    """Format an epoch timestamp for display (UTC, so output is machine independent)."""
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime('%B %d, %Y')


def init_worker(site):
    """Create the PostRenderer used by one worker process."""
    thread_local.renderer = PostRenderer(site)


def render_in_worker(source):
    return thread_local.renderer.try_render(source)


class PostRenderer:
    def __init__(self, site, templates=None, markdown_parser=None):
        self.site = site
        self.templates = templates or TemplateEngine(site)
        self.markdown_parser = markdown_parser or self.create_markdown_parser()
        self.logger = logging.getLogger('Wellington.PostRenderer')

    def create_markdown_parser(self):
        """Create a Mistune markdown parser with a custom renderer."""
        class CustomRenderer(mistune.HTMLRenderer):
            def __init__(self):
                # Raw html must pass through: note anchors are spliced in before parsing.
                super().__init__(escape=False)

            def block_code(self, code, info=None):
                escaped_code = mistune.escape(code)
                return '<pre style="white-space: pre-wrap;"><code>{}</code></pre>\n'.format(escaped_code)

        return mistune.create_markdown(
            renderer=CustomRenderer(),
            plugins=['table', 'task_lists', 'strikethrough']
        )

    def markdown_filter(self, text):
        """Convert markdown text to HTML."""
        return self.markdown_parser(text)

    def read_source(self, source):
        try:
            with open(source.source_path, 'r', encoding='utf-8') as f:
                return f.read()
        except (IOError, OSError, UnicodeDecodeError) as e:
            raise PostIOError(f"Failed to read {source.source_path}: {e}")

    def expand(self, text, slug):
        """
        Apply the extension layer to raw markdown.

        Returns the markdown with inline note anchors spliced in and relative
        link targets prefixed with the slug, plus the NoteRegistry holding the
        note bodies in ordinal order.
        """
        registry = NoteRegistry()
        parts = []
        for span in rewrite_spans(Tokenizer(text), slug):
            if span.kind is SpanKind.NOTE:
                parts.append(registry.register(span))
            else:
                parts.append(span.text)
        return ''.join(parts), registry

    def generate_excerpt(self, fragment):
        """Generate a plain-text excerpt from the rendered body."""
        content = FIRST_H1_RE.sub('', fragment, count=1)
        content = NOTE_REF_RE.sub('', content)
        plain_text = html.unescape(TAG_RE.sub(' ', content))
        words = plain_text.split()
        if len(words) > EXCERPT_WORDS:
            return ' '.join(words[:EXCERPT_WORDS]) + '...'
        return ' '.join(words)

    def write_output(self, output_path, page):
        """Write page to output_path; returns False when the file was already identical."""
        data = page.encode('utf-8')
        try:
            if os.path.isfile(output_path):
                with open(output_path, 'rb') as f:
                    if f.read() == data:
                        self.logger.debug(f"Unchanged: {output_path}")
                        return False
            with open(output_path, 'wb') as f:
                f.write(data)
        except (IOError, OSError) as e:
            raise PostIOError(f"Failed to write {output_path}: {e}")
        self.logger.debug(f"Generated HTML: {output_path}")
        return True

    def render(self, source):
        """Render one PostSource to <slug>/index.html and return its RenderedPost."""
        try:
            text = self.read_source(source)
            expanded, registry = self.expand(text, source.slug)

            title = find_title(text)
            if not title:
                raise ContentError("post has no top-level heading to use as its title")

            fragment = self.markdown_filter(expanded)
            body = fragment + registry.render_section()
            published = format_date(source.published)

            values = dict(self.templates.site_values())
            values.update(title=title, body=body, slug=source.slug, published=published)
            page = self.templates.render('post', values)

            output_path = os.path.join(source.directory, OUTPUT_FILE)
            changed = self.write_output(output_path, page)
        except WellingtonError as e:
            e.with_slug(source.slug)
            raise

        self.logger.debug(f"Rendered {source.slug} with {len(registry)} notes")
        return RenderedPost(
            slug=source.slug,
            title=title,
            body=body,
            excerpt=self.generate_excerpt(fragment),
            page=page,
            output_path=output_path,
            published=source.published,
            changed=changed,
        )

    def try_render(self, source):
        """
        Render a post, turning pipeline errors into a warning.

        Returns (RenderedPost, None) on success and (None, PostWarning) on
        failure, so one broken post never stops the others.
        """
        try:
            return self.render(source), None
        except WellingtonError as e:
            return None, PostWarning(source.slug, e.kind, e.message)
        except (ValueError, OverflowError, OSError) as e:
            return None, PostWarning(source.slug, 'error', f"rendering failed: {e}")
