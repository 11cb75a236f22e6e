"""
Sync orchestrator: scan -> render each post -> rebuild TOC -> rebuild RSS.

Per-post failures become warnings and drop the post from the aggregate
views. A failure while scanning or aggregating fails the whole run, because
the table of contents and the feed would otherwise silently go stale. Post
files written before a fatal failure are left in place; every step is
idempotent, so the next successful run brings everything back in line.
"""

import logging
import time
from enum import Enum

from .catalog import PostCatalog
from .errors import SyncError, WellingtonError
from .rss import RssBuilder
from .templating import TemplateEngine
from .toc import TocBuilder


class SyncState(Enum):
    SCANNING = 'scanning'
    RENDERING = 'rendering'
    AGGREGATING = 'aggregating'
    DONE = 'done'
    FAILED = 'failed'


class SyncReport:
    """Outcome of one run: rendered posts, changed files and warnings."""

    def __init__(self):
        self.state = None
        self.posts = []
        self.warnings = []
        self.rendered = 0
        self.updated = 0
        self.elapsed = 0.0

    @property
    def ok(self):
        return self.state is SyncState.DONE

    def __repr__(self):
        return (f"<SyncReport state={self.state and self.state.value} rendered={self.rendered} "
                f"updated={self.updated} warnings={len(self.warnings)}>")


class SyncOrchestrator:
    def __init__(self, site, templates=None, workers=None):
        self.site = site
        self.templates = templates or TemplateEngine(site)
        self.workers = workers
        self.catalog = PostCatalog(site, templates=self.templates)
        self.toc = TocBuilder(site, self.templates)
        self.rss = RssBuilder(site)
        self.state = None
        self.report = SyncReport()
        self.logger = logging.getLogger('Wellington')

    def _enter(self, state):
        self.state = state
        self.report.state = state
        self.logger.debug(f"Sync state: {state.value}")

    def _failure(self, stage, error):
        self._enter(SyncState.FAILED)
        message = f"{stage} failed: {error}"
        self.logger.error(message)
        return SyncError(message, report=self.report)

    def run(self):
        """Run one sync; returns the SyncReport or raises SyncError."""
        start_time = time.time()
        self.report = SyncReport()

        self._enter(SyncState.SCANNING)
        try:
            sources = self.catalog.scan()
        except WellingtonError as e:
            raise self._failure('Scanning', e) from e

        self._enter(SyncState.RENDERING)
        posts = self.catalog.build(sources, workers=self.workers)
        self.report.posts = posts
        self.report.warnings = list(self.catalog.warnings)
        self.report.rendered = len(posts)
        self.report.updated = sum(1 for post in posts if post.changed)

        self._enter(SyncState.AGGREGATING)
        try:
            self.toc.build(posts)
            self.rss.build(posts)
            self.catalog.save_index()
        except WellingtonError as e:
            raise self._failure('Building aggregate views', e) from e

        self._enter(SyncState.DONE)
        self.report.elapsed = time.time() - start_time
        return self.report
