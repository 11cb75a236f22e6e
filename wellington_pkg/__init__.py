"""
Wellington - a static blog generator with sidenotes.

Wellington turns a directory of posts, each an index.md in its own
directory, into rendered post pages, a table of contents and an RSS feed.
Curly braces in a post mark footnotes/sidenotes, and relative links are
rewritten so every post stays portable inside its own directory.
"""

__version__ = "1.0.0"

from .sync import SyncOrchestrator, SyncReport, SyncState
from .renderer import PostRenderer
from .settings import SiteSettings

__all__ = ['SyncOrchestrator', 'SyncReport', 'SyncState', 'PostRenderer', 'SiteSettings']
