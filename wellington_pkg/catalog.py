"""
Post catalog: finds post directories and holds the rendered posts of a run.

Publish order comes from the first-published time recorded for each slug in
``.index.json`` at the site root. A post seen for the first time is stamped
with the modification time of its index.md; the stamp is never changed
afterwards, so the order survives edits, copies between filesystems and
directory listing quirks.
"""

import json
import logging
import math
import os
from concurrent.futures import ProcessPoolExecutor, as_completed
from datetime import datetime, timezone

from .errors import PostIOError
from .models import PostSource, PostWarning
from .renderer import SOURCE_FILE, PostRenderer, init_worker, render_in_worker

INDEX_FILE = '.index.json'

# Below this many posts a process pool costs more than it saves
PARALLEL_THRESHOLD = 12


def discover_posts(root):
    """
    Return (slug, directory, source_path) for each post directory under root.

    Only immediate subdirectories holding an index.md qualify; anything else
    (scratch directories, hidden directories, stray files) is ignored.
    """
    try:
        names = sorted(os.listdir(root))
    except (IOError, OSError) as e:
        raise PostIOError(f"Couldn't read site directory {root}: {e}")

    found = []
    for name in names:
        if name.startswith('.'):
            continue
        directory = os.path.join(root, name)
        source_path = os.path.join(directory, SOURCE_FILE)
        if os.path.isdir(directory) and os.path.isfile(source_path):
            found.append((name, directory, source_path))
    return found


def checked_stamp(value):
    """Return value as epoch seconds; ValueError unless it is a finite, datable time."""
    stamp = float(value)
    if not math.isfinite(stamp):
        raise ValueError(f"not a finite timestamp: {value!r}")
    try:
        datetime.fromtimestamp(stamp, tz=timezone.utc)
    except (OverflowError, OSError) as e:
        raise ValueError(f"timestamp out of range: {value!r}") from e
    return stamp


def sort_posts(posts):
    """Newest first; slug breaks ties so the order is total."""
    return sorted(posts, key=lambda p: (p.published, p.slug), reverse=True)


class PublishIndex:
    """First-published timestamps per slug, persisted as JSON."""

    def __init__(self, path, entries=None):
        self.path = path
        self.entries = entries or {}
        self._saved = self.dumps()

    @classmethod
    def load(cls, root):
        path = os.path.join(root, INDEX_FILE)
        if not os.path.exists(path):
            return cls(path)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (IOError, OSError) as e:
            raise PostIOError(f"Couldn't read publish index {path}: {e}")
        except ValueError as e:
            raise PostIOError(f"Publish index {path} is corrupt ({e}). Delete it to rebuild it from file times.")
        try:
            entries = {
                slug: {'first_published': checked_stamp(entry['first_published'])}
                for slug, entry in data.get('posts', {}).items()
            }
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise PostIOError(f"Publish index {path} is corrupt ({e}). Delete it to rebuild it from file times.")
        return cls(path, entries)

    def assign(self, slug, source_path):
        """Return the first-published time of slug, stamping new posts."""
        if slug not in self.entries:
            try:
                stamp = os.path.getmtime(source_path)
            except OSError as e:
                raise PostIOError(f"Couldn't stat {source_path}: {e}", slug=slug)
            self.entries[slug] = {'first_published': stamp}
        return self.entries[slug]['first_published']

    def prune(self, slugs):
        """Forget posts whose directories are gone."""
        keep = set(slugs)
        for slug in list(self.entries):
            if slug not in keep:
                del self.entries[slug]

    def dumps(self):
        return json.dumps({'posts': self.entries}, indent=2, sort_keys=True) + '\n'

    def save(self):
        """Write the index if it changed; returns True when the file was written."""
        content = self.dumps()
        if content == self._saved and os.path.exists(self.path):
            return False
        try:
            with open(self.path, 'w', encoding='utf-8') as f:
                f.write(content)
        except (IOError, OSError) as e:
            raise PostIOError(f"Couldn't write publish index {self.path}: {e}")
        self._saved = content
        return True


class PostCatalog:
    """Ordered collection of the posts rendered successfully in one run."""

    def __init__(self, site, renderer=None, templates=None):
        self.site = site
        self.renderer = renderer or PostRenderer(site, templates=templates)
        self.index = None
        self.posts = []
        self.warnings = []
        self.logger = logging.getLogger('Wellington.PostCatalog')

    def __len__(self):
        return len(self.posts)

    def __iter__(self):
        return iter(self.posts)

    def scan(self):
        """List the PostSources of the site, newest first."""
        self.index = PublishIndex.load(self.site.root)
        found = discover_posts(self.site.root)
        self.index.prune(slug for slug, _, _ in found)

        sources = [
            PostSource(slug, directory, source_path, self.index.assign(slug, source_path))
            for slug, directory, source_path in found
        ]
        self.logger.debug(f"Found {len(sources)} post directories in {self.site.root}")
        return sort_posts(sources)

    def build(self, sources, workers=None):
        """
        Render every source; keep the successes, record the failures.

        workers=None picks single-process rendering for small sites and a
        process pool from PARALLEL_THRESHOLD posts up; workers=1 forces a
        single process. The result is sorted by publish order either way.
        """
        if workers is None:
            parallel = len(sources) >= PARALLEL_THRESHOLD
        else:
            parallel = workers > 1

        if parallel and sources:
            self.logger.info(f"Rendering {len(sources)} posts with {workers or os.cpu_count()} workers")
            outcomes = self._build_with_multiprocessing(sources, workers)
        else:
            outcomes = [self.renderer.try_render(source) for source in sources]

        posts = []
        warnings = []
        for post, warning in outcomes:
            if warning is not None:
                self.logger.warning(f"Skipping post {warning}")
                warnings.append(warning)
            else:
                posts.append(post)

        self.posts = sort_posts(posts)
        self.warnings = sorted(warnings, key=lambda w: w.slug)
        return self.posts

    def _build_with_multiprocessing(self, sources, workers):
        outcomes = []
        with ProcessPoolExecutor(
            max_workers=workers,
            initializer=init_worker,
            initargs=(self.site,)
        ) as executor:
            futures = {executor.submit(render_in_worker, source): source for source in sources}
            for future in as_completed(futures):
                source = futures[future]
                try:
                    outcomes.append(future.result())
                except Exception as e:
                    outcomes.append((None, PostWarning(source.slug, 'error', f"worker failed: {e}")))
        return outcomes

    def save_index(self):
        if self.index is not None:
            self.index.save()
