"""
Error taxonomy for Wellington.

Per-post errors (ParseError, ContentError, TemplateError, PostIOError) are
downgraded to warnings by the post renderer; anything raised while building
the aggregate views ends the run as a SyncError.
"""


class WellingtonError(Exception):
    """Base class for every error raised by the pipeline."""

    kind = 'error'

    def __init__(self, message, slug=None):
        super().__init__(message)
        self.message = message
        self.slug = slug

    def with_slug(self, slug):
        """Attach the owning post slug and return self for re-raising."""
        if self.slug is None:
            self.slug = slug
        return self

    def __str__(self):
        if self.slug:
            return f"{self.slug}: {self.message}"
        return self.message


class ParseError(WellingtonError):
    """A note marker is unbalanced or otherwise malformed."""

    kind = 'parse'

    def __init__(self, message, line=None, slug=None):
        if line is not None:
            message = f"{message} (line {line})"
        super().__init__(message, slug=slug)
        self.line = line


class ContentError(WellingtonError):
    """The post is readable but unusable, e.g. it has no title heading."""

    kind = 'content'


class TemplateError(WellingtonError):
    kind = 'template'


class PostIOError(WellingtonError):
    kind = 'io'


class ConfigError(WellingtonError):
    kind = 'config'


class SyncError(WellingtonError):
    """Fatal failure of a whole sync run."""

    kind = 'sync'

    def __init__(self, message, report=None):
        super().__init__(message)
        self.report = report
