"""
Jinja2 adapter: render(name, values) -> text, raising TemplateError.

Two templates exist, ``post`` and ``index``. Each comes from, in order of
preference, the path configured for the site, the dotfile override in the
site root (.post_template.html / .index_template.html), or the default
shipped with the package.
"""

import logging
import os

import jinja2
from jinja2 import Environment, PackageLoader, StrictUndefined, select_autoescape
from markupsafe import Markup

from .errors import TemplateError

OVERRIDE_FILES = {
    'post': '.post_template.html',
    'index': '.index_template.html',
}

DEFAULT_FILES = {
    'post': 'post.html',
    'index': 'index.html',
}

SAMPLE_POST = {
    'title': 'Sample post',
    'body': '<p>Sample body</p>',
    'slug': 'sample-post',
    'published': 'January 01, 2000',
    'excerpt': 'Sample body',
}


def default_template_source(name):
    """Return the packaged default template text for 'post' or 'index'."""
    env = Environment(loader=PackageLoader('wellington_pkg', 'templates'))
    source, _, _ = env.loader.get_source(env, DEFAULT_FILES[name])
    return source


class TemplateEngine:
    def __init__(self, site):
        self.site = site
        self.logger = logging.getLogger('Wellington.TemplateEngine')
        self.env = Environment(
            loader=PackageLoader('wellington_pkg', 'templates'),
            autoescape=select_autoescape(['html', 'xml'], default_for_string=True),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
        )
        self._templates = {}

    def template_path(self, name):
        """Path of the user override for name, or None when the default applies."""
        configured = self.site.post_template if name == 'post' else self.site.index_template
        if configured:
            if not os.path.isfile(configured):
                raise TemplateError(f"Configured {name} template not found: {configured}")
            return configured
        candidate = os.path.join(self.site.root, OVERRIDE_FILES[name])
        if os.path.isfile(candidate):
            return candidate
        return None

    def _load(self, name):
        if name in self._templates:
            return self._templates[name]
        if name not in DEFAULT_FILES:
            raise TemplateError(f"Unknown template: {name}")

        path = self.template_path(name)
        try:
            if path:
                with open(path, 'r', encoding='utf-8') as f:
                    template = self.env.from_string(f.read())
                self.logger.debug(f"Using {name} template from {path}")
            else:
                template = self.env.get_template(DEFAULT_FILES[name])
        except (IOError, OSError) as e:
            raise TemplateError(f"Couldn't read template {path}: {e}")
        except jinja2.TemplateSyntaxError as e:
            raise TemplateError(f"Template at {path or DEFAULT_FILES[name]} has bad syntax: {e}")
        except jinja2.TemplateNotFound as e:
            raise TemplateError(f"Template not found: {e}")

        self._templates[name] = template
        return template

    def render(self, name, values):
        """Render the named template against a mapping of values."""
        template = self._load(name)
        values = dict(values)
        if 'body' in values:
            values['body'] = Markup(values['body'])
        try:
            return template.render(**values)
        except jinja2.UndefinedError as e:
            raise TemplateError(f"{name} template uses an unknown placeholder: {e}")
        except jinja2.TemplateError as e:
            raise TemplateError(f"Failed to render {name} template: {e}")

    def site_values(self):
        return {
            'site_title': self.site.title,
            'home_url': self.site.home_url,
            'desc': self.site.description,
            'author': self.site.author,
        }

    def validate(self):
        """Render both templates against sample values; raises TemplateError."""
        post_values = dict(SAMPLE_POST, **self.site_values())
        self.render('post', post_values)
        index_values = dict(self.site_values(), title=self.site.title,
                            posts=[dict(SAMPLE_POST, link='sample-post/')])
        self.render('index', index_values)
