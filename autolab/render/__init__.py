"""Template rendering for instance bootstrap scripts."""

from autolab.render.userdata import (
    INDEX_HTML_KEY,
    REQUIRED_KEYS,
    render_template,
    render_user_data,
)

__all__ = [
    "INDEX_HTML_KEY",
    "REQUIRED_KEYS",
    "render_template",
    "render_user_data",
]
