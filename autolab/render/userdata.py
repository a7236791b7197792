"""Instance user-data renderer: replaces ``${REGSUB_*}`` tokens.

Replacement is **text-level** so the bootstrap script reaches the
instance byte-for-byte apart from the substituted tokens.  The web page
is inlined through ``${REGSUB_INDEX_HTML}`` inside a quoted heredoc in
the template, so its contents are never shell-expanded.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, FrozenSet, List, Optional

logger = logging.getLogger(__name__)

# ── constants ────────────────────────────────────────────────────────

INDEX_HTML_KEY = "REGSUB_INDEX_HTML"

#: Keys that must be supplied; an empty value is allowed.
REQUIRED_KEYS: FrozenSet[str] = frozenset({INDEX_HTML_KEY})


# ── public API ───────────────────────────────────────────────────────


def render_template(
    template_text: str,
    substitutions: Dict[str, str],
    *,
    required_keys: Optional[FrozenSet[str]] = None,
) -> str:
    """Replace all ``${KEY}`` tokens in *template_text*.

    Parameters
    ----------
    template_text:
        Raw template content.
    substitutions:
        Mapping of key to value; keys carry the ``REGSUB_`` prefix.
    required_keys:
        Keys that **must** be present (possibly empty).  Defaults to
        :data:`REQUIRED_KEYS`.

    Raises
    ------
    ValueError
        If a required key is missing.
    """
    if required_keys is None:
        required_keys = REQUIRED_KEYS

    missing: List[str] = sorted(
        k for k in required_keys if substitutions.get(k) is None
    )
    if missing:
        raise ValueError(
            f"Missing required substitution key(s): {', '.join(missing)}"
        )

    # sorted keys keep the output deterministic
    result = template_text
    for key in sorted(substitutions):
        result = result.replace("${" + key + "}", substitutions[key])
    return result


def render_user_data(template_path: Path, page_path: Path) -> str:
    """Return the bootstrap script with *page_path* inlined.

    Raises
    ------
    FileNotFoundError
        If either file does not exist.
    """
    for path in (template_path, page_path):
        if not Path(path).is_file():
            raise FileNotFoundError(f"Bootstrap file not found: {path}")

    page = Path(page_path).read_text(encoding="utf-8").rstrip("\n")
    script = render_template(
        Path(template_path).read_text(encoding="utf-8"),
        {INDEX_HTML_KEY: page},
    )
    logger.debug("Rendered user data from %s (%d bytes)", template_path, len(script))
    return script
