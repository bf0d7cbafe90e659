"""Slug derivation shared by categories and articles."""

import re
from typing import Optional

from django.utils.text import slugify

_AMPERSAND = re.compile(r"\s*&\s*")


def derive_slug(text, max_length: Optional[int] = None) -> str:
    """Derive a URL-safe slug from a display name.

    ``&`` becomes the word ``and``; everything else is Django's ``slugify``:
    ASCII transliteration, lowercase, punctuation stripped, runs of whitespace
    and hyphens collapsed to one hyphen, leading/trailing hyphens and
    underscores trimmed. Applying it to its own output is a no-op.

    With ``max_length`` a longer result is cut back to the last whole word
    that fits.

    >>> derive_slug("Web Development & Design!")
    'web-development-and-design'
    """

    if text is None:
        return ""
    slug = slugify(_AMPERSAND.sub(" and ", str(text)))
    if max_length is None or len(slug) <= max_length:
        return slug
    cut = slug[:max_length]
    if slug[max_length] != "-" and "-" in cut:
        cut = cut.rsplit("-", 1)[0]
    return cut.strip("-_")


__all__ = ["derive_slug"]
