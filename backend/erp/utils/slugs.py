from __future__ import annotations
import re
import unicodedata

_NON_WORD = re.compile(r'[^a-z0-9]+')


def slugify(value: str, separator: str = '-') -> str:
    """'High Alumina Bricks (60%)' -> 'high-alumina-bricks-60'."""
    ascii_value = unicodedata.normalize('NFKD', value or '').encode('ascii', 'ignore').decode('ascii')
    return _NON_WORD.sub(separator, ascii_value.lower()).strip(separator)

__all__ = ['slugify']
