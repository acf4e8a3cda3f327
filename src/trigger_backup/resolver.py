from __future__ import annotations

import fnmatch
import logging
from typing import Callable, Iterable, List, Optional, Sequence, Union

LOG = logging.getLogger(__name__)

WILDCARD_CHARS = ("*", "?", "[")

Catalog = Callable[[], Sequence[str]]


def split_requests(requests: Union[str, Iterable[str]]) -> List[str]:
    """Split comma-separated requests into trimmed, non-empty tokens."""
    if isinstance(requests, str):
        requests = [requests]
    tokens: List[str] = []
    for request in requests:
        tokens.extend(token.strip() for token in request.split(","))
    return [token for token in tokens if token]


def is_wildcard(token: str) -> bool:
    return any(char in token for char in WILDCARD_CHARS)


class TriggerResolver:
    """Expands trigger requests into the ordered list of triggers to perform.

    Literal names pass through untouched; their existence is checked when the
    job is loaded. Wildcard tokens are matched against ``catalog()`` and expand
    in catalog order.
    """

    def __init__(self, catalog: Catalog) -> None:
        self._catalog = catalog

    def resolve(self, requests: Union[str, Iterable[str]], deduplicate: bool = False) -> List[str]:
        known: Optional[Sequence[str]] = None
        resolved: List[str] = []

        for token in split_requests(requests):
            if not is_wildcard(token):
                resolved.append(token)
                continue

            if known is None:
                known = list(self._catalog())
            matches = [name for name in known if fnmatch.fnmatchcase(name, token)]
            if not matches:
                LOG.warning("No triggers match '%s'", token)
            resolved.extend(matches)

        if deduplicate:
            resolved = list(dict.fromkeys(resolved))
        return resolved
