"""
Request parameter access with PHP-style "is filled" semantics.

The routines endpoint distinguishes between query string (GET) and form
(POST) parameters; lookups without a source behave like a merged request
where POST values win.

Author: DSP Development Team
Version: 1.0.0
"""

from typing import Any, List, Optional

from django.http import QueryDict

SOURCE_GET = "get"
SOURCE_POST = "post"


def is_filled(value: Any) -> bool:
    """False for None, "", "0" and empty collections."""
    if value is None:
        return False
    if isinstance(value, (list, tuple, dict)):
        return len(value) > 0
    return str(value) not in ("", "0")


class RequestParams:
    def __init__(self, query: Optional[QueryDict] = None, post: Optional[QueryDict] = None):
        self.query = query if query is not None else QueryDict()
        self.post = post if post is not None else QueryDict()

    @classmethod
    def from_request(cls, request) -> "RequestParams":
        return cls(request.GET, request.POST)

    def _sources(self, source: Optional[str]):
        if source == SOURCE_GET:
            return [self.query]
        if source == SOURCE_POST:
            return [self.post]
        return [self.post, self.query]

    def get(self, key: str, default: Any = None, source: Optional[str] = None) -> Any:
        for params in self._sources(source):
            if key in params:
                return params.get(key)
        return default

    def getlist(self, key: str, source: Optional[str] = None) -> List[str]:
        for params in self._sources(source):
            if key in params:
                return params.getlist(key)
        return []

    def has(self, key: str, source: Optional[str] = None) -> bool:
        return any(key in params for params in self._sources(source))

    def filled(self, key: str, source: Optional[str] = None) -> bool:
        return is_filled(self.get(key, source=source))
