from __future__ import annotations

import httpx
import pytest


def _site_transport(files: dict, *, home_status: int = 200, errors: dict | None = None, seen: list | None = None):
    """MockTransport serving `files` (path -> body or (status, body)).

    Paths ending in "/" are the homepage. `errors` maps a path, or "*" for
    every path, to an exception factory taking the request.
    """
    errors = errors or {}

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if seen is not None:
            seen.append(request)
        factory = errors.get(path) or errors.get("*")
        if factory is not None:
            raise factory(request)
        if path in files:
            entry = files[path]
            if isinstance(entry, tuple):
                status, body = entry
                return httpx.Response(status, text=body)
            return httpx.Response(200, text=entry)
        if path.endswith("/"):
            return httpx.Response(home_status, text="<html><body>home</body></html>")
        return httpx.Response(404, text="Not Found")

    return httpx.MockTransport(handler)


@pytest.fixture
def site():
    return _site_transport
