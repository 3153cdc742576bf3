"""Test helpers: a programmable httpx transport."""

from __future__ import annotations

import httpx


class MockTransport(httpx.AsyncBaseTransport):
    """Programmable transport returning canned responses per URL path.

    routes: ``{path_prefix: [(status, json_body), ...]}``; responses are
    consumed in order, and an exception in place of a body is raised.
    Every request is recorded in ``calls``.
    """

    def __init__(self, routes: dict[str, list]):
        self._routes = routes
        self.calls: list[httpx.Request] = []

    async def handle_async_request(self, request: httpx.Request):
        self.calls.append(request)
        path = request.url.path
        for prefix, responses in self._routes.items():
            if path.startswith(prefix):
                status, body = responses.pop(0) if responses else (200, {})
                if isinstance(body, Exception):
                    raise body
                return httpx.Response(status, json=body)
        return httpx.Response(404, json={"error": "not found"})
