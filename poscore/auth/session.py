"""
Per-request cookie carrier.

Anything that needs to change the session cookie during a request (issuing,
rotating or clearing it) records the change here. Whoever builds the final
response applies the carrier to it, whatever that response turns out to be.
"""

from starlette.responses import Response

from poscore.config import settings


class SessionCarrier:
    def __init__(self):
        self._cookies: dict[str, dict | None] = {}

    def set(self, name: str, value: str, max_age: int) -> None:
        self._cookies[name] = {
            "value": value,
            "max_age": max_age,
            "httponly": True,
            "secure": settings.session_cookie_secure,
            "samesite": "lax",
            "path": "/",
        }

    def delete(self, name: str) -> None:
        self._cookies[name] = None

    @property
    def pending(self) -> bool:
        return bool(self._cookies)

    def value(self, name: str) -> str | None:
        cookie = self._cookies.get(name)
        return cookie["value"] if cookie else None

    def apply(self, response: Response) -> Response:
        for name, cookie in self._cookies.items():
            if cookie is None:
                response.delete_cookie(name, path="/")
            else:
                response.set_cookie(name, **cookie)
        return response
