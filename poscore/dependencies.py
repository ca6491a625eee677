"""FastAPI dependencies for the collaborators wired onto app.state."""

from fastapi import Request

from poscore.auth.provider import IdentityProvider
from poscore.storage import TableStore


def get_store(request: Request) -> TableStore:
    return request.app.state.store


def get_identity_provider(request: Request) -> IdentityProvider:
    return request.app.state.identity
