from fastapi import Request

from purchasing.services.request_store import RequestStore


def get_request_store(request: Request) -> RequestStore:
    """FastAPI dependency: the RequestStore built at startup (see main.lifespan)."""
    store = getattr(request.app.state, "request_store", None)
    if store is None:
        store = RequestStore()
        request.app.state.request_store = store
    return store
