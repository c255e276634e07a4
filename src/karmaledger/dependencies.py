"""Shared FastAPI dependencies."""

from fastapi import Request

from karmaledger.container import KarmaServices


def get_services(request: Request) -> KarmaServices:
    """The KarmaServices container built in the application lifespan."""
    services: KarmaServices | None = getattr(request.app.state, "services", None)
    if services is None:
        msg = "Services not initialized. The application lifespan has not run."
        raise RuntimeError(msg)
    return services
