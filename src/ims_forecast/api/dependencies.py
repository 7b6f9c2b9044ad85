"""Request dependencies resolving the services built at startup."""

from fastapi import HTTPException, Request

from ims_forecast.feeds.manager import FeedManager
from ims_forecast.feeds.store import FeedStore
from ims_forecast.services import Services


def get_services(request: Request) -> Services:
    """Dependency to get the service container of the running app."""
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(status_code=503, detail="Service is starting up")
    return services


def get_feed_store(request: Request) -> FeedStore:
    return get_services(request).feed_store


def get_feed_manager(request: Request) -> FeedManager:
    return get_services(request).feed_manager
