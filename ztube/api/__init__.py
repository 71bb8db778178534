"""API routers for ztube."""

from ztube.api.routes_channel import router as channel_router
from ztube.api.routes_feed import router as feed_router
from ztube.api.routes_health import router as health_router
from ztube.api.routes_hidden import router as hidden_router
from ztube.api.routes_history import router as history_router
from ztube.api.routes_playlists import router as playlists_router
from ztube.api.routes_search import router as search_router
from ztube.api.routes_settings import router as settings_router
from ztube.api.routes_subscriptions import router as subscriptions_router
from ztube.api.routes_video import router as video_router

__all__ = [
    "channel_router",
    "feed_router",
    "health_router",
    "hidden_router",
    "history_router",
    "playlists_router",
    "search_router",
    "settings_router",
    "subscriptions_router",
    "video_router",
]
