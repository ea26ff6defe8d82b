from app.routers import blobs, dashboard, publish, results

__all__ = [
    "blobs",
    "dashboard",
    "publish",
    "results",
]
