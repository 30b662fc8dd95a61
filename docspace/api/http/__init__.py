from docspace.api.http.workspace import router as workspace_router
from docspace.api.http.contributions import router as contributions_router

__all__ = [
    "workspace_router",
    "contributions_router"
]
