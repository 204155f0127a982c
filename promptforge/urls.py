"""
urls.py — promptforge router registry

app.py mounts everything listed here.
"""

from __future__ import annotations

from .auth import auth_router
from .views.admin_api import router as admin_router
from .views.assistant_api import router as assistant_router
from .views.billing_api import router as billing_router
from .views.builds_api import router as builds_router
from .views.conversations_api import router as conversations_router
from .views.deployments_api import router as deployments_router
from .views.environments_api import router as environments_router
from .views.executions_api import router as executions_router
from .views.export_api import router as export_router
from .views.files_api import router as files_router
from .views.projects_api import router as projects_router
from .ws_progress import ws_router

ALL_ROUTERS = [
    auth_router,
    projects_router,
    files_router,
    conversations_router,
    executions_router,
    assistant_router,
    builds_router,
    deployments_router,
    environments_router,
    admin_router,
    billing_router,
    export_router,
    ws_router,
]
