import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import audit_logs, auth, portal, renewals, system, tasks, users
from .api import settings as settings_api
from .config import settings
from .core.errors import register_exception_handlers
from .core.logging import configure_logging
from .models.models import User
from .seeds.demo import seed_demo_data
from .services.permissions import mirror_admin_permissions
from .services.store import AppState, app_state

logger = logging.getLogger(__name__)

PLATFORM_OWNER_ID = "user-platform-owner"


def ensure_platform_owner(state: AppState) -> User:
    existing = next((user for user in state.users if user.role == "platform_owner"), None)
    if existing:
        return existing
    owner = User(
        id=PLATFORM_OWNER_ID,
        name=settings.platform_owner_name,
        email=settings.platform_owner_email,
        role="platform_owner",
        permissions=mirror_admin_permissions(),
    )
    state.users.add(owner)
    logger.info("Created platform owner account %s", owner.email)
    return owner


app = FastAPI(title=settings.app_name)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


@app.on_event("startup")
def startup() -> None:
    configure_logging(settings.log_level, settings.log_json)
    ensure_platform_owner(app_state)
    if settings.seed_demo_data:
        seed_demo_data(app_state)


app.include_router(auth.router, prefix="/auth", tags=["auth"])
app.include_router(users.router, prefix="/users", tags=["users"])
app.include_router(tasks.router, prefix="/tasks", tags=["tasks"])
app.include_router(renewals.router, prefix="/renewals", tags=["renewals"])
app.include_router(settings_api.router, prefix="/settings", tags=["settings"])
app.include_router(portal.router, prefix="/portal", tags=["portal"])
app.include_router(audit_logs.router)
app.include_router(system.router, prefix="/system", tags=["system"])
