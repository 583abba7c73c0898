"""ShipDesk — FastAPI dependencies (identity, DB, permissions)."""
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shipdesk.db.session import get_db, get_session_maker
from shipdesk.schemas.common import Actor
from shipdesk.services.job_store import JobStore, get_job_store

DbSession = Annotated[AsyncSession, Depends(get_db)]
SessionMaker = Annotated[async_sessionmaker[AsyncSession], Depends(get_session_maker)]
Jobs = Annotated[JobStore, Depends(get_job_store)]

# ── Permission keys ─────────────────────────────────────────────────────────
PERM_AWB_POOL_MANAGE = "awb_pool:manage"
PERM_SHIPMENTS_CREATE = "shipments:create"
PERM_SHIPMENTS_ASSIGN = "shipments:assign"
PERM_SHIPMENTS_UPDATE_STATUS = "shipments:update_status"
PERM_SHIPMENTS_READ = "shipments:read"

ROLE_ADMIN = "admin"
ROLE_SHOP = "shop"

# ── Role → permissions matrix ────────────────────────────────────────────────
_ADMIN_PERMS = {
    PERM_AWB_POOL_MANAGE,
    PERM_SHIPMENTS_CREATE,
    PERM_SHIPMENTS_ASSIGN,
    PERM_SHIPMENTS_UPDATE_STATUS,
    PERM_SHIPMENTS_READ,
}

_SHOP_PERMS = {
    PERM_SHIPMENTS_CREATE,
    PERM_SHIPMENTS_ASSIGN,
    PERM_SHIPMENTS_READ,
}

PERMISSION_MATRIX: dict[str, set[str]] = {
    ROLE_ADMIN: _ADMIN_PERMS,
    ROLE_SHOP: _SHOP_PERMS,
}


class CurrentUser(Actor):
    """Identity forwarded by the gateway in X-User-* headers."""

    store_id: str = ""

    def has_permission(self, permission: str) -> bool:
        return permission in PERMISSION_MATRIX.get(self.role, set())


async def require_auth(
    x_user_id: Annotated[str | None, Header()] = None,
    x_user_email: Annotated[str | None, Header()] = None,
    x_user_role: Annotated[str | None, Header()] = None,
    x_store_id: Annotated[str | None, Header()] = None,
) -> CurrentUser:
    """Require an identity. Raise 401 if the gateway did not forward one."""
    if not x_user_id or not x_user_role:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return CurrentUser(
        uid=x_user_id.strip(),
        email=(x_user_email or "").strip(),
        role=x_user_role.strip().lower(),
        store_id=(x_store_id or "").strip().lower(),
    )


def require_permission(permission: str):
    """Dependency factory: require specific RBAC permission."""

    async def _check(user: CurrentUser = Depends(require_auth)) -> CurrentUser:
        if not user.has_permission(permission):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission denied: '{permission}' required. Your role: {user.role}",
            )
        return user

    return _check
