"""
Admin router for MinistryPath.
"""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..auth import get_current_admin
from ..database import get_db
from ..models import LogEntry, User
from .. import schemas
from ..services.audit_service import AuditService
from ..logging_setup import logger
from ..roles import role_level

router = APIRouter(prefix="/admin", tags=["admin"])

LOG_SORT_FIELDS = {"timestamp", "level", "event", "user_email", "status_code"}
USER_SORT_FIELDS = {"id", "email", "role", "created_at", "last_login"}


def _sort_clause(model, sort_by: str, order: str, allowed: set):
    if sort_by not in allowed:
        raise HTTPException(status_code=400, detail=f"Cannot sort by '{sort_by}'")
    column = getattr(model, sort_by)
    return column.desc() if order.lower() == "desc" else column.asc()


@router.get("/logs")
async def get_system_logs(
    level: str = None,
    user_email: str = None,
    event: str = None,
    sort_by: str = "timestamp",
    order: str = "desc",
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    """
    Retrieve system logs from the database with filtering, sorting, and pagination.
    Only accessible by administrators.
    """
    query = db.query(LogEntry)

    # Filtering
    if level:
        query = query.filter(LogEntry.level == level.upper())
    if user_email:
        query = query.filter(LogEntry.user_email.ilike(f"%{user_email}%"))
    if event:
        query = query.filter(LogEntry.event.ilike(f"%{event}%"))

    sort_attr = _sort_clause(LogEntry, sort_by, order, LOG_SORT_FIELDS)

    total = query.count()
    pages = (total + limit - 1) // limit

    offset = (page - 1) * limit
    logs = query.order_by(sort_attr).offset(offset).limit(limit).all()

    items = [
        {
            "id": log.id,
            "timestamp": log.timestamp.isoformat() if log.timestamp else None,
            "level": log.level,
            "event": log.event,
            "user_email": log.user_email,
            "path": log.path,
            "method": log.method,
            "status_code": log.status_code,
            "request_id": log.request_id,
            "exception": log.exception,
            "context": log.context
        }
        for log in logs
    ]

    return {
        "items": items,
        "total": total,
        "page": page,
        "limit": limit,
        "pages": pages
    }


@router.get("/users")
async def list_all_users(
    role: str = None,
    email: str = None,
    include_archived: bool = False,
    sort_by: str = "id",
    order: str = "asc",
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    """
    List users with filtering, sorting, and pagination.
    Only accessible by administrators.
    """
    query = db.query(User)

    if not include_archived:
        query = query.filter(User.is_archived.is_(False))
    if role:
        query = query.filter(User.role == role.lower())
    if email:
        query = query.filter(User.email.ilike(f"%{email}%"))

    sort_attr = _sort_clause(User, sort_by, order, USER_SORT_FIELDS)

    total = query.count()
    pages = (total + limit - 1) // limit

    offset = (page - 1) * limit
    users = query.order_by(sort_attr).offset(offset).limit(limit).all()

    return {
        "items": [schemas.UserResponse.model_validate(u) for u in users],
        "total": total,
        "page": page,
        "limit": limit,
        "pages": pages
    }


@router.patch("/users/{user_id}", response_model=schemas.UserResponse)
async def update_user(
    user_id: int,
    user_data: schemas.UserUpdate,
    current_admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    """
    Update a user's role, archive flag or name.
    Only accessible by administrators.
    """
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    caller_level = role_level(current_admin.role)
    if role_level(user.role) > caller_level:
        raise HTTPException(status_code=403, detail="Cannot modify a user above your role")

    updates = user_data.model_dump(exclude_unset=True, exclude_none=True)
    if "role" in updates and role_level(updates["role"]) > caller_level:
        raise HTTPException(status_code=403, detail="Cannot assign a role above your own")

    previous_role = user.role
    for field, value in updates.items():
        setattr(user, field, value)

    AuditService.log_action(
        db=db,
        user=current_admin,
        action="user_updated_by_admin",
        target_type="user",
        target_id=str(user.id),
        details={
            "target_user_email": user.email,
            "previous_role": previous_role,
            "updates": updates
        }
    )
    db.commit()
    db.refresh(user)

    logger.info("user_updated_by_admin", target_user_id=user.id, fields=sorted(updates))
    return user
