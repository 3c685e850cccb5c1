"""
User API Endpoints.

User records, search and role management.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Path, Query, Response, status
from sqlalchemy import func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from zapshift.app.core.dependencies import get_verified_identity
from zapshift.app.core.exceptions import ResourceNotFoundError
from zapshift.app.core.guards import require_admin
from zapshift.app.db.repository import DuplicateKeyError, user_repository
from zapshift.app.db.session import get_db, utcnow
from zapshift.app.models.enums import UserRole
from zapshift.app.models.user import User
from zapshift.app.schemas.common import InsertResult, UpdateResult
from zapshift.app.schemas.user import RoleResponse, RoleUpdate, UserCreate, UserResponse
from zapshift.app.services.audit import AuditAction, log_event

router = APIRouter(prefix="/users", tags=["Users"])

SEARCH_LIMIT = 10


@router.get("", response_model=List[UserResponse])
async def search_users(
    search_text: Optional[str] = Query(None, alias="searchText"),
    identity: dict = Depends(get_verified_identity),
    db: AsyncSession = Depends(get_db)
):
    """
    Search users by name or email (case-insensitive substring), newest first.

    Returns at most 10 users. Requires a verified identity.
    """
    where = []
    if search_text:
        needle = search_text.lower()
        where.append(or_(
            func.lower(User.name).contains(needle, autoescape=True),
            func.lower(User.email).contains(needle, autoescape=True),
        ))

    users = await user_repository.find(
        db, where=where, order_by="created_at", descending=True, limit=SEARCH_LIMIT
    )
    return [UserResponse.model_validate(u) for u in users]


@router.get("/{email}/role", response_model=RoleResponse)
async def get_user_role(
    email: str = Path(..., description="User email"),
    db: AsyncSession = Depends(get_db)
):
    """Role of the user with this email; "user" when no record exists."""
    user = await user_repository.find_one(db, email=email)
    return RoleResponse(role=user.role if user else UserRole.USER)


@router.post("", response_model=InsertResult, status_code=status.HTTP_201_CREATED)
async def create_user(
    user_data: UserCreate,
    response: Response,
    db: AsyncSession = Depends(get_db)
):
    """
    Record a user on first sign-in.

    An existing email is answered with "User already exists" (200) and no
    second record is created.
    """
    existing = await user_repository.find_one(db, email=user_data.email)
    if existing:
        response.status_code = status.HTTP_200_OK
        return InsertResult(acknowledged=False, message="User already exists")

    try:
        user = await user_repository.insert(db, {
            "email": user_data.email,
            "name": user_data.name,
            "photo_url": user_data.photo_url,
            "role": UserRole.USER,
            "created_at": utcnow(),
        })
    except DuplicateKeyError:
        # Concurrent sign-in created the record first
        response.status_code = status.HTTP_200_OK
        return InsertResult(acknowledged=False, message="User already exists")

    await log_event(
        db=db,
        action=AuditAction.USER_CREATED,
        actor_email=user.email,
        target_email=user.email,
    )
    return InsertResult(inserted_id=user.id)


@router.patch("/{user_id}/role", response_model=UpdateResult)
async def change_user_role(
    user_id: int = Path(..., description="User ID"),
    role_data: RoleUpdate = ...,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Change a user's role (admin only). Admins cannot change their own role."""
    user = await user_repository.get(db, user_id)
    if not user:
        raise ResourceNotFoundError("User", user_id)

    if user.email == admin["email"]:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot change your own role"
        )

    previous_role = user.role
    outcome = await user_repository.update(db, user_id, {"role": role_data.role})

    if outcome.modified_count:
        await log_event(
            db=db,
            action=AuditAction.ROLE_CHANGED,
            actor_email=admin["email"],
            target_email=user.email,
            metadata={"previous_role": previous_role.value, "new_role": role_data.role.value},
        )
    return UpdateResult.from_outcome(outcome)
