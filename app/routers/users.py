from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from app.database import get_db
from app.dependencies import get_current_user, get_optional_user
from app.models import User
from app.schemas import ProfileResponse, UserCreate, UserResponse
from app.services import user_service

router = APIRouter(prefix="/api/v1/users", tags=["users"])

@router.post("", status_code=201, response_model=UserResponse)
async def create_user(data: UserCreate, db: AsyncSession = Depends(get_db)):
    try:
        return await user_service.create_user(db, data)
    except IntegrityError:
        await db.rollback()
        raise HTTPException(
            status_code=409,
            detail="A user with this username or email already exists",
        )

@router.get("/{username}", response_model=ProfileResponse)
async def get_profile(
    username: str,
    viewer: User | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.get_profile(db, username, viewer)

@router.post("/{username}/follow", response_model=ProfileResponse)
async def follow_user(
    username: str,
    requester: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.follow_user(db, requester, username)

@router.delete("/{username}/follow", response_model=ProfileResponse)
async def unfollow_user(
    username: str,
    requester: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.unfollow_user(db, requester, username)
