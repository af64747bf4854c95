from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from conduit.dependencies import get_user_storage
from conduit.schemas import UserCreate, UserResponse
from conduit.services import user_service
from conduit.storage import UserStorage

router = APIRouter(prefix="/api/v1/users", tags=["users"])

@router.post("", status_code=201, response_model=UserResponse)
async def create_user(data: UserCreate, storage: UserStorage = Depends(get_user_storage)):
    try:
        return await user_service.create_user(storage, data)
    except IntegrityError:
        raise HTTPException(
            status_code=409,
            detail="A user with this username or email already exists",
        )

@router.get("/{username}", response_model=UserResponse)
async def get_user(username: str, storage: UserStorage = Depends(get_user_storage)):
    user = await user_service.get_user(storage, username)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user
