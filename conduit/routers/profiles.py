from fastapi import APIRouter, Depends, HTTPException
from conduit.dependencies import get_current_user_id, get_optional_user_id, get_user_storage
from conduit.schemas import ForResponseProfile
from conduit.services import user_service
from conduit.storage import UserStorage

router = APIRouter(prefix="/api/v1/profiles", tags=["profiles"])

@router.get("/{username}", response_model=ForResponseProfile)
async def get_profile(
    username: str,
    viewer_id: int | None = Depends(get_optional_user_id),
    storage: UserStorage = Depends(get_user_storage),
):
    profile = await user_service.get_profile(storage, username, viewer_id)
    if profile is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    return ForResponseProfile(profile=profile)

@router.post("/{username}/follow", response_model=ForResponseProfile)
async def follow_user(
    username: str,
    user_id: int = Depends(get_current_user_id),
    storage: UserStorage = Depends(get_user_storage),
):
    profile = await user_service.follow(storage, user_id, username)
    if profile is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    return ForResponseProfile(profile=profile)

@router.delete("/{username}/follow", response_model=ForResponseProfile)
async def unfollow_user(
    username: str,
    user_id: int = Depends(get_current_user_id),
    storage: UserStorage = Depends(get_user_storage),
):
    profile = await user_service.unfollow(storage, user_id, username)
    if profile is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    return ForResponseProfile(profile=profile)
