from fastapi import APIRouter, Depends

from vaccine_booking.auth.dependencies import get_current_user
from vaccine_booking.auth.identity import CallerContext

router = APIRouter(tags=["auth"])


@router.get("/me")
def me(current_user: CallerContext = Depends(get_current_user)):
    return {"user_id": current_user.user_id, "email": current_user.email, "role": current_user.role.value}
