"""Profile endpoint"""
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from sessionguard.api.cookies import error_response
from sessionguard.api.deps import get_auth_service, require_user
from sessionguard.core.service import AuthService
from sessionguard.core.store import UserSummary
from sessionguard.schemas.auth import ErrorResponse, ProfileData, ProfileResponse, ProfileUser

router = APIRouter(tags=["profile"])


@router.get("/profile", response_model=ProfileResponse, responses={404: {"model": ErrorResponse}})
def get_profile(
    user: UserSummary = Depends(require_user),
    service: AuthService = Depends(get_auth_service),
):
    """Return the signed-in user's profile (never the password hash)"""
    result = service.profile(user.id)
    if not result.ok:
        return error_response(result.error)

    found = result.session.user
    body = ProfileResponse(
        data=ProfileData(
            user=ProfileUser(
                id=found.id,
                email=found.email,
                name=found.name,
                is_active=found.is_active,
                created_at=found.created_at,
            )
        )
    )
    return JSONResponse(content=body.model_dump(mode="json"))
