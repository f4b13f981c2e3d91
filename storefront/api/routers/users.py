from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.orm import Session
from storefront.api.deps import current_session_id, current_user_id, get_merge_service
from storefront.data.database import get_db
from storefront.services.merge_service import CartMergeService
from storefront.services.user_service import UserService
from storefront.domain.schemas import LoginOut, UserCreate, UserRead
from storefront.utils.settings import SESSION_COOKIE_NAME

router = APIRouter(prefix="/users", tags=["users"])

@router.post("/", response_model=UserRead)
def create_user(payload: UserCreate, db: Session = Depends(get_db)):
    return UserService(db).create_user(payload)

@router.get("/{user_id}", response_model=UserRead)
def get_user(user_id: int, db: Session = Depends(get_db)):
    service = UserService(db)
    try:
        return service.get_user(user_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))

@router.post("/{user_id}/login", response_model=LoginOut)
def login(
    user_id: int,
    request: Request,
    response: Response,
    authenticated_id: int | None = Depends(current_user_id),
    session_id: str | None = Depends(current_session_id),
    merge_service: CartMergeService = Depends(get_merge_service),
    db: Session = Depends(get_db),
):
    """
    Called once the gateway has authenticated the user.
    Raises UserLoggedIn for the guest session carried in the cookie.
    """
    if authenticated_id != user_id:
        raise HTTPException(status_code=403, detail="Cannot log in as another user")

    service = UserService(db)
    try:
        result = service.login(user_id, session_id, merge_service)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))

    #middleware moglo juz scalic koszyk w tym samym requescie
    earlier = getattr(request.state, "cart_merge", None)
    if earlier is not None and earlier.applied and not result.applied:
        result = earlier

    #czyscimy cookie tylko gdy przyszlo i middleware go jeszcze nie wygasil
    if SESSION_COOKIE_NAME in request.cookies and earlier is None:
        response.delete_cookie(SESSION_COOKIE_NAME)
    return {"user_id": user_id, "merge": result.outcome, "cart_id": result.cart_id}
