from sqlalchemy.orm import Session
from storefront.data.models.user import UserModel
from storefront.domain.events import UserLoggedIn
from storefront.repos.user_repo import UserRepo
from storefront.domain.schemas import UserCreate, UserRead
from storefront.services.login_events import handle_user_logged_in
from storefront.services.merge_service import CartMergeService, MergeResult


class UserService:
    def __init__(self, db: Session):
        self.repo = UserRepo(db)

    def create_user(self, payload: UserCreate) -> UserRead:
        existing = self.repo.get_user(payload.id)
        if existing:
            return UserRead(id=existing.id, name=existing.name)

        user = UserModel(id=payload.id, name=payload.name)
        created = self.repo.create_user(user)
        return UserRead(id=created.id, name=created.name)

    def get_user(self, user_id: int) -> UserRead:
        user = self.repo.get_user(user_id)
        if not user:
            raise LookupError("User not found")
        return UserRead(id=user.id, name=user.name)

    def login(
        self,
        user_id: int,
        session_id: str | None,
        merge_service: CartMergeService,
    ) -> MergeResult:
        #uwierzytelnienie robi gateway, tu tylko hook po zalogowaniu
        if not self.repo.exists(user_id):
            raise LookupError("User not found")
        return handle_user_logged_in(UserLoggedIn(user_id=user_id, session_id=session_id), merge_service)
