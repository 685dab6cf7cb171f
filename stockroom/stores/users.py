# stockroom/stores/users.py
from stockroom.errors import NotFoundError
from stockroom.schemas.user import User, UserFilters
from stockroom.stores.base import ResourceStore


class UserStore(ResourceStore[User, str]):
    filters_schema = UserFilters
    name = "user"

    async def toggle_status(self, user_id: str) -> User:
        user = next((u for u in self.items if u.id == user_id), None)
        if user is None and self.current is not None and self.current.id == user_id:
            user = self.current
        if user is None:
            raise NotFoundError(f"user {user_id} is not loaded")
        return await self.update(user_id, {"is_active": not user.is_active})
