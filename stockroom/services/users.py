# stockroom/services/users.py
from stockroom.schemas.user import User, UserCreate, UserUpdate
from stockroom.services.base import CrudService


class UserService(CrudService[User]):
    path = "/users"
    model = User
    create_schema = UserCreate
    update_schema = UserUpdate
