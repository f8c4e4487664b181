from src.core.database.repositories import BaseRepository
from src.user.models import User


class UserRepository(BaseRepository[User]):

    model = User
