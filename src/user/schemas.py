from datetime import datetime

from src.core.schemas import Base


class UserProfileViewModel(Base):
    username: str
    secret_message: str
    created_at: datetime
