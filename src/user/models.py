from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.core.database.base import Base
from src.core.database.mixins import CreatedAtMixin, IntegerIDMixin


class User(Base, IntegerIDMixin, CreatedAtMixin):
    __tablename__ = "users"

    username: Mapped[str] = mapped_column(String(60), unique=True, index=True)
    # "<salt hex>:<scrypt key hex>", see src.core.utils.security.hash_password
    password_hash: Mapped[str] = mapped_column(String(255))
    secret_message: Mapped[str] = mapped_column(Text)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username={self.username!r})>"
