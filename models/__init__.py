"""
Imports every ORM model so that Alembic autogenerate and the mapper registry
see the complete schema, including the users -> refresh_tokens foreign key.
"""

from src.user.auth.models import RefreshToken as RefreshToken
from src.user.models import User as User
