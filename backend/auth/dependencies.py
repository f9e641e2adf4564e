import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session, defer

from backend.auth import jwt_handler
from backend.core.errors import Unauthenticated
from backend.database import get_db
from backend.models.user import User

security = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None:
        raise Unauthenticated("Authorization required")

    try:
        user_id = jwt_handler.verify_access_token(credentials.credentials)
    except jwt.InvalidTokenError as exc:
        raise Unauthenticated("Invalid or expired token") from exc

    user = (
        db.query(User)
        .options(defer(User.password_hash))
        .filter(User.id == user_id)
        .first()
    )
    if user is None:
        raise Unauthenticated("User not found")
    return user
