import logging
from datetime import timedelta
from typing import Dict, Optional

import bcrypt
import jwt

from ..db import SessionFactory
from ..errors import AuthError, ConflictError, NotFoundError, ValidationError
from ..models import USER_ROLES, USER_STATUSES, Cart, Order, User, utcnow
from ..utils.dto import to_user_dto
from ..utils.pagination import normalize_paging, page_count
from ..utils.validators import normalize_email, normalize_phone, require_text
from .logging import log_event


logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    if not password or not hashed:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is malformed")
        return False


class TokenIssuer:
    """HS256 access/refresh tokens; refresh tokens use their own secret."""

    ALGORITHM = "HS256"

    def __init__(self, secret: str, refresh_secret: str, access_ttl: timedelta, refresh_ttl: timedelta) -> None:
        self._secret = secret
        self._refresh_secret = refresh_secret
        self._access_ttl = access_ttl
        self._refresh_ttl = refresh_ttl

    def issue(self, user: User) -> Dict[str, str]:
        now = utcnow()
        claims = {"sub": user.id, "role": user.role, "email": user.email, "iat": now}
        access = jwt.encode(
            {**claims, "type": "access", "exp": now + self._access_ttl}, self._secret, algorithm=self.ALGORITHM
        )
        refresh = jwt.encode(
            {**claims, "type": "refresh", "exp": now + self._refresh_ttl},
            self._refresh_secret,
            algorithm=self.ALGORITHM,
        )
        return {"access_token": access, "refresh_token": refresh}

    def decode_access(self, token: str) -> Dict:
        return self._decode(token, self._secret, "access")

    def decode_refresh(self, token: str) -> Dict:
        return self._decode(token, self._refresh_secret, "refresh")

    def _decode(self, token: str, secret: str, expected_type: str) -> Dict:
        try:
            claims = jwt.decode(token, secret, algorithms=[self.ALGORITHM])
        except jwt.ExpiredSignatureError:
            raise AuthError("Token expired") from None
        except jwt.InvalidTokenError:
            raise AuthError("Invalid token") from None
        if claims.get("type") != expected_type:
            raise AuthError("Invalid token")
        return claims


class AuthService:
    """Registration, login and user management backed by DB."""

    def __init__(self, session_factory: SessionFactory, tokens: TokenIssuer) -> None:
        self._session_factory = session_factory
        self._tokens = tokens

    def register(self, payload: Dict) -> Dict:
        fields = self._user_fields(payload)
        with self._session_factory() as session:
            self._ensure_email_free(session, fields["email"])
            user = User(
                **fields,
                role="user",
                status="inactive",
                last_activity=utcnow(),
            )
            session.add(user)
            session.flush()
            log_event("info", "user.registered", user_id=user.id)
            return {**self._tokens.issue(user), "user": to_user_dto(user)}

    def login(self, email: str, password: str) -> Dict:
        email = normalize_email(email)
        if not password:
            raise ValidationError("password is required", "password")
        with self._session_factory() as session:
            user = session.query(User).filter(User.email == email).first()
            if not user or not verify_password(password, user.password_hash):
                raise AuthError("Invalid email or password")
            user.last_activity = utcnow()
            user.status = "active"
            session.flush()
            return {**self._tokens.issue(user), "user": to_user_dto(user)}

    def refresh(self, refresh_token: Optional[str]) -> Dict:
        if not refresh_token:
            raise AuthError("Refresh token is required")
        claims = self._tokens.decode_refresh(refresh_token)
        with self._session_factory() as session:
            user = session.get(User, claims.get("sub"))
            if not user:
                raise NotFoundError("User not found")
            return self._tokens.issue(user)

    def authenticate(self, token: Optional[str]) -> Dict:
        """Resolve a bearer token to its user and record the activity."""
        if not token:
            raise AuthError("Token is missing")
        claims = self._tokens.decode_access(token)
        with self._session_factory() as session:
            user = session.get(User, claims.get("sub"))
            if not user:
                raise AuthError("User not found")
            user.last_activity = utcnow()
            session.flush()
            return to_user_dto(user)

    def get_user(self, user_id: str) -> Dict:
        with self._session_factory() as session:
            user = session.get(User, user_id)
            if not user:
                raise NotFoundError("User not found")
            return to_user_dto(user)

    def get_activity(self, user_id: str) -> Dict:
        user = self.get_user(user_id)
        return {
            "status": user["status"],
            "last_activity": user["last_activity"],
            "is_online": user["status"] == "active",
        }

    def update_profile(self, user_id: str, payload: Dict) -> Dict:
        with self._session_factory() as session:
            user = session.get(User, user_id)
            if not user:
                raise NotFoundError("User not found")
            if payload.get("email") is not None:
                email = normalize_email(payload["email"])
                if email != user.email:
                    self._ensure_email_free(session, email)
                    user.email = email
            for key in ("first_name", "last_name"):
                if payload.get(key) is not None:
                    setattr(user, key, require_text(payload[key], key))
            if "patronymic" in payload:
                user.patronymic = (payload.get("patronymic") or "").strip() or None
            if "phone_number" in payload:
                user.phone_number = normalize_phone(payload.get("phone_number"))
            session.flush()
            return to_user_dto(user)

    def list_users(self, *, page: int = 1, page_size: int = 10) -> Dict:
        p, ps = normalize_paging(page, page_size)
        with self._session_factory() as session:
            q = session.query(User)
            total = q.count()
            rows = q.order_by(User.created_at.desc()).offset((p - 1) * ps).limit(ps).all()
            return {
                "users": [to_user_dto(r) for r in rows],
                "pagination": {"page": p, "limit": ps, "total": total, "pages": page_count(total, ps)},
            }

    def create_user(self, payload: Dict) -> Dict:
        """Admin-side creation; role and status may be chosen."""
        fields = self._user_fields(payload)
        role = payload.get("role") or "user"
        status = payload.get("status") or "active"
        if role not in USER_ROLES:
            raise ValidationError(f"role must be one of {', '.join(USER_ROLES)}", "role")
        if status not in USER_STATUSES:
            raise ValidationError(f"status must be one of {', '.join(USER_STATUSES)}", "status")
        with self._session_factory() as session:
            self._ensure_email_free(session, fields["email"])
            user = User(**fields, role=role, status=status, last_activity=utcnow())
            session.add(user)
            session.flush()
            return to_user_dto(user)

    def delete_user(self, user_id: str, *, acting_user_id: str) -> None:
        if user_id == acting_user_id:
            raise ValidationError("You cannot delete your own account")
        with self._session_factory() as session:
            user = session.get(User, user_id)
            if not user:
                raise NotFoundError("User not found")
            if session.query(Order.id).filter(Order.user_id == user_id).first():
                raise ConflictError("User has orders and cannot be deleted")
            cart = session.query(Cart).filter(Cart.user_id == user_id).first()
            if cart is not None:
                session.delete(cart)
                session.flush()
            session.delete(user)
            log_event("info", "user.deleted", user_id=user_id, by=acting_user_id)

    @staticmethod
    def _user_fields(payload: Dict) -> Dict:
        password = payload.get("password") or ""
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"password must be at least {MIN_PASSWORD_LENGTH} characters", "password")
        return {
            "first_name": require_text(payload.get("first_name"), "first_name"),
            "last_name": require_text(payload.get("last_name"), "last_name"),
            "patronymic": (payload.get("patronymic") or "").strip() or None,
            "email": normalize_email(payload.get("email")),
            "password_hash": hash_password(password),
            "phone_number": normalize_phone(payload.get("phone_number")),
        }

    @staticmethod
    def _ensure_email_free(session, email: str) -> None:
        if session.query(User.id).filter(User.email == email).first():
            raise ConflictError("A user with this email already exists")
