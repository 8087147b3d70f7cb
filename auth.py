import hmac
import logging
import os
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional
from uuid import uuid4

from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import EmailStr, TypeAdapter, ValidationError
from pymongo.collection import Collection

from database import serialize_doc, to_object_id, utcnow_iso
from errors import StoreError
from schemas import ROLES, User as UserSchema

logger = logging.getLogger(__name__)

# JWT Config
SECRET_KEY = os.getenv("JWT_SECRET", "dev-secret-change")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 60 * 24 * 7  # 7 days

MIN_PASSWORD_LENGTH = 6

# Shared keys that allow registering an elevated role. A role with no key
# configured cannot be granted at all.
ROLE_ACCESS_KEYS: Dict[str, Optional[str]] = {
    "admin": os.getenv("ADMIN_ACCESS_KEY"),
    "moderator": os.getenv("MODERATOR_ACCESS_KEY"),
}

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

email_adapter = TypeAdapter(EmailStr)

AUTH_ERROR_MESSAGES = {
    "register": {
        "auth/email-already-in-use": "An account with this email already exists.",
        "auth/invalid-email": "Please enter a valid email address.",
        "auth/weak-password": "Password is too weak. Please choose a stronger password.",
        "auth/invalid-access-key": "Invalid access key. Please contact the system administrator.",
        "auth/invalid-role": "Unknown account role.",
    },
    "login": {
        "auth/user-not-found": "No account found with this email address.",
        "auth/wrong-password": "Incorrect password. Please try again.",
        "auth/invalid-email": "Please enter a valid email address.",
        "auth/too-many-requests": "Too many failed attempts. Please try again later.",
    },
    "session": {
        "auth/invalid-token": "Invalid or expired token",
    },
}

GENERIC_AUTH_MESSAGES = {
    "register": "Registration failed. Please try again.",
    "login": "Login failed. Please check your credentials and try again.",
    "session": "Not authenticated",
}

AUTH_ERROR_STATUS = {
    "auth/invalid-access-key": 403,
    "auth/invalid-token": 401,
}


class AuthError(Exception):
    def __init__(self, code: str):
        super().__init__(code)
        self.code = code


def describe_auth_error(code: str, flow: str) -> str:
    messages = AUTH_ERROR_MESSAGES.get(flow, {})
    return messages.get(code, GENERIC_AUTH_MESSAGES.get(flow, "Authentication failed"))


def auth_error_status(code: str) -> int:
    return AUTH_ERROR_STATUS.get(code, 400)


# Utilities

def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire, "jti": uuid4().hex})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise AuthError("auth/invalid-token")


def check_role_access(role: str, access_key: Optional[str]) -> None:
    """Only a matching server-side key grants a role other than "user"."""
    if role not in ROLES:
        raise AuthError("auth/invalid-role")
    if role == "user":
        return
    expected = ROLE_ACCESS_KEYS.get(role)
    if not expected or not access_key or not hmac.compare_digest(access_key.encode(), expected.encode()):
        raise AuthError("auth/invalid-access-key")


def normalize_email(email: Optional[str]) -> str:
    try:
        return email_adapter.validate_python((email or "").strip().lower())
    except ValidationError:
        raise AuthError("auth/invalid-email")


def _identity(doc: Dict[str, Any]) -> Dict[str, Any]:
    return {"uid": str(doc["_id"]), "email": doc["email"], "name": doc.get("name")}


class AuthService:
    """Identity provider over the users collection.

    Tokens carry a `jti` claim; signing out records it in the revoked
    collection and `resolve_token` refuses any token listed there.
    """

    def __init__(self, collection: Optional[Collection], revoked: Optional[Collection] = None):
        self.collection = collection
        self.revoked = revoked

    def _users(self) -> Collection:
        if self.collection is None:
            raise StoreError(500, "Database not available")
        return self.collection

    def _revoked(self) -> Collection:
        if self.revoked is None:
            raise StoreError(500, "Database not available")
        return self.revoked

    def create_user(self, email: str, password: str, name: str, role: str = "user") -> Dict[str, Any]:
        email = normalize_email(email)
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise AuthError("auth/weak-password")
        users = self._users()
        if users.find_one({"email": email}):
            raise AuthError("auth/email-already-in-use")
        now = utcnow_iso()
        user_model = UserSchema(
            name=name,
            email=email,
            password_hash=hash_password(password),
            role=role,
            created_at=now,
            updated_at=now,
        )
        result = users.insert_one(user_model.model_dump())
        logger.info("Registered %s as %s", email, role)
        return _identity(users.find_one({"_id": result.inserted_id}))

    def authenticate(self, email: str, password: str) -> Dict[str, Any]:
        email = normalize_email(email)
        user = self._users().find_one({"email": email})
        if not user:
            raise AuthError("auth/user-not-found")
        if not verify_password(password, user.get("password_hash", "")):
            raise AuthError("auth/wrong-password")
        return _identity(user)

    def issue_token(self, uid: str) -> str:
        return create_access_token({"sub": uid})

    def revoke_token(self, token: str) -> None:
        payload = decode_token(token)
        jti = payload.get("jti")
        if not jti:
            raise AuthError("auth/invalid-token")
        expires_at = datetime.fromtimestamp(payload["exp"], timezone.utc)
        self._revoked().update_one(
            {"jti": jti},
            {"$set": {"jti": jti, "sub": payload.get("sub"), "expires_at": expires_at}},
            upsert=True,
        )
        logger.info("Revoked token for %s", payload.get("sub"))

    def resolve_token(self, token: str) -> Dict[str, Any]:
        payload = decode_token(token)
        jti = payload.get("jti")
        if not jti or self._revoked().find_one({"jti": jti}):
            raise AuthError("auth/invalid-token")
        obj_id = to_object_id(payload.get("sub"))
        if obj_id is None:
            raise AuthError("auth/invalid-token")
        user = self._users().find_one({"_id": obj_id})
        if not user:
            raise AuthError("auth/invalid-token")
        return _identity(user)

    def get_profile(self, uid: str) -> Optional[Dict[str, Any]]:
        obj_id = to_object_id(uid)
        if obj_id is None:
            return None
        user = self._users().find_one({"_id": obj_id}, {"password_hash": 0})
        return serialize_doc(user) if user else None


Listener = Callable[[Optional[Dict[str, Any]]], None]


class AuthState:
    """Identity of one session plus its profile document.

    Listeners registered with `subscribe` hear about every identity change,
    including the first resolution of the request's token.
    """

    def __init__(self, service: AuthService):
        self.service = service
        self.user: Optional[Dict[str, Any]] = None
        self.profile: Optional[Dict[str, Any]] = None
        self.token: Optional[str] = None
        self.loading = True
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_user(self, user: Optional[Dict[str, Any]]) -> None:
        self.user = user
        self.profile = self.service.get_profile(user["uid"]) if user else None
        self.loading = False
        for listener in list(self._listeners):
            listener(user)

    def restore(self, token: Optional[str]) -> None:
        if not token:
            self._set_user(None)
            return
        user = self.service.resolve_token(token)
        self.token = token
        self._set_user(user)

    def register(self, email: str, password: str, name: str, role: str = "user",
                 access_key: Optional[str] = None) -> str:
        check_role_access(role, access_key)
        user = self.service.create_user(email, password, name, role)
        self.token = self.service.issue_token(user["uid"])
        self._set_user(user)
        return self.token

    def sign_in(self, email: str, password: str) -> str:
        user = self.service.authenticate(email, password)
        self.token = self.service.issue_token(user["uid"])
        self._set_user(user)
        return self.token

    def sign_out(self) -> None:
        if self.token:
            self.service.revoke_token(self.token)
        self.token = None
        self._set_user(None)

    def get_profile(self, uid: str) -> Optional[Dict[str, Any]]:
        return self.service.get_profile(uid)

    def role(self) -> Optional[str]:
        return self.profile.get("role") if self.profile else None

    def is_admin(self) -> bool:
        return self.role() == "admin"

    def is_moderator(self) -> bool:
        return self.role() == "moderator"

    def has_admin_privileges(self) -> bool:
        return self.role() in ("admin", "moderator")
