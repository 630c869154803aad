"""
Account and session lifecycle.

- register / login / refresh_access_token / logout
- update_account / delete_account (owner only)

One refresh token per user lives on the users row. login overwrites it,
logout clears it, and refresh only accepts the value currently stored.
"""
from __future__ import annotations

import logging
from datetime import timedelta
from functools import wraps
from typing import NamedTuple, Optional

from marshmallow import ValidationError as SchemaValidationError

from models.db_storage import ConstraintViolation
from models.schemas.user import (
    UserRegisterSchema,
    UserLoginSchema,
    UserUpdateSchema,
    flatten_errors,
)
from services.errors import (
    ServiceError,
    ValidationError,
    PasswordMismatch,
    EmailTaken,
    InvalidCredentials,
    Unauthorized,
    Forbidden,
    NotFound,
    InternalError,
)
from services.guard import AuthorizationGuard
from utils.security import TokenInvalid

logger = logging.getLogger(__name__)

user_register_schema = UserRegisterSchema()
user_login_schema = UserLoginSchema()
user_update_schema = UserUpdateSchema()


class LoginResult(NamedTuple):
    access_token: str
    refresh_token: str
    refresh_max_age: timedelta


class LogoutResult(NamedTuple):
    # False when there was no session to end (transport answers 204)
    revoked: bool


def service_boundary(fn):
    """Let ServiceErrors through; log anything else and hide it behind InternalError."""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except ServiceError:
            raise
        except Exception:
            logger.exception("Unhandled error in %s", fn.__name__)
            raise InternalError("Internal server error") from None

    return wrapper


def _load(schema, payload: dict) -> dict:
    try:
        return schema.load(payload)
    except SchemaValidationError as err:
        raise ValidationError("Invalid input", errors=flatten_errors(err.messages))


class SessionService:
    def __init__(self, store, hasher, issuer, guard: Optional[AuthorizationGuard] = None):
        self.store = store
        self.hasher = hasher
        self.issuer = issuer
        self.guard = guard or AuthorizationGuard()

    @service_boundary
    def register(self, name, email, password, conf_password) -> str:
        data = _load(
            user_register_schema,
            {"name": name, "email": email, "password": password, "confPassword": conf_password},
        )
        if data["password"] != data["conf_password"]:
            raise PasswordMismatch("Password and Confirm Password do not match")
        if self.store.find_by_email(data["email"]):
            raise EmailTaken("Email already registered")

        pw_hash = self.hasher.hash(data["password"])
        try:
            user = self.store.create(name=data["name"], email=data["email"], password_hash=pw_hash)
        except ConstraintViolation:
            raise EmailTaken("Email already registered")
        logger.info("Registered user %s", user.id)
        return "Registration successful"

    @service_boundary
    def login(self, email, password) -> LoginResult:
        data = _load(user_login_schema, {"email": email, "password": password})

        user = self.store.find_by_email(data["email"])
        if not user:
            raise NotFound("Email not found")
        if not self.hasher.verify(data["password"], user.password_hash):
            logger.warning("Rejected password for user %s", user.id)
            raise InvalidCredentials("Wrong password")

        claims = user.claims()
        access_token = self.issuer.issue_access(claims)
        refresh_token = self.issuer.issue_refresh(claims)
        # rotation point: any earlier refresh token stops matching the row
        if not self.store.update_refresh_token(user.id, refresh_token):
            raise NotFound("Email not found")
        logger.info("User %s logged in", user.id)
        return LoginResult(access_token, refresh_token, self.issuer.refresh_expires)

    @service_boundary
    def refresh_access_token(self, refresh_token: Optional[str]) -> str:
        if not refresh_token:
            raise Unauthorized("Unauthorized")
        if not self.store.find_by_refresh_token(refresh_token):
            raise Forbidden("Forbidden")
        try:
            claims = self.issuer.verify_refresh(refresh_token)
        except TokenInvalid:
            raise Forbidden("Forbidden")
        # claims ride in the verified token; storage is not re-read
        return self.issuer.issue_access(claims)

    @service_boundary
    def logout(self, refresh_token: Optional[str]) -> LogoutResult:
        if not refresh_token:
            return LogoutResult(revoked=False)
        user = self.store.find_by_refresh_token(refresh_token)
        if not user:
            return LogoutResult(revoked=False)
        self.store.update_refresh_token(user.id, None)
        logger.info("User %s logged out", user.id)
        return LogoutResult(revoked=True)

    @service_boundary
    def update_account(self, requesting_user_id, target_user_id, name=None, email=None, password=None) -> str:
        self.guard.check({"userId": requesting_user_id}, target_user_id)

        user = self.store.find_by_id(target_user_id)
        if not user:
            raise NotFound("User not found")

        payload = {"email": email, "password": password}
        if name:
            payload["name"] = name
        data = _load(user_update_schema, {k: v for k, v in payload.items() if v is not None})

        fields = {}
        if "email" in data and data["email"] != user.email:
            existing = self.store.find_by_email(data["email"])
            if existing and existing.id != user.id:
                raise EmailTaken("Email already registered")
            fields["email"] = data["email"]
        if "name" in data:
            fields["name"] = data["name"]
        if "password" in data:
            fields["password_hash"] = self.hasher.hash(data["password"])

        try:
            count = self.store.update_profile(user.id, fields)
        except ConstraintViolation:
            raise EmailTaken("Email already registered")
        if fields and count == 0:
            # row vanished between the lookup and the write
            raise NotFound("User not found")
        logger.info("Updated account %s (%s)", user.id, ", ".join(sorted(fields)) or "no changes")
        return "Account updated"

    @service_boundary
    def delete_account(self, requesting_user_id, target_user_id) -> str:
        self.guard.check({"userId": requesting_user_id}, target_user_id)
        if self.store.delete(target_user_id) == 0:
            raise NotFound("User not found")
        logger.info("Deleted account %s", target_user_id)
        return "Account deleted"
