# Overview: User Manager; maintains the allow-list of corporate accounts and their admin flag.

"""
User Manager

The allow-list decides who is admitted after a successful OTP verification.
Every check below runs against the cached state before any remote call, so a
rejected request leaves both the store and the state untouched.

PROTECTED ACCOUNT: the seed administrator can never be deleted, otherwise the
allow-list could end up with nobody able to manage it.
"""
from __future__ import annotations

import logging
from dataclasses import replace

from ..records import AppState, User, normalize_email
from ..validation import ValidationError, require_confirmation, require_text
from .access_service import require_admin
from .table_store import TableStore


logger = logging.getLogger(__name__)

USERS_TABLE = "users"

DEFAULT_CORPORATE_DOMAIN = "@gschargev.co.kr"
DEFAULT_SEED_ADMIN = "jhkang@gschargev.co.kr"

DELETE_CONFIRM_MESSAGE = "해당 사용자의 접속 권한을 삭제하시겠습니까?"


class UserNotFoundError(LookupError):
    pass


def domain_message(domain: str) -> str:
    return f"사내 이메일({domain})만 등록 가능합니다."


def is_corporate_email(email: str, domain: str = DEFAULT_CORPORATE_DOMAIN) -> bool:
    return normalize_email(email).endswith(domain.lower())


def add_user(
    store: TableStore,
    state: AppState,
    email,
    name,
    is_admin: bool = False,
    *,
    domain: str = DEFAULT_CORPORATE_DOMAIN,
) -> tuple[AppState, User]:
    """
    Add an allow-listed account.

    Raises ValidationError for a blank name/email, a non-corporate address,
    or an address already on the list; none of those reach the store.
    """
    require_admin(state.current_user)

    email = normalize_email(email)
    name = "" if name is None else str(name).strip()
    if not email or not name:
        raise ValidationError("이름과 이메일을 입력해 주세요.")
    if not is_corporate_email(email, domain):
        raise ValidationError(domain_message(domain))
    if state.find_user(email) is not None:
        raise ValidationError("이미 등록된 이메일입니다.")

    user = User(email=email, name=name, is_admin=bool(is_admin))
    store.insert(USERS_TABLE, [user.to_row()])
    return replace(state, users=state.users + (user,)), user


def delete_user(
    store: TableStore,
    state: AppState,
    email,
    *,
    confirmed: bool,
    protected_email: str = DEFAULT_SEED_ADMIN,
) -> AppState:
    require_admin(state.current_user)

    email = normalize_email(email)
    if email == normalize_email(protected_email):
        raise ValidationError("기본 관리자 계정은 삭제할 수 없습니다.")
    require_confirmation(confirmed, DELETE_CONFIRM_MESSAGE)
    if state.find_user(email) is None:
        raise UserNotFoundError("User not found")

    store.delete(USERS_TABLE, {"email": email})
    return replace(state, users=tuple(u for u in state.users if u.email != email))


def toggle_admin(store: TableStore, state: AppState, email) -> tuple[AppState, User]:
    """Flip a user's admin flag remotely, then in the state."""
    require_admin(state.current_user)

    target = state.find_user(email)
    if target is None:
        raise UserNotFoundError("User not found")

    flipped = replace(target, is_admin=not target.is_admin)
    store.update(USERS_TABLE, {"is_admin": flipped.is_admin}, {"email": flipped.email})

    users = tuple(flipped if u.email == flipped.email else u for u in state.users)
    current = state.current_user
    if current is not None and current.email == flipped.email:
        current = flipped
    return replace(state, users=users, current_user=current), flipped


def ensure_seed_admin(store: TableStore, email: str = DEFAULT_SEED_ADMIN, name: str = "관리자") -> User:
    """
    Make sure the protected administrator exists and is an admin.

    Used by `flask system init`; works straight against the store since no
    signed-in session exists yet.
    """
    email = normalize_email(email)
    require_text(email, "seed administrator email is required")

    rows = store.select(USERS_TABLE, "email, name, is_admin")
    existing = next((User.from_row(r) for r in rows if normalize_email(r.get("email")) == email), None)
    if existing is None:
        seeded = User(email=email, name=name, is_admin=True)
        store.insert(USERS_TABLE, [seeded.to_row()])
        logger.info("Seeded administrator %s", email)
        return seeded

    if not existing.is_admin:
        store.update(USERS_TABLE, {"is_admin": True}, {"email": email})
        existing = replace(existing, is_admin=True)
        logger.info("Restored admin flag on %s", email)
    return existing
