"""
Caller identity as seen by each store.

Tokens and document-store users are keyed by ObjectId strings, while every
relational row references the numeric ``users.id``. The resolvers below turn
an authenticated Principal into the owner key each store expects.
"""
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

from bson import ObjectId

from fittrack.enums import StoreMode
from fittrack.exceptions.errors import ResolutionError

OBJECT_ID_PATTERN = re.compile(r"^[0-9a-fA-F]{24}$")


@dataclass
class Principal:
    id: Optional[str] = None
    username: Optional[str] = None
    role: Optional[str] = None
    mysql_id: Optional[Any] = None
    mongo_id: Optional[str] = None
    sql_id: Optional[Any] = None
    numeric_id: Optional[Any] = None
    current_user: Optional[Any] = None

    @classmethod
    def from_claims(cls, claims: Dict[str, Any]) -> "Principal":
        return cls(
            id=str(claims["sub"]) if claims.get("sub") is not None else None,
            username=claims.get("username"),
            role=claims.get("role"),
            mysql_id=claims.get("mysqlId"),
            mongo_id=claims.get("mongoId"),
            sql_id=claims.get("sqlId"),
            numeric_id=claims.get("numericId"),
        )


@dataclass
class Owner:
    """Owner keys of the caller in each active store."""
    document_id: Optional[ObjectId] = None
    relational_id: Optional[int] = None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return None


def _current_user_id(current_user: Any) -> Any:
    if current_user is None:
        return None
    if isinstance(current_user, dict):
        return current_user.get("id")
    return getattr(current_user, "id", None)


def resolve_relational_user_id(principal: Principal) -> int:
    """
    Relational ``users.id`` of the caller.

    Checked in order: the explicit relational id, the alternate numeric-id
    fields, then the current-user record loaded at authentication time.
    """
    candidates = (
        principal.mysql_id,
        principal.sql_id,
        principal.numeric_id,
        _current_user_id(principal.current_user),
    )
    for candidate in candidates:
        user_id = _as_int(candidate)
        if user_id is not None:
            return user_id
    raise ResolutionError()


def resolve_document_user_id(principal: Principal) -> ObjectId:
    for candidate in (principal.mongo_id, principal.id):
        if isinstance(candidate, str) and OBJECT_ID_PATTERN.match(candidate):
            return ObjectId(candidate)
    raise ResolutionError("Unable to resolve document user id for the current user")


def resolve_owner(principal: Principal, mode: StoreMode) -> Owner:
    """Resolve only the keys the active stores need."""
    return Owner(
        document_id=resolve_document_user_id(principal) if mode.uses_document else None,
        relational_id=resolve_relational_user_id(principal) if mode.uses_relational else None,
    )
