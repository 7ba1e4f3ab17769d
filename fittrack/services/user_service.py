from typing import Any, Dict, Optional

from fittrack.core.logger import get_logger
from fittrack.core.security import create_access_token, get_password_hash, verify_password
from fittrack.enums import OperationKind
from fittrack.exceptions.errors import AuthenticationError, ConflictError, NotFoundError, ValidationError
from fittrack.persistence import CorrelatedIds, DataStores, Principal, resolve_owner
from fittrack.repositories.users import UserDocuments, UserRows
from fittrack.schemas.auth_schemas import (
    LoginRequest, PasswordChangeRequest, ProfileUpdateRequest, RegisterRequest
)
from fittrack.utils.time_utils import utc_now_ms

logger = get_logger("user_service")

user_documents = UserDocuments()
user_rows = UserRows()


class UserService:
    """Accounts: registration, login, profile and account deletion in every active store."""

    @staticmethod
    async def register(stores: DataStores, data: RegisterRequest) -> Dict[str, Any]:
        if await UserService._taken(stores, data.username, data.email):
            raise ConflictError("User already exists")

        payload = data.dict()
        password_hash = get_password_hash(data.password)
        stamp = utc_now_ms()

        result = await stores.coordinator.execute(
            document_op=lambda db: user_documents.create(db, payload, password_hash, stamp),
            relational_op=lambda session: user_rows.create(session, payload, password_hash, stamp),
            kind=OperationKind.CREATE,
            label="register user",
        )
        result.raise_for_failure("Failed to register user")

        logger.info(f"👤 Registered user {data.username} in {result.describe()}")
        return {
            "message": "User registered successfully",
            "user": stores.merger.from_write(result),
            "stores": result.stores,
        }

    @staticmethod
    async def _taken(stores: DataStores, username: str, email: str) -> bool:
        if stores.mode.uses_document and await stores.document.fetch(
            lambda db: user_documents.exists(db, username, email), label="user exists", fallback=False
        ):
            return True
        if stores.mode.uses_relational and await stores.relational.fetch(
            lambda session: user_rows.exists(session, username, email), label="user exists", fallback=False
        ):
            return True
        return False

    @staticmethod
    async def login(stores: DataStores, data: LoginRequest) -> Dict[str, Any]:
        login = data.login
        if not login:
            raise ValidationError("Email or username is required")

        document_match = None
        relational_match = None
        if stores.mode.uses_document:
            document_match = await stores.document.fetch(
                lambda db: user_documents.find_credentials(db, login), label="login lookup"
            )
        if stores.mode.uses_relational:
            relational_match = await stores.relational.fetch(
                lambda session: user_rows.find_credentials(session, login), label="login lookup"
            )

        if document_match is None and relational_match is None:
            raise AuthenticationError("Invalid credentials")

        # Every store that holds the user must accept the password
        for match in (document_match, relational_match):
            if match is not None and not verify_password(data.password, match[1]):
                logger.warning(f"🔒 Failed login for {login}")
                raise AuthenticationError("Invalid credentials")

        document_user = document_match[0] if document_match else None
        relational_user = relational_match[0] if relational_match else None
        user = stores.merger.single(CorrelatedIds(
            document_id=document_user["id"] if document_user else None,
            relational_id=relational_user["id"] if relational_user else None,
            document_record=document_user,
            relational_record=relational_user,
        ))

        token = create_access_token({
            "sub": str(user["id"]),
            "username": user["username"],
            "role": user["role"],
            "mongoId": document_user["id"] if document_user else None,
            "mysqlId": relational_user["id"] if relational_user else None,
        })
        logger.info(f"🔑 User {user['username']} logged in")
        return {"message": "Login successful", "token": token, "user": user}

    @staticmethod
    async def get_profile(stores: DataStores, principal: Principal) -> Dict[str, Any]:
        owner = resolve_owner(principal, stores.mode)
        correlated = CorrelatedIds(document_id=owner.document_id, relational_id=owner.relational_id)
        if stores.mode.uses_document:
            correlated.document_record = await stores.document.fetch(
                lambda db: user_documents.get(db, owner.document_id), label="profile read"
            )
        if stores.mode.uses_relational:
            correlated.relational_record = await stores.relational.fetch(
                lambda session: user_rows.get(session, owner.relational_id), label="profile read"
            )
        profile = stores.merger.single(correlated)
        if profile is None:
            raise NotFoundError("User not found")
        return profile

    @staticmethod
    async def update_profile(stores: DataStores, principal: Principal, data: ProfileUpdateRequest) -> Dict[str, Any]:
        owner = resolve_owner(principal, stores.mode)
        changes = data.dict(exclude_unset=True)
        if not changes:
            raise ValidationError("No profile fields to update")

        result = await stores.coordinator.execute(
            document_op=lambda db: user_documents.update_profile(db, owner.document_id, changes),
            relational_op=lambda session: user_rows.update_profile(session, owner.relational_id, changes),
            kind=OperationKind.UPDATE,
            label="update profile",
        )
        result.raise_for_failure("Failed to update profile", not_found="User not found")
        return {
            "message": "Profile updated",
            "user": stores.merger.from_write(result),
            "updated": result.stores,
        }

    @staticmethod
    async def change_password(stores: DataStores, principal: Principal, data: PasswordChangeRequest) -> Dict[str, Any]:
        owner = resolve_owner(principal, stores.mode)
        current_hash = await UserService._password_hash(stores, owner)
        if current_hash is None:
            raise NotFoundError("User not found")
        if not verify_password(data.currentPassword, current_hash):
            raise ValidationError("Current password is incorrect")

        new_hash = get_password_hash(data.newPassword)
        result = await stores.coordinator.execute(
            document_op=lambda db: user_documents.update_password(db, owner.document_id, new_hash),
            relational_op=lambda session: user_rows.update_password(session, owner.relational_id, new_hash),
            kind=OperationKind.UPDATE,
            label="change password",
        )
        result.raise_for_failure("Failed to change password", not_found="User not found")
        return {"message": "Password changed", "updated": result.stores}

    @staticmethod
    async def _password_hash(stores: DataStores, owner) -> Optional[str]:
        if stores.mode.uses_document:
            stored = await stores.document.fetch(
                lambda db: user_documents.get_password(db, owner.document_id), label="password read"
            )
            if stored:
                return stored
        if stores.mode.uses_relational:
            return await stores.relational.fetch(
                lambda session: user_rows.get_password(session, owner.relational_id), label="password read"
            )
        return None

    @staticmethod
    async def delete_account(stores: DataStores, principal: Principal) -> Dict[str, Any]:
        """Remove the user together with progress, plans and analyses, store by store."""
        owner = resolve_owner(principal, stores.mode)
        result = await stores.coordinator.execute(
            document_op=lambda db: user_documents.delete_cascade(db, owner.document_id),
            relational_op=lambda session: user_rows.delete_cascade(session, owner.relational_id),
            kind=OperationKind.DELETE,
            label="delete account",
        )
        result.raise_for_failure("Failed to delete account", not_found="User not found")
        logger.info(f"🗑️ Deleted account of {principal.username} from {result.describe()}")
        return {"message": "Account deleted", "deleted": result.stores}
