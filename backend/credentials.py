import logging
from datetime import datetime, timezone
from typing import Dict, Optional

import bcrypt
from bson import ObjectId
from bson.errors import InvalidId
from pymongo.errors import DuplicateKeyError

from .errors import AuthError, ConflictError, StoreError, ValidationError
from .schemas import AdminRecord, build_document, clean_text, is_blank
from .store import DocumentStore

BCRYPT_ROUNDS = 10


def normalize_email(value: Optional[str]) -> str:
    return str(value or "").strip().lower()


def hash_password(password: str) -> str:
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=BCRYPT_ROUNDS))
    return hashed.decode("utf-8")


def check_password(password: str, stored_hash) -> bool:
    if not stored_hash:
        return False
    if isinstance(stored_hash, str):
        stored_hash = stored_hash.encode("utf-8")
    try:
        return bcrypt.checkpw(password.encode("utf-8"), stored_hash)
    except ValueError:
        # Not a bcrypt hash.
        return False


def public_profile(admin_document) -> Dict[str, str]:
    return {
        "id": str(admin_document.get("_id")),
        "email": admin_document.get("email", ""),
        "name": admin_document.get("name", ""),
    }


class CredentialService:
    """Admin registration and login against the ``admin`` collection."""

    def __init__(self, store: DocumentStore, logger: Optional[logging.Logger] = None):
        self.store = store
        self.logger = logger or logging.getLogger(__name__)

    def register(self, name, email, password, fingerprint=None) -> ObjectId:
        if is_blank(name) or is_blank(email) or is_blank(password):
            raise ValidationError("Please provide all fields")

        normalized_email = normalize_email(email)
        with self.store.guard("Registration failed"):
            collection = self.store.admins
            if collection.find_one({"email": normalized_email}):
                raise ConflictError("Email already exists")

            admin_document = build_document(
                AdminRecord,
                name=clean_text(name),
                email=normalized_email,
                password=hash_password(str(password)),
                fingerprint=clean_text(fingerprint) or None,
                created_at=datetime.now(timezone.utc).replace(tzinfo=None),
            )
            try:
                result = collection.insert_one(admin_document)
            except DuplicateKeyError as exc:
                # Lost the race against a concurrent registration.
                raise ConflictError("Email already exists") from exc

        self.logger.info("Registered admin %s", normalized_email)
        return result.inserted_id

    def login(self, email, password) -> Dict[str, str]:
        if is_blank(email) or is_blank(password):
            raise ValidationError("Email and password are required")

        with self.store.guard("Error logging in"):
            admin = self.store.admins.find_one({"email": normalize_email(email)})

        if not admin or not check_password(str(password), admin.get("password")):
            raise AuthError("Invalid email or password")

        return public_profile(admin)

    def login_with_id(self, admin_id) -> Dict[str, str]:
        """Re-authenticate a remembered admin by id alone."""
        if is_blank(admin_id):
            raise ValidationError("ID is required")

        try:
            object_id = ObjectId(str(admin_id).strip())
        except (InvalidId, TypeError) as exc:
            raise StoreError("Error logging in", str(exc)) from exc

        with self.store.guard("Error logging in"):
            admin = self.store.admins.find_one({"_id": object_id})

        if not admin:
            raise AuthError("Invalid ID")

        return public_profile(admin)

    def list_admins(self):
        with self.store.guard("Failed to fetch admins"):
            return list(self.store.admins.find({}))
