import logging
from typing import Optional

from .errors import NotFoundError, ValidationError
from .schemas import LOGO_APPROVED
from .store import DocumentStore, parse_object_id


class LogoService:
    def __init__(self, store: DocumentStore, logger: Optional[logging.Logger] = None):
        self.store = store
        self.logger = logger or logging.getLogger(__name__)

    @staticmethod
    def _logo_id(logo_id):
        object_id = parse_object_id(logo_id)
        if object_id is None:
            raise ValidationError("Invalid logo ID format")
        return object_id

    def list_logos(self):
        with self.store.guard("Server error"):
            return list(self.store.logos.find({}))

    def get_logo(self, logo_id):
        object_id = self._logo_id(logo_id)

        with self.store.guard("Error fetching logo details"):
            logo = self.store.logos.find_one({"_id": object_id})

        if not logo:
            raise NotFoundError("Logo not found")
        return logo

    def approve_logo(self, logo_id):
        object_id = self._logo_id(logo_id)

        with self.store.guard("Internal server error"):
            result = self.store.logos.update_one(
                {"_id": object_id}, {"$set": {"approval": LOGO_APPROVED}}
            )

        if result.matched_count == 0:
            raise NotFoundError("Logo not found")
        self.logger.info("Logo %s approved", object_id)
