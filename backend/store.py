import logging
import math
from contextlib import contextmanager
from datetime import datetime
from typing import Optional

from bson import ObjectId
from bson.errors import InvalidId
from flask_pymongo import PyMongo
from pymongo.errors import PyMongoError

from .errors import ReadinessError, StoreError

ADMIN_COLLECTION = "admin"
PRODUCT_COLLECTION = "products"
ORDER_COLLECTION = "orders"
LOGO_COLLECTION = "logos"


def parse_object_id(value) -> Optional[ObjectId]:
    """Return ``value`` as an ObjectId, or None when it is not a well-formed id."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def serialize_value(value):
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat() + "Z"
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, dict):
        return {str(key): serialize_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize_value(item) for item in value]
    return value


def serialize_document(document):
    if not document:
        return {}
    return serialize_value(document)


def safe_sum(value) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if isinstance(value, float) and not math.isfinite(value):
            return 0
        return value
    return 0


class DocumentStore:
    """Connection-scoped handle to the MongoDB database.

    The store starts out not ready. ``connect()`` (after ``init_app``) or
    ``bind()`` flips it to ready; until then every collection access raises
    ReadinessError.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self.mongo: Optional[PyMongo] = None
        self.database_name = "sportswearDB"
        self._database = None

    @property
    def ready(self) -> bool:
        return self._database is not None

    def init_app(self, app):
        self.logger = app.logger
        self.database_name = app.config["MONGO_DB_NAME"]
        self.mongo = PyMongo(
            app,
            serverSelectionTimeoutMS=int(
                app.config["MONGO_SERVER_SELECTION_TIMEOUT_MS"]
            ),
        )

    def connect(self) -> bool:
        if self.mongo is None:
            raise ReadinessError("Document store has not been configured.")

        try:
            self.mongo.cx.admin.command("ping")
        except PyMongoError as exc:
            self.logger.error("Error connecting to MongoDB: %s", exc)
            return False

        self.bind(self.mongo.cx[self.database_name])
        self.logger.info("Connected to MongoDB database %s", self.database_name)
        return True

    def bind(self, database):
        self._database = database
        self.ensure_indexes()

    def ensure_indexes(self):
        try:
            self._database[ADMIN_COLLECTION].create_index("email", unique=True)
        except PyMongoError as exc:
            self.logger.warning("Unable to ensure unique index on admin email: %s", exc)

    def collection(self, name: str):
        if self._database is None:
            raise ReadinessError()
        return self._database[name]

    @property
    def admins(self):
        return self.collection(ADMIN_COLLECTION)

    @property
    def products(self):
        return self.collection(PRODUCT_COLLECTION)

    @property
    def orders(self):
        return self.collection(ORDER_COLLECTION)

    @property
    def logos(self):
        return self.collection(LOGO_COLLECTION)

    @contextmanager
    def guard(self, message: str):
        """Convert pymongo failures inside the block into a StoreError."""
        try:
            yield
        except PyMongoError as exc:
            self.logger.error("%s: %s", message, exc)
            raise StoreError(message, str(exc)) from exc

    def sum_field(self, collection_name: str, field: str, match=None) -> float:
        pipeline = []
        if match:
            pipeline.append({"$match": match})
        pipeline.append({"$group": {"_id": None, "total": {"$sum": f"${field}"}}})
        results = list(self.collection(collection_name).aggregate(pipeline))
        if not results:
            return 0
        return safe_sum(results[0].get("total")) or 0
