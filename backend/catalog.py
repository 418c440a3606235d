import logging
import math
import re
from typing import Optional

from .errors import NotFoundError, ValidationError
from .schemas import ProductRecord, build_document, clean_text, is_blank
from .store import DocumentStore, parse_object_id

LEADING_NUMBER = re.compile(r"^\s*[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


def parse_price(value) -> float:
    """Parse the leading number of ``value``; anything unparseable becomes NaN."""
    if isinstance(value, bool):
        return math.nan
    if isinstance(value, (int, float)):
        return float(value)
    match = LEADING_NUMBER.match(str(value or ""))
    if not match:
        return math.nan
    return float(match.group(0))


class CatalogService:
    def __init__(self, store: DocumentStore, uploader, logger: Optional[logging.Logger] = None):
        self.store = store
        self.uploader = uploader
        self.logger = logger or logging.getLogger(__name__)

    def _require_fields(self, name, category, price, size):
        if any(is_blank(value) for value in (name, category, price, size)):
            raise ValidationError("Please provide all required fields")

    def _price_value(self, raw_price) -> float:
        price_value = parse_price(raw_price)
        if math.isnan(price_value):
            self.logger.warning("Storing non-numeric product price %r as NaN", raw_price)
        return price_value

    def list_products(self):
        with self.store.guard("Error fetching products"):
            return list(self.store.products.find({}))

    def create_product(self, name, category, price, size, description=None, image_file=None):
        self._require_fields(name, category, price, size)

        image_url = self.uploader.upload(image_file)
        product_document = build_document(
            ProductRecord,
            name=clean_text(name),
            category=clean_text(category),
            price=self._price_value(price),
            size=clean_text(size),
            image=image_url,
            description=clean_text(description),
        )

        with self.store.guard("Error adding product"):
            result = self.store.products.insert_one(product_document)

        product_document["_id"] = result.inserted_id
        return product_document

    def update_product(self, product_id, name, category, price, size, image=None, description=None):
        self._require_fields(name, category, price, size)

        updated_product = build_document(
            ProductRecord,
            name=clean_text(name),
            category=clean_text(category),
            price=self._price_value(price),
            size=clean_text(size),
            image=clean_text(image) or None,
            description=clean_text(description),
        )

        object_id = parse_object_id(product_id)
        if object_id is None:
            raise NotFoundError("Product not found")

        with self.store.guard("Error updating product"):
            result = self.store.products.update_one(
                {"_id": object_id}, {"$set": updated_product}
            )

        if result.matched_count == 0:
            raise NotFoundError("Product not found")
        return updated_product

    def delete_product(self, product_id):
        object_id = parse_object_id(product_id)
        if object_id is None:
            raise NotFoundError("Product not found")

        with self.store.guard("Error deleting product"):
            result = self.store.products.delete_one({"_id": object_id})

        if result.deleted_count == 0:
            raise NotFoundError("Product not found")
