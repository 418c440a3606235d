import os
from datetime import timedelta
from functools import wraps
from typing import Dict, Optional

from dotenv import load_dotenv
from flask import Flask, jsonify, request
from flask_cors import CORS
from flask_jwt_extended import JWTManager, create_access_token, verify_jwt_in_request
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix

from .catalog import CatalogService
from .credentials import CredentialService
from .errors import ReadinessError, ServiceError
from .logos import LogoService
from .orders import OrderService
from .reporting import ReportingService
from .store import DocumentStore, serialize_document
from .uploads import CloudinaryUploader

load_dotenv()


def env_flag(name: str, default: bool = False) -> bool:
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def load_config(app: Flask, overrides: Optional[Dict] = None):
    app.config["MONGO_URI"] = os.getenv(
        "MONGO_URI", "mongodb://localhost:27017/sportswearDB"
    )
    app.config["MONGO_DB_NAME"] = os.getenv("MONGO_DB_NAME", "sportswearDB")
    app.config["MONGO_SERVER_SELECTION_TIMEOUT_MS"] = int(
        os.getenv("MONGO_SERVER_SELECTION_TIMEOUT_MS", "5000")
    )

    app.config["CLOUDINARY_CLOUD_NAME"] = os.getenv("CLOUDINARY_CLOUD_NAME")
    app.config["CLOUDINARY_API_KEY"] = os.getenv("CLOUDINARY_API_KEY")
    app.config["CLOUDINARY_API_SECRET"] = os.getenv("CLOUDINARY_API_SECRET")
    app.config["UPLOAD_FOLDER_NAME"] = os.getenv("UPLOAD_FOLDER_NAME", "products")
    app.config["UPLOAD_TIMEOUT_SECONDS"] = float(
        os.getenv("UPLOAD_TIMEOUT_SECONDS", "30")
    )
    max_upload_mb = int(os.getenv("MAX_UPLOAD_SIZE_MB", "16"))
    app.config["MAX_CONTENT_LENGTH"] = max_upload_mb * 1024 * 1024

    app.config["JWT_SECRET_KEY"] = os.getenv(
        "JWT_SECRET_KEY", "change-me-in-production"
    )
    app.config["JWT_ACCESS_TOKEN_EXPIRES"] = timedelta(
        hours=int(os.getenv("JWT_ACCESS_TOKEN_HOURS", "12"))
    )
    app.config["ADMIN_AUTH_REQUIRED"] = env_flag("ADMIN_AUTH_REQUIRED")
    app.config["LOG_LEVEL"] = os.getenv("LOG_LEVEL", "INFO").upper()

    if overrides:
        app.config.update(overrides)


def create_app(config: Optional[Dict] = None, store: Optional[DocumentStore] = None,
               uploader=None) -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)

    load_config(app, config)
    app.logger.setLevel(app.config["LOG_LEVEL"])

    # Honor proxy headers so the public origin survives a reverse proxy.
    trusted_proxy_hops_raw = os.getenv("TRUSTED_PROXY_HOPS", "1")
    try:
        trusted_proxy_hops = max(0, int(trusted_proxy_hops_raw))
    except (TypeError, ValueError):
        trusted_proxy_hops = 1
    if trusted_proxy_hops:
        app.wsgi_app = ProxyFix(
            app.wsgi_app,
            x_for=trusted_proxy_hops,
            x_proto=trusted_proxy_hops,
            x_host=trusted_proxy_hops,
            x_port=trusted_proxy_hops,
        )

    # --- Initialize extensions ---
    allowed_origins = [
        origin.strip()
        for origin in os.getenv("CORS_ALLOWED_ORIGINS", "").split(",")
        if origin.strip()
    ]
    CORS(app, origins=allowed_origins or "*")
    JWTManager(app)

    if store is None:
        store = DocumentStore()
        store.init_app(app)
        store.connect()
    if uploader is None:
        uploader = CloudinaryUploader()
        uploader.init_app(app)

    credentials = CredentialService(store, logger=app.logger)
    catalog = CatalogService(store, uploader, logger=app.logger)
    orders = OrderService(store, logger=app.logger)
    logos = LogoService(store, logger=app.logger)
    reporting = ReportingService(store, logger=app.logger)

    app.extensions["document_store"] = store

    # --- Helpers ---

    def request_payload() -> Dict:
        payload = request.form.to_dict() if request.form else {}
        if not payload:
            payload = request.get_json(silent=True) or {}
        return payload if isinstance(payload, dict) else {}

    def admin_route(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if app.config["ADMIN_AUTH_REQUIRED"]:
                verify_jwt_in_request()
            return view(*args, **kwargs)

        return wrapper

    def login_response(profile: Dict[str, str]):
        token = create_access_token(identity=profile["id"])
        return jsonify({"message": "Login successful", **profile, "access_token": token})

    @app.before_request
    def ensure_database_initialized():
        if request.endpoint == "health" or request.method == "OPTIONS":
            return None
        if not store.ready:
            raise ReadinessError()
        return None

    @app.errorhandler(ServiceError)
    def handle_service_error(error: ServiceError):
        if error.status_code >= 500:
            app.logger.error("%s %s failed: %s", request.method, request.path, error.detail or error.message)
        return jsonify(error.to_payload()), error.status_code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        if isinstance(error, HTTPException):
            return jsonify({"message": error.description or error.name}), error.code
        app.logger.exception("%s %s failed", request.method, request.path)
        return jsonify({"message": "Internal server error", "error": str(error)}), 500

    # --- ROUTES ---

    @app.route("/health")
    def health():
        if store.ready:
            return jsonify({"status": "ok", "database": "ready"}), 200
        return jsonify({"status": "degraded", "database": "unavailable"}), 503

    # Auth
    @app.route("/register", methods=["POST"])
    def register():
        payload = request_payload()
        admin_id = credentials.register(
            payload.get("name"),
            payload.get("email"),
            payload.get("password"),
            payload.get("fingerprint"),
        )
        return (
            jsonify({"message": "Admin registered successfully", "id": str(admin_id)}),
            201,
        )

    @app.route("/login", methods=["POST"])
    def login():
        payload = request_payload()
        profile = credentials.login(payload.get("email"), payload.get("password"))
        return login_response(profile)

    @app.route("/login-with-id", methods=["POST"])
    def login_with_id():
        payload = request_payload()
        profile = credentials.login_with_id(payload.get("id"))
        return login_response(profile)

    @app.route("/api/admins", methods=["GET"])
    @admin_route
    def list_admins():
        admins = credentials.list_admins()
        return jsonify([serialize_document(admin) for admin in admins])

    # Products
    @app.route("/products", methods=["GET"])
    @app.route("/all/products", methods=["GET"])
    def list_products():
        products = catalog.list_products()
        return jsonify([serialize_document(product) for product in products])

    @app.route("/products", methods=["POST"])
    @admin_route
    def create_product():
        payload = request_payload()
        product = catalog.create_product(
            payload.get("name"),
            payload.get("category"),
            payload.get("price"),
            payload.get("size"),
            description=payload.get("description"),
            image_file=request.files.get("image"),
        )
        return (
            jsonify(
                {
                    "message": "Product added successfully",
                    "product": serialize_document(product),
                }
            ),
            201,
        )

    @app.route("/products/<product_id>", methods=["PUT"])
    @admin_route
    def update_product(product_id: str):
        payload = request_payload()
        updated_product = catalog.update_product(
            product_id,
            payload.get("name"),
            payload.get("category"),
            payload.get("price"),
            payload.get("size"),
            image=payload.get("image"),
            description=payload.get("description"),
        )
        return jsonify(
            {
                "message": "Product updated successfully",
                "updatedProduct": serialize_document(updated_product),
            }
        )

    @app.route("/products/<product_id>", methods=["DELETE"])
    @admin_route
    def delete_product(product_id: str):
        catalog.delete_product(product_id)
        return jsonify({"message": "Product deleted successfully"})

    # Orders
    @app.route("/api/orders", methods=["GET"])
    @admin_route
    def list_orders():
        return jsonify([serialize_document(order) for order in orders.list_orders()])

    @app.route("/api/orders/<order_id>", methods=["GET"])
    @admin_route
    def get_order(order_id: str):
        return jsonify(orders.get_order(order_id))

    @app.route("/api/orders/<order_id>/complete", methods=["POST"])
    @admin_route
    def complete_order(order_id: str):
        orders.complete_order(order_id)
        return jsonify({"message": "Order status updated to complete"})

    # Logos
    @app.route("/api/logos", methods=["GET"])
    @admin_route
    def list_logos():
        return jsonify([serialize_document(logo) for logo in logos.list_logos()])

    @app.route("/api/logos/<logo_id>", methods=["GET"])
    @admin_route
    def get_logo(logo_id: str):
        return jsonify(serialize_document(logos.get_logo(logo_id)))

    @app.route("/api/logos/<logo_id>/complete", methods=["POST"])
    @admin_route
    def approve_logo(logo_id: str):
        logos.approve_logo(logo_id)
        return jsonify({"message": "Logo status updated to complete"})

    # Reporting
    @app.route("/api/total", methods=["GET"])
    @admin_route
    def totals():
        return jsonify(reporting.totals())

    @app.route("/api/sales-stats", methods=["GET"])
    @admin_route
    def sales_stats():
        return jsonify(reporting.sales_stats())

    return app


if __name__ == "__main__":
    app = create_app()
    port = int(os.environ.get("PORT", 3000))
    app.run(host="0.0.0.0", port=port)
