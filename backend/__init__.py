"""
Storefront admin API
====================

Flask backend for the storefront and its admin dashboard: admin
authentication, the product catalog, order tracking, custom logo approval
and dashboard sales figures, stored in MongoDB.

Usage:
    from backend.app import create_app

    app = create_app()
"""

__version__ = "1.0.0"
