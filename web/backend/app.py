"""
MedSecure Web API
=================
WSGI entry point for cloud deployment (PostgreSQL via
MEDSECURE_STORAGE__DATABASE_URL, SQLite otherwise).
"""

import os

from medsecure.core.config import SecureConfig
from medsecure.core.logging import configure_from
from medsecure.web import create_app

config = SecureConfig.get_instance()
config.ensure_directories()
configure_from(config)

application = create_app(config)

if __name__ == "__main__":
    application.run(host="0.0.0.0", port=int(os.environ.get("PORT", 5000)))
