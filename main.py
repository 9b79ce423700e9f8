import os
import sys

from fastapi import FastAPI

import cart
import catalogue
import checkout
from database import connect
from logger import get_logger

log = get_logger("main")

DEFAULT_MONGODB_URI = "mongodb://mongodb:27017"

SERVICES = {
    "catalogue": {"port": 3001, "database": "wigs-catalogue"},
    "cart": {"port": 3002, "database": "wigs-cart"},
    "checkout": {"port": 3003, "database": "wigs-checkout"},
}


def build_app(service: str) -> FastAPI:
    """Assemble ``service`` from environment configuration."""
    if service not in SERVICES:
        raise ValueError(f"Unknown service {service!r}; expected one of {', '.join(SERVICES)}")
    defaults = SERVICES[service]

    db = connect(
        os.getenv("MONGODB_URI", DEFAULT_MONGODB_URI),
        os.getenv("DATABASE_NAME", defaults["database"]),
    )

    if service == "catalogue":
        return catalogue.create_app(db, upload_dir=os.getenv("UPLOAD_DIR", "uploads"))
    if service == "cart":
        return cart.create_app(db)
    client = checkout.CartClient(
        os.getenv("CART_SERVICE_URL", "http://cart-service:3002"),
        timeout=float(os.getenv("CART_SERVICE_TIMEOUT", 5)),
    )
    return checkout.create_app(db, client)


if __name__ == "__main__":
    import uvicorn

    service = sys.argv[1] if len(sys.argv) > 1 else os.getenv("SERVICE", "catalogue")
    app = build_app(service)
    port = int(os.getenv("PORT", SERVICES[service]["port"]))
    log.info(f"{service.capitalize()} Service running on port {port}")
    uvicorn.run(app, host="0.0.0.0", port=port)
