import random
import time
from typing import Any, List

import requests
from fastapi import BackgroundTasks, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pymongo import ASCENDING, DESCENDING
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from database import create_document, describe_store, doc_to_dict, get_documents
from errors import ConflictError, NotFoundError, ValidationError, register_error_handlers
from logger import get_logger
from schemas import CheckoutIn, CheckoutOut, Order, OrderOut

COLLECTION = "orders"
ORDER_PREFIX = "WIG"

log = get_logger("checkout")


def generate_order_number() -> str:
    """``WIG`` + epoch milliseconds + a random 0-999 suffix.

    Readable rather than guaranteed unique; the unique index on
    ``orderNumber`` rejects a collision.
    """
    return f"{ORDER_PREFIX}{int(time.time() * 1000)}{random.randint(0, 999)}"


class CartClient:
    """HTTP client for the cart service.

    ``clear_cart`` makes exactly one attempt. Failures are logged and
    reported through the return value, never raised.

    Background tasks call it from threadpool workers, so by default every
    call goes through a fresh ``requests.delete`` rather than a shared
    ``requests.Session``. ``session`` replaces the ``requests`` module with
    any object offering ``delete(url, timeout=...)``.
    """

    def __init__(self, base_url: str, timeout: float = 5.0, session=None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session if session is not None else requests

    def clear_cart(self, session_id: str) -> bool:
        url = f"{self.base_url}/api/cart/{session_id}"
        try:
            response = self.session.delete(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            log.error(f"Error clearing cart {session_id}: {e}")
            return False
        log.info(f"Cleared cart {session_id} after checkout")
        return True


def _missing_fields(payload: CheckoutIn) -> bool:
    customer = (payload.customer_name, payload.customer_email, payload.customer_phone)
    return (
        any(not (value or "").strip() for value in customer)
        or not payload.items
        or payload.total_amount is None
    )


def create_app(db: Database, cart_client: CartClient) -> FastAPI:
    app = FastAPI(title="Checkout Service")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    orders = db[COLLECTION]
    orders.create_index([("orderNumber", ASCENDING)], unique=True)

    @app.get("/health")
    def health():
        return {"status": "healthy", "service": "checkout"}

    @app.get("/health/store")
    def store_health():
        return {"service": "checkout", **describe_store(db)}

    @app.post("/api/checkout", response_model=CheckoutOut, status_code=201)
    def checkout(payload: CheckoutIn, background_tasks: BackgroundTasks):
        if _missing_fields(payload):
            raise ValidationError("Missing required fields")

        order = Order(
            order_number=generate_order_number(),
            customer_name=payload.customer_name,
            customer_email=payload.customer_email,
            customer_phone=payload.customer_phone,
            items=payload.items,
            total_amount=payload.total_amount,
        )
        try:
            create_document(db, COLLECTION, order)
        except DuplicateKeyError:
            raise ConflictError(f"Order number {order.order_number} already exists")
        log.info(f"Order {order.order_number} completed for {order.customer_email}")

        if payload.session_id:
            background_tasks.add_task(cart_client.clear_cart, payload.session_id)

        saved = orders.find_one({"orderNumber": order.order_number})
        return CheckoutOut(
            message="Order completed successfully",
            order=OrderOut(**doc_to_dict(saved)),
        )

    @app.get("/api/orders/{order_number}", response_model=OrderOut)
    def get_order(order_number: str):
        doc = orders.find_one({"orderNumber": order_number})
        if not doc:
            raise NotFoundError("Order not found")
        return OrderOut(**doc_to_dict(doc))

    @app.get("/api/orders", response_model=List[OrderOut])
    def list_orders() -> Any:
        docs = get_documents(
            db, COLLECTION, sort=[("createdAt", DESCENDING), ("_id", DESCENDING)]
        )
        return [OrderOut(**doc_to_dict(d)) for d in docs]

    return app
