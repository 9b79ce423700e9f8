from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pymongo import ASCENDING, ReturnDocument
from pymongo.database import Database

from database import describe_store, doc_to_dict, get_documents, now, parse_object_id
from errors import NotFoundError, register_error_handlers
from logger import get_logger
from schemas import CartItemIn, CartItemOut, CartOut, Message, QuantityUpdate

COLLECTION = "cartitems"

log = get_logger("cart")


def cart_total(items) -> float:
    """Sum of price x quantity; a line without a price counts as zero."""
    return sum((item.get("price") or 0) * item.get("quantity", 1) for item in items)


def create_app(db: Database) -> FastAPI:
    app = FastAPI(title="Cart Service")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    cart_items = db[COLLECTION]
    # One line item per (session, product); makes concurrent adds collapse
    cart_items.create_index(
        [("sessionId", ASCENDING), ("productId", ASCENDING)], unique=True
    )

    @app.get("/health")
    def health():
        return {"status": "healthy", "service": "cart"}

    @app.get("/health/store")
    def store_health():
        return {"service": "cart", **describe_store(db)}

    @app.get("/api/cart/{session_id}", response_model=CartOut)
    def get_cart(session_id: str):
        docs = get_documents(
            db,
            COLLECTION,
            {"sessionId": session_id},
            sort=[("addedAt", ASCENDING), ("_id", ASCENDING)],
        )
        return CartOut(
            items=[CartItemOut(**doc_to_dict(d)) for d in docs],
            total=cart_total(docs),
        )

    @app.post("/api/cart/{session_id}", response_model=CartItemOut, status_code=201)
    def add_to_cart(session_id: str, item: CartItemIn):
        doc = cart_items.find_one_and_update(
            {"sessionId": session_id, "productId": item.product_id},
            {
                "$inc": {"quantity": 1},
                "$setOnInsert": {
                    "name": item.name,
                    "price": item.price,
                    "imageUrl": item.image_url,
                    "addedAt": now(),
                },
            },
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        log.debug(f"Cart {session_id}: {item.product_id} x{doc['quantity']}")
        return CartItemOut(**doc_to_dict(doc))

    @app.put("/api/cart/{session_id}/{item_id}", response_model=CartItemOut)
    def update_quantity(session_id: str, item_id: str, update: QuantityUpdate):
        # Any integer is accepted, including zero and negatives
        doc = cart_items.find_one_and_update(
            {"_id": parse_object_id(item_id), "sessionId": session_id},
            {"$set": {"quantity": update.quantity}},
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            raise NotFoundError("Cart item not found")
        return CartItemOut(**doc_to_dict(doc))

    @app.delete("/api/cart/{session_id}/{item_id}", response_model=Message)
    def remove_item(session_id: str, item_id: str):
        doc = cart_items.find_one_and_delete(
            {"_id": parse_object_id(item_id), "sessionId": session_id}
        )
        if not doc:
            raise NotFoundError("Cart item not found")
        return {"message": "Item removed from cart"}

    @app.delete("/api/cart/{session_id}", response_model=Message)
    def clear_cart(session_id: str):
        result = cart_items.delete_many({"sessionId": session_id})
        log.info(f"Cleared cart {session_id} ({result.deleted_count} items)")
        return {"message": "Cart cleared"}

    return app
