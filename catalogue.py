import os
import shutil
import time
import uuid
from typing import Any, List, Optional

from fastapi import Depends, FastAPI, File, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError as SchemaError
from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import PyMongoError
from starlette.datastructures import FormData

from database import (
    create_document,
    describe_store,
    doc_to_dict,
    get_documents,
    parse_object_id,
)
from errors import NotFoundError, StoreError, ValidationError, register_error_handlers
from logger import get_logger
from schemas import Message, Product, ProductIn, ProductOut

COLLECTION = "wigs"
UPLOAD_PREFIX = "/uploads"
TEXT_FIELDS = ("name", "description", "category")

log = get_logger("catalogue")


async def submitted_form(request: Request) -> FormData:
    # Raw values: an explicit "" must reach the store, not fall back to a default
    return await request.form()


def _form_fields(form: FormData) -> dict:
    """Collect the supplied form fields, keyed as stored."""
    fields: dict = {}
    for key in TEXT_FIELDS:
        value = form.get(key)
        if isinstance(value, str):
            fields[key] = value
    price = form.get("price")
    if isinstance(price, str):
        try:
            fields["price"] = float(price)
        except ValueError:
            raise ValidationError(f"Invalid price: {price!r}")
    in_stock = form.get("inStock")
    if isinstance(in_stock, str):
        fields["inStock"] = in_stock.strip().lower() == "true"
    return fields


def _schema_message(exc: SchemaError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
    )


def _has_file(image: Optional[UploadFile]) -> bool:
    return image is not None and bool(image.filename)


def create_app(db: Database, upload_dir: str = "uploads") -> FastAPI:
    app = FastAPI(title="Catalogue Service")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    os.makedirs(upload_dir, exist_ok=True)
    app.mount(UPLOAD_PREFIX, StaticFiles(directory=upload_dir), name="uploads")

    wigs = db[COLLECTION]

    def save_image(image: UploadFile) -> str:
        _, ext = os.path.splitext(image.filename or "")
        # <millis>-<8 hex><ext>
        filename = f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}{ext}"
        try:
            with open(os.path.join(upload_dir, filename), "wb") as out:
                shutil.copyfileobj(image.file, out)
        except OSError as e:
            raise StoreError(f"Could not store image: {e}")
        log.info(f"Stored image {filename}")
        return f"{UPLOAD_PREFIX}/{filename}"

    def discard_image(image_url: str) -> None:
        path = os.path.join(upload_dir, os.path.basename(image_url))
        try:
            os.remove(path)
        except OSError as e:
            log.warning(f"Could not remove orphaned image {path}: {e}")
        else:
            log.info(f"Removed orphaned image {path}")

    # ---------- Basic Routes ----------

    @app.get("/health")
    def health():
        return {"status": "healthy", "service": "catalogue"}

    @app.get("/health/store")
    def store_health():
        return {"service": "catalogue", **describe_store(db)}

    # ---------- Wig Routes ----------

    @app.get("/api/wigs", response_model=List[ProductOut])
    def list_wigs() -> Any:
        docs = get_documents(db, COLLECTION)
        return [ProductOut(**doc_to_dict(d)) for d in docs]

    @app.get("/api/wigs/{wig_id}", response_model=ProductOut)
    def get_wig(wig_id: str):
        doc = wigs.find_one({"_id": parse_object_id(wig_id)})
        if not doc:
            raise NotFoundError("Wig not found")
        return ProductOut(**doc_to_dict(doc))

    @app.post("/api/wigs", response_model=ProductOut, status_code=201)
    def create_wig(
        form: FormData = Depends(submitted_form),
        image: Optional[UploadFile] = File(None),
    ):
        try:
            product = Product(**_form_fields(form))
        except SchemaError as e:
            raise ValidationError(_schema_message(e))

        if _has_file(image):
            product.image_url = save_image(image)

        try:
            new_id = create_document(db, COLLECTION, product)
        except PyMongoError:
            if product.image_url:
                discard_image(product.image_url)
            raise
        log.info(f"Created wig {new_id} ({product.name})")
        return ProductOut(**doc_to_dict(wigs.find_one({"_id": parse_object_id(new_id)})))

    @app.put("/api/wigs/{wig_id}", response_model=ProductOut)
    def update_wig(
        wig_id: str,
        form: FormData = Depends(submitted_form),
        image: Optional[UploadFile] = File(None),
    ):
        oid = parse_object_id(wig_id)
        existing = wigs.find_one({"_id": oid})
        if not existing:
            raise NotFoundError("Wig not found")

        changes = _form_fields(form)
        try:
            ProductIn.model_validate({**existing, **changes})
        except SchemaError as e:
            raise ValidationError(_schema_message(e))

        if _has_file(image):
            changes["imageUrl"] = save_image(image)

        if not changes:
            return ProductOut(**doc_to_dict(existing))

        try:
            doc = wigs.find_one_and_update(
                {"_id": oid}, {"$set": changes}, return_document=ReturnDocument.AFTER
            )
        except PyMongoError:
            if "imageUrl" in changes:
                discard_image(changes["imageUrl"])
            raise
        if not doc:
            if "imageUrl" in changes:
                discard_image(changes["imageUrl"])
            raise NotFoundError("Wig not found")
        return ProductOut(**doc_to_dict(doc))

    @app.delete("/api/wigs/{wig_id}", response_model=Message)
    def delete_wig(wig_id: str):
        doc = wigs.find_one_and_delete({"_id": parse_object_id(wig_id)})
        if not doc:
            raise NotFoundError("Wig not found")
        log.info(f"Deleted wig {wig_id}")
        return {"message": "Wig deleted successfully"}

    return app
