# storefront/repositories/wishlist_items.py
import hashlib
from typing import Dict, List

from google.api_core.exceptions import AlreadyExists
from google.cloud import firestore as gcf
from google.cloud.firestore_v1 import FieldFilter

from storefront.config import get_db, settings
from storefront.core.errors import translate_store_errors
from storefront.utils.timestamps import sort_key

COL = "wishlist_items"
BATCH_LIMIT = 400


def _doc_id(user_id: str, product_id: str) -> str:
    return hashlib.sha1(f"{user_id}\x1f{product_id}".encode("utf-8")).hexdigest()


class WishlistRepository:
    """One document per (user_id, product_id); the id is derived from the pair."""

    def __init__(self, db=None, collection: str = COL):
        self._db = db
        self._collection = collection

    @property
    def db(self):
        if self._db is None:
            self._db = get_db()
        return self._db

    @property
    def col(self):
        return self.db.collection(settings.collection(self._collection))

    def list_for_user(self, user_id: str) -> List[Dict]:
        with translate_store_errors():
            docs = self.col.where(filter=FieldFilter("user_id", "==", user_id)).stream()
            rows = [d.to_dict() or {} for d in docs]
        rows.sort(key=lambda r: sort_key(r.get("created_at")), reverse=True)
        return [{"product_id": r.get("product_id")} for r in rows]

    def add(self, user_id: str, product_id: str) -> bool:
        """False if the product was already on the list."""
        with translate_store_errors():
            try:
                self.col.document(_doc_id(user_id, product_id)).create({
                    "user_id": user_id,
                    "product_id": product_id,
                    "created_at": gcf.SERVER_TIMESTAMP,
                })
            except AlreadyExists:
                return False
        return True

    def remove(self, user_id: str, product_id: str) -> None:
        with translate_store_errors():
            self.col.document(_doc_id(user_id, product_id)).delete()

    def add_many(self, user_id: str, product_ids: List[str]) -> int:
        n = 0
        with translate_store_errors():
            batch = self.db.batch()
            for pid in dict.fromkeys(product_ids):
                batch.set(
                    self.col.document(_doc_id(user_id, pid)),
                    {"user_id": user_id, "product_id": pid, "created_at": gcf.SERVER_TIMESTAMP},
                    merge=True,
                )
                n += 1
                if n % BATCH_LIMIT == 0:
                    batch.commit()
                    batch = self.db.batch()
            batch.commit()
        return n

    def count(self) -> int:
        with translate_store_errors():
            result = self.col.count().get()
        return int(result[0][0].value)
