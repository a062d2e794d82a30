"""
storefront/repositories/catalog.py
Firestore persistence for products, categories and subcategories.

Each collection keeps its `slug` unique. As with the cart key, Firestore cannot
enforce that, so creates and slug-changing updates run in a transaction that
queries the slug first and raise `UniqueViolation` when another document holds it.
"""
from typing import Any, Dict, List, Optional

from firebase_admin import firestore
from google.cloud.firestore_v1 import FieldFilter

from storefront.config import get_db, settings
from storefront.core.errors import UniqueViolation, translate_store_errors
from storefront.utils.timestamps import sort_key, utcnow

BATCH_LIMIT = 400


def _row(snap) -> Dict[str, Any]:
    data = snap.to_dict() or {}
    data["id"] = snap.id
    return data


@firestore.transactional
def _create_unique(transaction, slug_query, doc_ref, payload, key):
    for _ in transaction.get(slug_query):
        raise UniqueViolation(key)
    transaction.create(doc_ref, payload)


@firestore.transactional
def _update_unique(transaction, slug_query, doc_ref, patch, key):
    """False if the document is gone."""
    snap = doc_ref.get(transaction=transaction)
    if not snap.exists:
        return False
    if slug_query is not None:
        for other in transaction.get(slug_query):
            if other.id != doc_ref.id:
                raise UniqueViolation(key)
    transaction.update(doc_ref, patch)
    return True


class SluggedRepository:
    """Documents with a unique `slug` in one (prefix-aware) collection."""

    collection_name = ""

    def __init__(self, db=None, collection: Optional[str] = None):
        self._db = db
        self._collection = collection or self.collection_name

    @property
    def db(self):
        if self._db is None:
            self._db = get_db()
        return self._db

    @property
    def col(self):
        return self.db.collection(settings.collection(self._collection))

    def _slug_query(self, slug: str):
        return self.col.where(filter=FieldFilter("slug", "==", slug)).limit(1)

    def _stream(self, *filters) -> List[Dict[str, Any]]:
        query = self.col
        for field_name, value in filters:
            query = query.where(filter=FieldFilter(field_name, "==", value))
        with translate_store_errors():
            return [_row(d) for d in query.stream()]

    def get(self, doc_id: str) -> Optional[Dict[str, Any]]:
        with translate_store_errors():
            snap = self.col.document(doc_id).get()
        return _row(snap) if snap.exists else None

    def get_by_slug(self, slug: str) -> Optional[Dict[str, Any]]:
        with translate_store_errors():
            for snap in self._slug_query(slug).stream():
                return _row(snap)
        return None

    def create(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Raises UniqueViolation if the slug is taken."""
        now = utcnow()
        payload = {**fields, "created_at": now, "updated_at": now}
        doc_ref = self.col.document()
        with translate_store_errors():
            _create_unique(self.db.transaction(), self._slug_query(fields["slug"]), doc_ref, payload,
                           (self._collection, fields["slug"]))
        return {**payload, "id": doc_ref.id}

    def update(self, doc_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Partial update; None if the document does not exist."""
        patch = {**fields, "updated_at": utcnow()}
        slug = fields.get("slug")
        doc_ref = self.col.document(doc_id)
        with translate_store_errors():
            found = _update_unique(
                self.db.transaction(),
                self._slug_query(slug) if slug else None,
                doc_ref,
                patch,
                (self._collection, slug),
            )
        if not found:
            return None
        return self.get(doc_id)

    def delete(self, doc_id: str) -> bool:
        doc_ref = self.col.document(doc_id)
        with translate_store_errors():
            if not doc_ref.get().exists:
                return False
            doc_ref.delete()
        return True

    def count(self) -> int:
        with translate_store_errors():
            result = self.col.count().get()
        return int(result[0][0].value)


class ProductRepository(SluggedRepository):
    collection_name = "products"

    def list(self, status: Optional[str] = None, category_id: Optional[str] = None,
             subcategory_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Newest first; filters are equality matches (sorted here, no composite index)."""
        filters = [(k, v) for k, v in (("status", status), ("category_id", category_id),
                                        ("subcategory_id", subcategory_id)) if v]
        rows = self._stream(*filters)
        rows.sort(key=lambda r: sort_key(r.get("created_at")), reverse=True)
        return rows


class CategoryRepository(SluggedRepository):
    collection_name = "categories"

    def list(self) -> List[Dict[str, Any]]:
        rows = self._stream()
        rows.sort(key=lambda r: (int(r.get("sort_order") or 0), r.get("name") or ""))
        return rows

    def delete(self, doc_id: str) -> bool:
        """Removes the category together with its subcategories."""
        subcategories = self.db.collection(settings.collection(SubcategoryRepository.collection_name))
        doc_ref = self.col.document(doc_id)
        with translate_store_errors():
            if not doc_ref.get().exists:
                return False
            batch = self.db.batch()
            n = 0
            for doc in subcategories.where(filter=FieldFilter("category_id", "==", doc_id)).stream():
                batch.delete(doc.reference)
                n += 1
                if n % BATCH_LIMIT == 0:
                    batch.commit()
                    batch = self.db.batch()
            batch.delete(doc_ref)
            batch.commit()
        return True


class SubcategoryRepository(SluggedRepository):
    collection_name = "category_subcategories"

    def list(self, category_id: Optional[str] = None) -> List[Dict[str, Any]]:
        rows = self._stream(("category_id", category_id)) if category_id else self._stream()
        rows.sort(key=lambda r: (int(r.get("display_order") or 0), r.get("name") or ""))
        return rows
