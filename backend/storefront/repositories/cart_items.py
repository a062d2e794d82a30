"""
storefront/repositories/cart_items.py
Firestore persistence for cart line items.

Every cart method takes the owning uid and scopes its reads and writes to it; nothing
here trusts an item id on its own.

Firestore has no unique indexes, so `insert` emulates the
(user_id, product_id, variant) constraint with a transaction that looks for an
existing row before creating one under a key-derived document id. Rows written
by older code paths under random ids can still collide; the reconciler heals
those on read.
"""
import hashlib
from typing import Any, Dict, Iterator, List, Optional

from firebase_admin import firestore
from google.api_core.exceptions import AlreadyExists, NotFound
from google.cloud.firestore_v1 import FieldFilter

from storefront.config import get_db, settings
from storefront.core.errors import UniqueViolation, translate_store_errors
from storefront.utils.timestamps import sort_key, utcnow

COL = "cart_items"
BATCH_LIMIT = 400  # Firestore allows 500 writes per batch


def key_doc_id(user_id: str, product_id: Optional[str], variant: str) -> str:
    raw = "\x1f".join((user_id, product_id or "", variant or ""))
    return hashlib.sha1(raw.encode("utf-8")).hexdigest()


def _row(snap) -> Dict[str, Any]:
    data = snap.to_dict() or {}
    data["id"] = snap.id
    return data


@firestore.transactional
def _insert_unique(transaction, key_query, doc_ref, payload, key):
    for _ in transaction.get(key_query):
        raise UniqueViolation(key)
    transaction.create(doc_ref, payload)


@firestore.transactional
def _add_quantity(transaction, doc_ref, user_id, delta, patch):
    """Read-modify-write: stored quantity + delta. None if the row is gone or not ours."""
    snap = doc_ref.get(transaction=transaction)
    if not snap.exists:
        return None
    row = _row(snap)
    if row.get("user_id") != user_id:
        return None
    update = dict(patch)
    update["quantity"] = int(row.get("quantity") or 0) + int(delta)
    transaction.update(doc_ref, update)
    row.update(update)
    return row


@firestore.transactional
def _merge_group(transaction, survivor_ref, duplicate_refs, user_id, now):
    """
    Re-read the group and sum the quantities stored now, so an add that landed
    after the cart was listed is kept. Rows that are gone or not ours are left
    alone. None if the survivor itself is gone.
    """
    snaps = {s.id: s for s in transaction.get_all([survivor_ref, *duplicate_refs])}

    def owned(snap):
        return snap is not None and snap.exists and (snap.to_dict() or {}).get("user_id") == user_id

    survivor = snaps.get(survivor_ref.id)
    if not owned(survivor):
        return None
    total = int((survivor.to_dict() or {}).get("quantity") or 0)
    for ref in duplicate_refs:
        snap = snaps.get(ref.id)
        if not owned(snap):
            continue
        total += int((snap.to_dict() or {}).get("quantity") or 0)
        transaction.delete(ref)
    transaction.update(survivor_ref, {"quantity": total, "updated_at": now})
    return total


class CartItemRepository:
    """Cart rows in the (prefix-aware) `cart_items` collection."""

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

    def _user_query(self, user_id: str):
        return self.col.where(filter=FieldFilter("user_id", "==", user_id))

    def _key_query(self, user_id: str, product_id: Optional[str], variant: str):
        return (
            self._user_query(user_id)
            .where(filter=FieldFilter("product_id", "==", product_id))
            .where(filter=FieldFilter("variant", "==", variant))
        )

    # ---------- reads ----------
    def list_for_user(self, user_id: str) -> List[Dict[str, Any]]:
        """All rows of one user, newest first (sorted here; no composite index needed)."""
        with translate_store_errors():
            rows = [_row(d) for d in self._user_query(user_id).stream()]
        rows.sort(key=lambda r: sort_key(r.get("created_at")), reverse=True)
        return rows

    def find_by_key(self, user_id: str, product_id: Optional[str], variant: str) -> Optional[Dict[str, Any]]:
        """The most recently updated row for the triple, if any."""
        with translate_store_errors():
            rows = [_row(d) for d in self._key_query(user_id, product_id, variant).stream()]
        if not rows:
            return None
        return max(rows, key=lambda r: sort_key(r.get("updated_at")))

    def stream_all(self) -> Iterator[Dict[str, Any]]:
        with translate_store_errors():
            for d in self.col.stream():
                yield _row(d)

    def count(self) -> int:
        with translate_store_errors():
            result = self.col.count().get()
        return int(result[0][0].value)

    # ---------- writes ----------
    def insert(self, user_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Create a row; raises UniqueViolation if one exists for the triple."""
        product_id = fields.get("product_id")
        variant = fields.get("variant") or ""
        key = (user_id, product_id, variant)
        now = utcnow()
        payload = {
            "user_id": user_id,
            "product_id": product_id,
            "variant": variant,
            "quantity": int(fields["quantity"]),
            "product_name": fields.get("product_name") or "",
            "product_price": float(fields.get("product_price") or 0),
            "product_image": fields.get("product_image"),
            "created_at": now,
            "updated_at": now,
        }
        doc_ref = self.col.document(key_doc_id(*key))
        with translate_store_errors():
            try:
                _insert_unique(self.db.transaction(), self._key_query(*key).limit(1), doc_ref, payload, key)
            except AlreadyExists as exc:
                raise UniqueViolation(key) from exc
        return {**payload, "id": doc_ref.id}

    def add_quantity(self, item_id: str, user_id: str, delta: int,
                     refresh: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        patch = dict(refresh or {})
        patch["updated_at"] = utcnow()
        with translate_store_errors():
            return _add_quantity(self.db.transaction(), self.col.document(item_id), user_id, delta, patch)

    def set_quantity(self, item_id: str, user_id: str, quantity: int) -> int:
        """Returns the number of rows changed (0 for missing or foreign ids)."""
        doc_ref = self.col.document(item_id)
        with translate_store_errors():
            snap = doc_ref.get()
            if not snap.exists or (snap.to_dict() or {}).get("user_id") != user_id:
                return 0
            try:
                doc_ref.update({"quantity": int(quantity), "updated_at": utcnow()})
            except NotFound:
                return 0
        return 1

    def delete(self, item_id: str, user_id: str) -> int:
        doc_ref = self.col.document(item_id)
        with translate_store_errors():
            snap = doc_ref.get()
            if not snap.exists or (snap.to_dict() or {}).get("user_id") != user_id:
                return 0
            doc_ref.delete()
        return 1

    def delete_for_user(self, user_id: str) -> int:
        n = 0
        with translate_store_errors():
            batch = self.db.batch()
            for doc in self._user_query(user_id).stream():
                batch.delete(doc.reference)
                n += 1
                if n % BATCH_LIMIT == 0:
                    batch.commit()
                    batch = self.db.batch()
            batch.commit()
        return n

    def apply_repair(self, user_id: str, merges: Dict[str, List[str]]) -> int:
        """
        Fold each group of duplicates into its survivor, one transaction per
        group. Returns the number of groups written.
        """
        merged = 0
        with translate_store_errors():
            for survivor_id, duplicate_ids in merges.items():
                total = _merge_group(
                    self.db.transaction(),
                    self.col.document(survivor_id),
                    [self.col.document(i) for i in duplicate_ids],
                    user_id,
                    utcnow(),
                )
                if total is not None:
                    merged += 1
        return merged
