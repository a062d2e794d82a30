# storefront/repositories/newsletter.py
import hashlib
from typing import Any, Dict, List, Optional

from firebase_admin import firestore
from google.cloud.firestore_v1 import FieldFilter

from storefront.config import get_db, settings
from storefront.core.errors import translate_store_errors
from storefront.utils.timestamps import sort_key, utcnow

COL = "newsletter_subscribers"


def _doc_id(email: str) -> str:
    return hashlib.sha1(email.encode("utf-8")).hexdigest()


@firestore.transactional
def _subscribe(transaction, doc_ref, email, name, now):
    snap = doc_ref.get(transaction=transaction)
    if snap.exists:
        if (snap.to_dict() or {}).get("is_active"):
            return "exists"
        patch = {"is_active": True, "subscribed_at": now, "unsubscribed_at": None}
        if name:
            patch["name"] = name
        transaction.update(doc_ref, patch)
        return "reactivated"
    transaction.create(doc_ref, {
        "email": email,
        "name": name,
        "is_active": True,
        "subscribed_at": now,
    })
    return "created"


class SubscriberRepository:
    """
    One document per lower-cased e-mail (id derived from it), so a subscriber
    exists at most once. Unsubscribing keeps the document with `is_active=False`.
    """

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

    def _active(self):
        return self.col.where(filter=FieldFilter("is_active", "==", True))

    def list_active(self) -> List[Dict[str, Any]]:
        with translate_store_errors():
            rows = []
            for snap in self._active().stream():
                data = snap.to_dict() or {}
                data["id"] = snap.id
                rows.append(data)
        rows.sort(key=lambda r: sort_key(r.get("subscribed_at")), reverse=True)
        return rows

    def subscribe(self, email: str, name: Optional[str] = None) -> str:
        """Returns "created", "reactivated" or "exists"."""
        email = email.strip().lower()
        with translate_store_errors():
            return _subscribe(self.db.transaction(), self.col.document(_doc_id(email)), email, name, utcnow())

    def unsubscribe(self, email: str) -> bool:
        """False if the address was not subscribed."""
        doc_ref = self.col.document(_doc_id(email.strip().lower()))
        with translate_store_errors():
            snap = doc_ref.get()
            if not snap.exists or not (snap.to_dict() or {}).get("is_active"):
                return False
            doc_ref.update({"is_active": False, "unsubscribed_at": utcnow()})
        return True

    def count_active(self) -> int:
        with translate_store_errors():
            result = self._active().count().get()
        return int(result[0][0].value)
