# storefront/repositories/profiles.py
from typing import Any, Dict, Optional

from google.cloud import firestore as gcf

from storefront.config import get_db, settings
from storefront.core.errors import translate_store_errors
from storefront.schemas.principal import ROLES

COL = "users"


class ProfileRepository:
    """`users/{uid}` documents; the `role` field drives admin access."""

    def __init__(self, db=None, collection: str = COL):
        self._db = db
        self._collection = collection

    @property
    def col(self):
        db = self._db if self._db is not None else get_db()
        return db.collection(settings.collection(self._collection))

    def get(self, uid: str) -> Optional[Dict[str, Any]]:
        with translate_store_errors():
            snap = self.col.document(uid).get()
        if not snap.exists:
            return None
        data = snap.to_dict() or {}
        data["id"] = uid
        return data

    def get_role(self, uid: str) -> str:
        profile = self.get(uid) or {}
        role = profile.get("role")
        return role if role in ROLES else "customer"

    def upsert(self, uid: str, data: Dict[str, Any]) -> None:
        payload = dict(data)
        payload["updated_at"] = gcf.SERVER_TIMESTAMP
        with translate_store_errors():
            ref = self.col.document(uid)
            if not ref.get().exists:
                payload.setdefault("created_at", gcf.SERVER_TIMESTAMP)
                payload.setdefault("role", "customer")
            ref.set(payload, merge=True)

    def set_role(self, uid: str, role: str) -> bool:
        if role not in ROLES:
            raise ValueError(f"unknown role {role!r}")
        with translate_store_errors():
            ref = self.col.document(uid)
            if not ref.get().exists:
                return False
            ref.update({"role": role, "updated_at": gcf.SERVER_TIMESTAMP})
        return True

    def count(self) -> int:
        with translate_store_errors():
            result = self.col.count().get()
        return int(result[0][0].value)
