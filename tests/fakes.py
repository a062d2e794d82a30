"""
In-memory stand-ins for the Firestore repositories and Firebase clients.

They follow the same contracts as the real classes (owner scoping, UniqueViolation
on the cart key, StoreError on failure) so the actions, the resolver and the routes
can be exercised without a Firebase project.
"""
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from storefront.core.auth import Resolution
from storefront.core.errors import StoreError, UniqueViolation
from storefront.integrations.firebase_users import EmailTaken
from storefront.integrations.identity_toolkit import IdentityError

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FakeCartRepo:
    def __init__(self, fail_repair: bool = False, fail_reads: bool = False):
        self.rows: Dict[str, dict] = {}
        self.calls: List[tuple] = []
        self.fail_repair = fail_repair
        self.fail_reads = fail_reads
        self._seq = 0

    def seed(self, user_id, product_id, variant="", quantity=1, updated_at=None, **extra) -> dict:
        """Store a row directly, duplicates allowed (legacy data)."""
        self._seq += 1
        created = BASE_TIME + timedelta(seconds=self._seq)
        row = {
            "id": f"row-{self._seq}",
            "user_id": user_id,
            "product_id": product_id,
            "variant": variant,
            "quantity": quantity,
            "product_name": extra.pop("product_name", f"Product {product_id}"),
            "product_price": extra.pop("product_price", 10.0),
            "product_image": extra.pop("product_image", None),
            "created_at": created,
            "updated_at": updated_at or created,
        }
        row.update(extra)
        self.rows[row["id"]] = row
        return dict(row)

    def _matches(self, row, user_id, product_id, variant):
        return (row["user_id"] == user_id and row["product_id"] == product_id
                and (row.get("variant") or "") == (variant or ""))

    def user_rows(self, user_id) -> List[dict]:
        return [r for r in self.rows.values() if r["user_id"] == user_id]

    def list_for_user(self, user_id):
        self.calls.append(("list_for_user", user_id))
        if self.fail_reads:
            raise StoreError("firestore unavailable")
        rows = sorted(self.user_rows(user_id), key=lambda r: r["created_at"], reverse=True)
        return [dict(r) for r in rows]

    def find_by_key(self, user_id, product_id, variant):
        self.calls.append(("find_by_key", user_id, product_id, variant))
        rows = [r for r in self.rows.values() if self._matches(r, user_id, product_id, variant)]
        if not rows:
            return None
        return dict(max(rows, key=lambda r: r["updated_at"]))

    def stream_all(self):
        for row in sorted(self.rows.values(), key=lambda r: r["created_at"]):
            yield dict(row)

    def count(self):
        return len(self.rows)

    def insert(self, user_id, fields):
        self.calls.append(("insert", user_id, fields["product_id"], fields.get("variant") or ""))
        key = (user_id, fields["product_id"], fields.get("variant") or "")
        if any(self._matches(r, *key) for r in self.rows.values()):
            raise UniqueViolation(key)
        extra = {k: v for k, v in fields.items() if k not in ("product_id", "variant", "quantity")}
        return self.seed(user_id, fields["product_id"], fields.get("variant") or "", int(fields["quantity"]), **extra)

    def add_quantity(self, item_id, user_id, delta, refresh=None):
        self.calls.append(("add_quantity", item_id, user_id, delta))
        row = self.rows.get(item_id)
        if row is None or row["user_id"] != user_id:
            return None
        row.update(refresh or {})
        row["quantity"] += int(delta)
        row["updated_at"] = row["updated_at"] + timedelta(milliseconds=1)
        return dict(row)

    def set_quantity(self, item_id, user_id, quantity):
        self.calls.append(("set_quantity", item_id, user_id, quantity))
        row = self.rows.get(item_id)
        if row is None or row["user_id"] != user_id:
            return 0
        row["quantity"] = int(quantity)
        return 1

    def delete(self, item_id, user_id):
        self.calls.append(("delete", item_id, user_id))
        row = self.rows.get(item_id)
        if row is None or row["user_id"] != user_id:
            return 0
        del self.rows[item_id]
        return 1

    def delete_for_user(self, user_id):
        self.calls.append(("delete_for_user", user_id))
        ids = [r["id"] for r in self.user_rows(user_id)]
        for item_id in ids:
            del self.rows[item_id]
        return len(ids)

    def apply_repair(self, user_id, merges):
        """Sums the quantities stored at call time, like the transactional repair."""
        self.calls.append(("apply_repair", user_id, {k: list(v) for k, v in merges.items()}))
        if self.fail_repair:
            raise StoreError("write quota exceeded")

        def owned(item_id):
            row = self.rows.get(item_id)
            return row is not None and row["user_id"] == user_id

        merged = 0
        for survivor_id, duplicate_ids in merges.items():
            if not owned(survivor_id):
                continue
            survivor = self.rows[survivor_id]
            for item_id in duplicate_ids:
                if owned(item_id):
                    survivor["quantity"] += self.rows.pop(item_id)["quantity"]
            merged += 1
        return merged

    def call_names(self) -> List[str]:
        return [c[0] for c in self.calls]


class FakeWishlistRepo:
    def __init__(self, fail: bool = False):
        self.items: Dict[str, List[str]] = {}
        self.fail = fail

    def _check(self):
        if self.fail:
            raise StoreError("firestore unavailable")

    def list_for_user(self, user_id):
        self._check()
        return [{"product_id": pid} for pid in reversed(self.items.get(user_id, []))]

    def add(self, user_id, product_id):
        self._check()
        items = self.items.setdefault(user_id, [])
        if product_id in items:
            return False
        items.append(product_id)
        return True

    def remove(self, user_id, product_id):
        self._check()
        items = self.items.get(user_id, [])
        if product_id in items:
            items.remove(product_id)

    def add_many(self, user_id, product_ids):
        self._check()
        unique = list(dict.fromkeys(product_ids))
        for pid in unique:
            self.add(user_id, pid)
        return len(unique)

    def count(self):
        return sum(len(v) for v in self.items.values())


class FakeProfiles:
    def __init__(self, roles: Optional[Dict[str, str]] = None, fail: bool = False):
        self.profiles: Dict[str, dict] = {uid: {"role": role} for uid, role in (roles or {}).items()}
        self.fail = fail
        self.role_reads = 0

    def _check(self):
        if self.fail:
            raise StoreError("firestore unavailable")

    def get(self, uid):
        self._check()
        profile = self.profiles.get(uid)
        return {**profile, "id": uid} if profile is not None else None

    def get_role(self, uid):
        self.role_reads += 1
        self._check()
        return (self.profiles.get(uid) or {}).get("role", "customer")

    def upsert(self, uid, data):
        self._check()
        profile = self.profiles.setdefault(uid, {"role": "customer"})
        profile.update(data)

    def set_role(self, uid, role):
        self._check()
        if uid not in self.profiles:
            return False
        self.profiles[uid]["role"] = role
        return True

    def count(self):
        self._check()
        return len(self.profiles)


class FakeVerifier:
    """Session cookies are plain strings mapped to claims; minted cookies are `cookie:<uid>`."""

    def __init__(self, sessions: Optional[Dict[str, dict]] = None, clock=None, max_age: int = 3600 * 24 * 5):
        self.sessions = dict(sessions or {})
        self.clock = clock
        self.max_age = max_age
        self.minted: List[str] = []

    def verify(self, cookie):
        return self.sessions.get(cookie)

    def mint(self, id_token):
        uid = id_token.split(":", 1)[1]
        now = self.clock() if self.clock else BASE_TIME.timestamp()
        claims = {"uid": uid, "email": f"{uid}@example.com", "exp": now + self.max_age}
        cookie = f"cookie:{uid}"
        self.sessions[cookie] = claims
        self.minted.append(uid)
        return cookie, claims


class FakeToolkit:
    def __init__(self, accounts: Optional[Dict[str, tuple]] = None, refresh_tokens: Optional[Dict[str, str]] = None,
                 unavailable: bool = False):
        # email -> (password, uid); refresh token -> uid
        self.accounts = dict(accounts or {})
        self.refresh_tokens = dict(refresh_tokens or {})
        self.unavailable = unavailable
        self.resets: List[str] = []

    async def sign_in(self, email, password):
        if self.unavailable:
            raise IdentityError("SERVICE_UNAVAILABLE")
        account = self.accounts.get(email)
        if account is None or account[0] != password:
            raise IdentityError("INVALID_LOGIN_CREDENTIALS", 400)
        uid = account[1]
        return {"idToken": f"idtok:{uid}", "refreshToken": f"rt-{uid}", "expiresIn": "3600", "localId": uid}

    async def refresh(self, refresh_token):
        if self.unavailable:
            raise IdentityError("SERVICE_UNAVAILABLE")
        uid = self.refresh_tokens.get(refresh_token)
        if uid is None:
            raise IdentityError("TOKEN_EXPIRED", 400)
        return {"id_token": f"idtok:{uid}", "refresh_token": f"{refresh_token}-next", "user_id": uid}

    async def send_password_reset(self, email, continue_url=None):
        if self.unavailable:
            raise IdentityError("SERVICE_UNAVAILABLE")
        self.resets.append(email)
        if email not in self.accounts:
            raise IdentityError("EMAIL_NOT_FOUND", 400)


class FakeUserAdmin:
    def __init__(self, existing_emails=()):
        self.existing = set(existing_emails)
        self.created: List[tuple] = []
        self.revoked: List[str] = []
        self.passwords: Dict[str, str] = {}
        self.display_names: Dict[str, str] = {}

    def create_user(self, email, password, display_name=None):
        if email in self.existing:
            raise EmailTaken(email)
        self.existing.add(email)
        uid = f"uid-{len(self.created) + 1}"
        self.created.append((uid, email, display_name))
        return uid

    def update_password(self, uid, password):
        self.passwords[uid] = password

    def update_display_name(self, uid, display_name):
        self.display_names[uid] = display_name

    def revoke_sessions(self, uid):
        self.revoked.append(uid)


class FakeResolver:
    """Resolves every request to a fixed principal; counts calls."""

    def __init__(self, principal=None, set_cookies=None, clear_cookies=False):
        self.principal = principal
        self.set_cookies = dict(set_cookies or {})
        self.clear_cookies = clear_cookies
        self.calls = 0

    async def resolve(self, request):
        self.calls += 1
        return Resolution(principal=self.principal, set_cookies=dict(self.set_cookies),
                          clear_cookies=self.clear_cookies)


class FakeSluggedRepo:
    """Products, categories or subcategories: unique `slug`, ids `<prefix>-N`."""

    def __init__(self, prefix="doc", fail: bool = False):
        self.docs: Dict[str, dict] = {}
        self.prefix = prefix
        self.fail = fail
        self._seq = 0

    def _check(self):
        if self.fail:
            raise StoreError("firestore unavailable")

    def _slug_owner(self, slug):
        return next((d["id"] for d in self.docs.values() if d.get("slug") == slug), None)

    def get(self, doc_id):
        self._check()
        doc = self.docs.get(doc_id)
        return dict(doc) if doc is not None else None

    def get_by_slug(self, slug):
        self._check()
        owner = self._slug_owner(slug)
        return self.get(owner) if owner else None

    def create(self, fields):
        self._check()
        if self._slug_owner(fields["slug"]) is not None:
            raise UniqueViolation((self.prefix, fields["slug"]))
        self._seq += 1
        now = BASE_TIME + timedelta(seconds=self._seq)
        doc = {**fields, "id": f"{self.prefix}-{self._seq}", "created_at": now, "updated_at": now}
        self.docs[doc["id"]] = doc
        return dict(doc)

    def update(self, doc_id, fields):
        self._check()
        if doc_id not in self.docs:
            return None
        owner = self._slug_owner(fields["slug"]) if fields.get("slug") else None
        if owner not in (None, doc_id):
            raise UniqueViolation((self.prefix, fields["slug"]))
        self.docs[doc_id].update(fields)
        return dict(self.docs[doc_id])

    def delete(self, doc_id):
        self._check()
        return self.docs.pop(doc_id, None) is not None

    def count(self):
        self._check()
        return len(self.docs)


class FakeProductRepo(FakeSluggedRepo):
    def __init__(self, fail: bool = False):
        super().__init__("prod", fail)

    def list(self, status=None, category_id=None, subcategory_id=None):
        self._check()
        wanted = {"status": status, "category_id": category_id, "subcategory_id": subcategory_id}
        rows = [d for d in self.docs.values() if all(d.get(k) == v for k, v in wanted.items() if v)]
        return [dict(d) for d in sorted(rows, key=lambda d: d["created_at"], reverse=True)]


class FakeSubcategoryRepo(FakeSluggedRepo):
    def __init__(self, fail: bool = False):
        super().__init__("sub", fail)

    def list(self, category_id=None):
        self._check()
        rows = [d for d in self.docs.values() if category_id is None or d.get("category_id") == category_id]
        return [dict(d) for d in sorted(rows, key=lambda d: (d.get("display_order") or 0, d.get("name") or ""))]


class FakeCategoryRepo(FakeSluggedRepo):
    def __init__(self, subcategories: Optional[FakeSubcategoryRepo] = None, fail: bool = False):
        super().__init__("cat", fail)
        self.subcategories = subcategories

    def list(self):
        self._check()
        rows = sorted(self.docs.values(), key=lambda d: (d.get("sort_order") or 0, d.get("name") or ""))
        return [dict(d) for d in rows]

    def delete(self, doc_id):
        found = super().delete(doc_id)
        if found and self.subcategories is not None:
            for sub_id in [s["id"] for s in self.subcategories.list(doc_id)]:
                self.subcategories.docs.pop(sub_id)
        return found


class FakeSubscriberRepo:
    def __init__(self, fail: bool = False):
        self.subscribers: Dict[str, dict] = {}
        self.fail = fail
        self._seq = 0

    def _check(self):
        if self.fail:
            raise StoreError("firestore unavailable")

    def subscribe(self, email, name=None):
        self._check()
        email = email.strip().lower()
        self._seq += 1
        now = BASE_TIME + timedelta(seconds=self._seq)
        current = self.subscribers.get(email)
        if current is not None:
            if current["is_active"]:
                return "exists"
            current.update(is_active=True, subscribed_at=now, name=name or current.get("name"))
            return "reactivated"
        self.subscribers[email] = {"id": f"sub-{self._seq}", "email": email, "name": name,
                                   "is_active": True, "subscribed_at": now}
        return "created"

    def unsubscribe(self, email):
        self._check()
        current = self.subscribers.get(email.strip().lower())
        if current is None or not current["is_active"]:
            return False
        current["is_active"] = False
        return True

    def list_active(self):
        self._check()
        rows = [dict(s) for s in self.subscribers.values() if s["is_active"]]
        return sorted(rows, key=lambda s: s["subscribed_at"], reverse=True)

    def count_active(self):
        return len(self.list_active())
