"""
storefront/services/cart_reconciler.py
Merge-on-read for cart rows.

Concurrent "add to cart" calls can leave more than one row for the same
(product_id, variant) in a user's cart. `merge_rows` collapses them into one
logical item per key and describes the writes that would make storage match:

* the survivor keeps the identity and catalog snapshot of the most recently
  updated duplicate,
* its quantity is the SUM over all duplicates (never the survivor's own),
* every other duplicate is deleted.

Nothing here touches storage; `apply_repair` is the only writer and it is
best-effort: a failed repair is logged and the caller's result stands.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from storefront.core.errors import StoreError
from storefront.utils.timestamps import sort_key

logger = logging.getLogger("storefront.cart")

CartKey = Tuple[str, str]


def cart_key(row: Dict[str, Any]) -> CartKey:
    return (row.get("product_id") or "", row.get("variant") or "")


@dataclass
class RepairPlan:
    """
    Survivor id -> ids of the duplicates to fold into it. Quantities are not
    part of the plan: the store re-reads the group when the repair runs, so an
    add that lands after the read is kept.
    """
    user_id: str
    merges: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def delete_ids(self) -> List[str]:
        return [i for ids in self.merges.values() for i in ids]

    def __bool__(self) -> bool:
        return bool(self.merges)


def merge_rows(user_id: str, rows: List[Dict[str, Any]]) -> Tuple[List[Dict[str, Any]], RepairPlan]:
    """
    `rows` must be the user's rows newest-first; among duplicates with the same
    updated_at the first one seen (the newest created) survives.
    Returns items ordered by key plus the repair plan.
    """
    groups: Dict[CartKey, List[Dict[str, Any]]] = {}
    for row in rows:
        groups.setdefault(cart_key(row), []).append(row)

    plan = RepairPlan(user_id=user_id)
    merged: List[Dict[str, Any]] = []
    for key in sorted(groups):
        group = groups[key]
        if len(group) == 1:
            merged.append(group[0])
            continue
        survivor = group[0]
        for row in group[1:]:
            if sort_key(row.get("updated_at")) > sort_key(survivor.get("updated_at")):
                survivor = row
        total = sum(int(r.get("quantity") or 0) for r in group)
        merged.append({**survivor, "quantity": total})
        plan.merges[survivor["id"]] = [r["id"] for r in group if r["id"] != survivor["id"]]

    if plan:
        logger.info(
            "cart %s: %d duplicate row(s) merged", user_id, len(plan.delete_ids),
        )
    return merged, plan


def apply_repair(repo, plan: Optional[RepairPlan]) -> bool:
    """Persist a repair plan. Never raises; returns False if the write failed."""
    if not plan:
        return True
    try:
        repo.apply_repair(plan.user_id, plan.merges)
    except StoreError:
        logger.exception("cart %s: repair failed (deletes=%s)", plan.user_id, plan.delete_ids)
        return False
    return True


def reconcile_all_carts_once(repo) -> int:
    """
    Sweep every cart and repair duplicates.
    Returns the number of carts that needed a repair.
    """
    by_user: Dict[str, List[Dict[str, Any]]] = {}
    for row in repo.stream_all():
        uid = row.get("user_id")
        if uid:
            by_user.setdefault(uid, []).append(row)

    repaired = 0
    for uid, rows in by_user.items():
        rows.sort(key=lambda r: sort_key(r.get("created_at")), reverse=True)
        _, plan = merge_rows(uid, rows)
        if plan and apply_repair(repo, plan):
            repaired += 1
    return repaired
