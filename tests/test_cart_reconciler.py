import unittest
from datetime import timedelta

from fakes import BASE_TIME, FakeCartRepo

from storefront.services.cart_reconciler import apply_repair, merge_rows, reconcile_all_carts_once


class MergeRowsTests(unittest.TestCase):
    def setUp(self):
        self.repo = FakeCartRepo()

    def rows(self, uid="u1"):
        return self.repo.list_for_user(uid)

    def test_no_duplicates_means_no_plan(self):
        self.repo.seed("u1", "p1", quantity=2)
        self.repo.seed("u1", "p2", "M", quantity=1)

        items, plan = merge_rows("u1", self.rows())

        self.assertEqual(len(items), 2)
        self.assertFalse(plan)

    def test_quantity_is_summed_across_duplicates(self):
        self.repo.seed("u1", "p1", "M", quantity=2)
        self.repo.seed("u1", "p1", "M", quantity=3)
        self.repo.seed("u1", "p1", "M", quantity=4)

        items, plan = merge_rows("u1", self.rows())

        self.assertEqual(len(items), 1)
        self.assertEqual(items[0]["quantity"], 9)
        self.assertEqual(len(plan.delete_ids), 2)
        self.assertNotIn(items[0]["id"], plan.delete_ids)
        self.assertEqual(list(plan.merges), [items[0]["id"]])
        self.assertEqual(sorted(plan.merges[items[0]["id"]]), sorted(plan.delete_ids))

    def test_survivor_is_most_recently_updated(self):
        old = self.repo.seed("u1", "p1", quantity=1, product_price=5.0)
        self.repo.seed("u1", "p1", quantity=1, product_price=6.0)
        # the older row was touched last
        self.repo.rows[old["id"]]["updated_at"] = BASE_TIME + timedelta(hours=1)

        items, plan = merge_rows("u1", self.rows())

        self.assertEqual(items[0]["id"], old["id"])
        self.assertEqual(items[0]["product_price"], 5.0)
        self.assertEqual(items[0]["quantity"], 2)

    def test_tie_on_updated_at_keeps_newest_created(self):
        same = BASE_TIME + timedelta(minutes=5)
        self.repo.seed("u1", "p1", updated_at=same)
        newest = self.repo.seed("u1", "p1", updated_at=same)

        items, plan = merge_rows("u1", self.rows())

        self.assertEqual(items[0]["id"], newest["id"])

    def test_variants_are_separate_lines(self):
        self.repo.seed("u1", "p1", "S")
        self.repo.seed("u1", "p1", "M")
        self.repo.seed("u1", "p1", "")

        items, plan = merge_rows("u1", self.rows())

        self.assertEqual([i["variant"] for i in items], ["", "M", "S"])
        self.assertFalse(plan)

    def test_orphaned_rows_group_under_empty_product(self):
        self.repo.seed("u1", None, quantity=1)
        self.repo.seed("u1", None, quantity=2)

        items, plan = merge_rows("u1", self.rows())

        self.assertEqual(len(items), 1)
        self.assertEqual(items[0]["quantity"], 3)

    def test_output_is_ordered_by_key(self):
        self.repo.seed("u1", "b")
        self.repo.seed("u1", "a")
        self.repo.seed("u1", "c")

        items, _ = merge_rows("u1", self.rows())

        self.assertEqual([i["product_id"] for i in items], ["a", "b", "c"])

    def test_merge_does_not_touch_storage(self):
        self.repo.seed("u1", "p1")
        self.repo.seed("u1", "p1")
        rows = self.rows()
        self.repo.calls.clear()

        merge_rows("u1", rows)

        self.assertEqual(self.repo.calls, [])
        self.assertEqual(len(self.repo.rows), 2)


class ApplyRepairTests(unittest.TestCase):
    def test_repair_makes_storage_match_the_merged_view(self):
        repo = FakeCartRepo()
        repo.seed("u1", "p1", quantity=2)
        repo.seed("u1", "p1", quantity=3)
        items, plan = merge_rows("u1", repo.list_for_user("u1"))

        self.assertTrue(apply_repair(repo, plan))

        rows = repo.user_rows("u1")
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]["id"], items[0]["id"])
        self.assertEqual(rows[0]["quantity"], 5)

    def test_repair_sums_quantities_stored_when_it_runs(self):
        repo = FakeCartRepo()
        repo.seed("u1", "p1", quantity=2)
        repo.seed("u1", "p1", quantity=3)
        items, plan = merge_rows("u1", repo.list_for_user("u1"))
        # another request bumps the non-surviving row before the repair
        other = plan.delete_ids[0]
        repo.rows[other]["quantity"] += 10

        self.assertTrue(apply_repair(repo, plan))

        self.assertEqual([r["quantity"] for r in repo.user_rows("u1")], [15])

    def test_group_is_skipped_when_survivor_was_removed(self):
        repo = FakeCartRepo()
        repo.seed("u1", "p1", quantity=2)
        repo.seed("u1", "p1", quantity=3)
        items, plan = merge_rows("u1", repo.list_for_user("u1"))
        del repo.rows[items[0]["id"]]

        self.assertTrue(apply_repair(repo, plan))

        self.assertEqual([r["quantity"] for r in repo.user_rows("u1")], [2])

    def test_repair_failure_is_swallowed(self):
        repo = FakeCartRepo(fail_repair=True)
        repo.seed("u1", "p1")
        repo.seed("u1", "p1")
        _, plan = merge_rows("u1", repo.list_for_user("u1"))

        with self.assertLogs("storefront.cart", level="ERROR"):
            self.assertFalse(apply_repair(repo, plan))
        self.assertEqual(len(repo.rows), 2)

    def test_empty_plan_is_a_no_op(self):
        repo = FakeCartRepo()
        repo.seed("u1", "p1")
        _, plan = merge_rows("u1", repo.list_for_user("u1"))

        self.assertTrue(apply_repair(repo, plan))
        self.assertNotIn("apply_repair", repo.call_names())


class SweepTests(unittest.TestCase):
    def test_sweep_repairs_every_cart_with_duplicates(self):
        repo = FakeCartRepo()
        repo.seed("u1", "p1", quantity=1)
        repo.seed("u1", "p1", quantity=1)
        repo.seed("u2", "p9", "L", quantity=2)
        repo.seed("u2", "p9", "L", quantity=5)
        repo.seed("u3", "p1", quantity=1)

        self.assertEqual(reconcile_all_carts_once(repo), 2)

        self.assertEqual([r["quantity"] for r in repo.user_rows("u1")], [2])
        self.assertEqual([r["quantity"] for r in repo.user_rows("u2")], [7])
        self.assertEqual(len(repo.user_rows("u3")), 1)

    def test_sweep_never_merges_across_users(self):
        repo = FakeCartRepo()
        repo.seed("u1", "p1")
        repo.seed("u2", "p1")

        self.assertEqual(reconcile_all_carts_once(repo), 0)
        self.assertEqual(len(repo.rows), 2)


if __name__ == "__main__":
    unittest.main()
