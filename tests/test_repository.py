"""Tests for TableRepository and the entity repositories.

Covers header-name based row mapping (reordered and extra columns), create
stamping, partial updates with the updated_at concurrency token, and schema
bootstrapping.
"""

from __future__ import annotations

import pytest

from src.dealreg.core.errors import ConcurrentModification, NotFound, StoreSchemaError
from src.dealreg.records.repository import DealRepository, Repositories, ensure_schema
from src.dealreg.records.schemas import AdminEntry, CustomerRecord, DealRecord
from src.dealreg.records.tables import ALL_TABLES, DEALS
from src.dealreg.store.memory import InMemoryTabularStore


@pytest.fixture
def shuffled_store() -> InMemoryTabularStore:
    """Deals tab whose header is reversed and carries a hand-added column."""
    header = list(reversed(DEALS.columns)) + ["internal_notes"]
    return InMemoryTabularStore({"Deals": [header]})


# ── Create ───────────────────────────────────────────────────────────────────


class TestCreate:
    async def test_generates_id_and_stamps(self, repos):
        deal = await repos.deals.create(DealRecord(company_name="Acme", domain="acme.com"))

        assert deal.id
        assert deal.created_at
        assert deal.created_at == deal.updated_at
        assert deal.status == "submitted"

    async def test_keeps_explicit_id(self, repos):
        deal = await repos.deals.create(DealRecord(id="fixed-id", company_name="Acme"))
        assert deal.id == "fixed-id"
        assert (await repos.deals.get("fixed-id")).company_name == "Acme"

    async def test_admin_entries_keyed_by_email_get_no_id(self, repos, store):
        entry = await repos.admins.create(AdminEntry(email="boss@vendor.com", added_by="ops"))

        assert entry.added_at
        rows = store.dump("Admins")
        assert rows[0] == ["email", "added_by", "added_at", "status"]
        assert rows[1][0] == "boss@vendor.com"

    async def test_table_without_header_raises_schema_error(self):
        deals = DealRepository(InMemoryTabularStore())
        with pytest.raises(StoreSchemaError):
            await deals.create(DealRecord(company_name="Acme"))


# ── Header Mapping ───────────────────────────────────────────────────────────


class TestHeaderMapping:
    async def test_reordered_header_round_trips(self, shuffled_store):
        deals = DealRepository(shuffled_store)
        created = await deals.create(
            DealRecord(company_name="Acme", domain="acme.com", deal_value="1000")
        )

        loaded = await deals.get(created.id)

        assert loaded.company_name == "Acme"
        assert loaded.domain == "acme.com"
        assert loaded.deal_value == "1000"
        row = shuffled_store.dump("Deals")[1]
        header = shuffled_store.dump("Deals")[0]
        assert row[header.index("company_name")] == "Acme"

    async def test_update_preserves_columns_outside_schema(self, shuffled_store):
        deals = DealRepository(shuffled_store)
        created = await deals.create(DealRecord(company_name="Acme"))
        header = shuffled_store.dump("Deals")[0]
        row = shuffled_store.dump("Deals")[1]
        row[header.index("internal_notes")] = "call back in Q3"
        await shuffled_store.update_row("Deals", 2, row)

        await deals.update_partial(created.id, {"status": "approved"})

        stored = shuffled_store.dump("Deals")[1]
        assert stored[header.index("internal_notes")] == "call back in Q3"
        assert stored[header.index("status")] == "approved"

    async def test_short_rows_are_padded(self):
        header = list(DEALS.columns)
        short_row = ["d1", "p1", "c1", "u1", "submitted"]
        deals = DealRepository(InMemoryTabularStore({"Deals": [header, short_row]}))

        deal = await deals.get("d1")

        assert deal.status == "submitted"
        assert deal.company_name == ""
        assert deal.updated_at == ""

    async def test_missing_schema_column_raises(self):
        header = [c for c in DEALS.columns if c != "domain"]
        deals = DealRepository(InMemoryTabularStore({"Deals": [header, ["d1"]]}))

        with pytest.raises(StoreSchemaError) as exc_info:
            await deals.find_all()
        assert exc_info.value.detail["missing"] == ["domain"]

    async def test_find_all_skips_blank_rows(self):
        header = list(DEALS.columns)
        deals = DealRepository(
            InMemoryTabularStore({"Deals": [header, [], ["d2", "p1"]]})
        )
        assert [d.id for d in await deals.find_all()] == ["d2"]

    async def test_find_rejects_unknown_field(self, repos):
        with pytest.raises(ValueError):
            await repos.deals.find("nickname", "x")


# ── Partial Update ───────────────────────────────────────────────────────────


class TestUpdatePartial:
    async def test_merges_deltas_and_refreshes_updated_at(self, repos):
        created = await repos.customers.create(
            CustomerRecord(company_name="Acme", domain="acme.com", industry="Retail")
        )

        updated = await repos.customers.update_partial(
            created.id, {"location": "Lisbon"}, expected_updated_at=created.updated_at
        )

        assert updated.location == "Lisbon"
        assert updated.industry == "Retail"
        assert updated.created_at == created.created_at
        reloaded = await repos.customers.find_by_domain("acme.com")
        assert reloaded.location == "Lisbon"
        assert reloaded.updated_at == updated.updated_at

    async def test_missing_row_raises_not_found(self, repos):
        with pytest.raises(NotFound):
            await repos.deals.update_partial("nope", {"status": "approved"})

    async def test_stale_token_is_refused_without_writing(self, repos, store):
        created = await repos.deals.create(DealRecord(company_name="Acme"))
        before = store.dump("Deals")

        with pytest.raises(ConcurrentModification):
            await repos.deals.update_partial(
                created.id,
                {"status": "approved"},
                expected_updated_at="2000-01-01T00:00:00.000Z",
            )
        assert store.dump("Deals") == before

    async def test_same_millisecond_writes_still_advance_token(self, repos, store, monkeypatch):
        monkeypatch.setattr(store, "now", lambda: "2026-03-01T09:30:00.000Z")
        created = await repos.deals.create(DealRecord(company_name="Acme"))

        first = await repos.deals.update_partial(
            created.id, {"deal_stage": "Proposal"}, expected_updated_at=created.updated_at
        )

        assert first.updated_at == "2026-03-01T09:30:00.001Z"
        with pytest.raises(ConcurrentModification):
            await repos.deals.update_partial(
                created.id, {"status": "approved"}, expected_updated_at=created.updated_at
            )

        second = await repos.deals.update_partial(
            created.id, {"status": "approved"}, expected_updated_at=first.updated_at
        )
        assert second.updated_at == "2026-03-01T09:30:00.002Z"

    async def test_rejects_unknown_delta_column(self, repos):
        created = await repos.deals.create(DealRecord(company_name="Acme"))
        with pytest.raises(ValueError):
            await repos.deals.update_partial(created.id, {"nickname": "x"})


# ── Entity Lookups ───────────────────────────────────────────────────────────


class TestEntityLookups:
    async def test_user_email_lookup_is_normalized(self, repos, user_factory):
        await user_factory("dana@partner.com")
        assert await repos.users.find_by_email("  Dana@Partner.COM ") is not None

    async def test_admin_lookup_tolerates_hand_edited_casing(self, repos):
        await repos.admins.create(AdminEntry(email="Boss@Vendor.com", added_by="ops"))
        entry = await repos.admins.find_by_email("boss@vendor.com")
        assert entry.email == "Boss@Vendor.com"

    async def test_customer_domain_lookup_is_case_sensitive(self, repos):
        await repos.customers.create(CustomerRecord(company_name="Acme", domain="acme.com"))
        assert await repos.customers.find_by_domain("ACME.com") is None


# ── Schema Bootstrap ─────────────────────────────────────────────────────────


class TestEnsureSchema:
    async def test_bootstraps_every_table_once(self):
        store = InMemoryTabularStore()

        first = await ensure_schema(store)
        second = await ensure_schema(store)

        assert first == [table.name for table in ALL_TABLES]
        assert second == []
        assert store.dump("Audit_Log")[0] == list(ALL_TABLES[-1].columns)

    async def test_repositories_share_one_store(self, store):
        repos = Repositories.for_store(store)
        await repos.deals.create(DealRecord(company_name="Acme"))
        assert len(store.dump("Deals")) == 2
