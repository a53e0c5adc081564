from __future__ import annotations

from voucher_pivot.accessor import ValueAccessor
from voucher_pivot.joins import JoinContext
from voucher_pivot.models import Dataset, Relationship
from voucher_pivot.relationships import (
    count_matches,
    default_from_field,
    involved_collections,
    master_id_field,
    propose_join,
    resolve_relationships,
)


def test_involved_collections_from_prefixes_and_groups():
    fields = ["region", "customers.parent", "allinventoryentries.amount", "customers.city"]

    assert involved_collections(fields) == ["customers", "stockitems"]
    assert involved_collections(["region", "amount"]) == []


def test_default_join_precedence_table():
    assert default_from_field("customers", ["region"]) == "partyledgernameid"
    assert default_from_field("customers", ["ledgerentries.amount"]) == "ledgernameid"
    assert default_from_field("customers", ["ledgerentries.billallocations.amount"]) == (
        "ledgernameid"
    )
    # Voucher-level and ledger-entry fields together: the ledger entry wins.
    assert default_from_field("customers", ["region", "ledgerentries.amount"]) == "ledgernameid"
    assert default_from_field("stockitems", ["allinventoryentries.amount"]) == "stockitemnameid"
    assert default_from_field("stockitems", []) == "stockitemnameid"


def test_propose_join_prefers_shared_id_like_name():
    from_records = [{"name": "Acme", "partyid": 1}]
    to_records = [{"label": "x", "PartyID": 1, "name": "Acme"}]

    assert propose_join(from_records, to_records) == ("partyid", "PartyID")


def test_propose_join_falls_back_through_name_rules():
    assert propose_join([{"Region": "W"}], [{"region": "W"}]) == ("Region", "region")
    assert propose_join([{"party_name": "a"}], [{"Party Name": "a"}]) == (
        "party_name",
        "Party Name",
    )
    assert propose_join([{"a": 1}], [{"b": 2}]) == ("a", "b")
    assert propose_join([], [{"b": 2}]) is None


def test_master_id_field_preserves_case():
    assert master_id_field([{"MasterID": "1"}]) == "MasterID"
    assert master_id_field([{"name": "x"}]) is None


def test_default_wiring_for_customers(voucher_dataset):
    rels = resolve_relationships(voucher_dataset, ["customers.parent"])

    rel = rels["customers"]
    assert rel.from_field == "partyledgernameid"
    assert (rel.to_field, rel.join_type) == ("masterid", "left")
    assert count_matches(rel, voucher_dataset.primary, voucher_dataset.customers) == 2


def test_ledger_entry_fields_switch_the_customer_join(voucher_dataset):
    rels = resolve_relationships(voucher_dataset, ["ledgerentries.amount", "customers.parent"])

    assert rels["customers"].from_field == "ledgernameid"
    assert "stockitems" not in rels


def test_stockitems_wiring(voucher_dataset):
    rels = resolve_relationships(
        voucher_dataset, ["allinventoryentries.amount", "stockitems.category"]
    )

    assert rels["stockitems"].from_field == "stockitemnameid"
    assert rels["stockitems"].to_field == "masterid"


def test_user_relationship_overrides_heuristics(voucher_dataset):
    override = Relationship(
        from_field="partyledgername", to_collection="customers", to_field="name"
    )

    rels = resolve_relationships(voucher_dataset, ["customers.parent"], [override])

    assert rels["customers"] is override


def test_overrides_for_untouched_collections_stay_active(voucher_dataset):
    override = Relationship(
        from_field="stockitemnameid", to_collection="stockitems", to_field="masterid"
    )

    rels = resolve_relationships(voucher_dataset, ["region"], [override])

    assert rels == {"stockitems": override}


def test_empty_reference_collection_is_skipped(vouchers):
    assert resolve_relationships(Dataset(primary=vouchers), ["customers.parent"]) == {}


def test_heuristic_used_without_master_id(vouchers):
    customers = [{"partyledgername": "Acme Traders", "parent": "Debtors"}]
    dataset = Dataset(primary=vouchers, customers=customers)

    rel = resolve_relationships(dataset, ["customers.parent"])["customers"]

    assert (rel.from_field, rel.to_field) == ("partyledgername", "partyledgername")


def test_zero_match_join_is_kept(vouchers):
    customers = [{"masterid": "nope", "parent": "Debtors"}]
    dataset = Dataset(primary=vouchers, customers=customers)

    rel = resolve_relationships(dataset, ["customers.parent"])["customers"]

    assert count_matches(rel, dataset.primary, dataset.customers) == 0


def test_name_heuristic_replaces_default_wiring_that_matches_nothing():
    dataset = Dataset(
        primary=[{"customer_code": "C1", "amount": 10}],
        customers=[{"masterid": "M1", "customer_code": "C1", "parent": "Debtors"}],
    )

    rels = resolve_relationships(dataset, ["customers.parent"])

    rel = rels["customers"]
    assert (rel.from_field, rel.to_field) == ("customer_code", "customer_code")
    accessor = ValueAccessor(JoinContext(dataset, rels))
    assert accessor(dataset.primary[0], "customers.parent") == "Debtors"


def test_default_wiring_kept_when_it_matches(voucher_dataset):
    customers = [dict(c, partyledgername=c["name"]) for c in voucher_dataset.customers]
    dataset = Dataset(primary=voucher_dataset.primary, customers=customers)

    rel = resolve_relationships(dataset, ["customers.parent"])["customers"]

    assert (rel.from_field, rel.to_field) == ("partyledgernameid", "masterid")
