"""
Client record manager: gift line materialization, ownership, confirmation.
"""

from dataclasses import replace

import pytest

from conftest import ADMIN_EMAIL, KIM_EMAIL, MemoryStore, make_state, seeded_tables
from giftdesk.records import FALLBACK_ITEM_NAME
from giftdesk.services.catalog_service import remove_item, update_price
from giftdesk.services.client_service import (
    ADDRESS_REQUIRED_MESSAGE,
    ClientDraft,
    ClientNotFoundError,
    GiftDraft,
    delete_client,
    materialize_gift_line,
    save_client,
)
from giftdesk.services.table_store import RemoteError
from giftdesk.time_utils import current_year
from giftdesk.validation import ConfirmationRequired, ValidationError


def _draft(**overrides):
    fields = dict(
        name="홍길동",
        company="한빛상사",
        position="과장",
        phone="010-0000-0000",
        postcode="06236",
        address="서울 강남구 테헤란로 10",
        address_detail="5층",
        category="B(일반)",
        gift=GiftDraft(catalog_item_id="item-gen", quantity=3),
    )
    fields.update(overrides)
    return ClientDraft(**fields)


class TestCreate:

    def test_price_is_unit_price_times_quantity(self, memory_store, kim_state):
        state, created = save_client(memory_store, kim_state, _draft())

        line = created.gift_history[0]
        assert line.item_name == "홍삼 세트"
        assert line.quantity == 3
        assert line.price == 30000
        assert line.catalog_item_id == "item-gen"

    def test_defaults_and_stamp(self, memory_store, kim_state):
        _, created = save_client(memory_store, kim_state, _draft())

        line = created.gift_history[0]
        assert line.year == current_year()
        assert line.holiday == "설날"
        assert line.status == "준비중"
        assert line.id
        assert created.id
        assert created.registered_by == "김철수"
        assert created.registered_email == KIM_EMAIL

    def test_new_client_is_prepended(self, memory_store, kim_state):
        state, created = save_client(memory_store, kim_state, _draft())

        assert state.clients[0] == created
        assert len(state.clients) == len(kim_state.clients) + 1
        assert kim_state.find_client(created.id) is None

    def test_row_reaches_store_with_camel_case_lines(self, memory_store, kim_state):
        _, created = save_client(memory_store, kim_state, _draft())

        row = next(r for r in memory_store.tables["clients"] if r["id"] == created.id)
        assert row["registered_email"] == KIM_EMAIL
        assert row["gift_history"][0]["itemName"] == "홍삼 세트"
        assert row["gift_history"][0]["price"] == 30000

    def test_item_from_other_tier_is_deselected(self, memory_store, kim_state):
        draft = _draft(gift=GiftDraft(catalog_item_id="item-vip", quantity=2))
        _, created = save_client(memory_store, kim_state, draft)

        line = created.gift_history[0]
        assert line.item_name == FALLBACK_ITEM_NAME
        assert line.price == 0
        assert line.catalog_item_id == ""

    def test_missing_address_rejected_before_store(self, memory_store, kim_state):
        with pytest.raises(ValidationError) as exc:
            save_client(memory_store, kim_state, _draft(address=""))

        assert str(exc.value) == ADDRESS_REQUIRED_MESSAGE
        assert memory_store.writes() == []

    def test_missing_postcode_rejected(self, memory_store, kim_state):
        with pytest.raises(ValidationError):
            save_client(memory_store, kim_state, _draft(postcode=""))
        assert memory_store.writes() == []

    @pytest.mark.parametrize("quantity", [0, -1, "abc", 1.5])
    def test_bad_quantity_rejected(self, memory_store, kim_state, quantity):
        with pytest.raises(ValidationError):
            save_client(memory_store, kim_state, _draft(gift=GiftDraft(catalog_item_id="item-gen", quantity=quantity)))
        assert memory_store.writes() == []

    def test_unknown_category_rejected(self, memory_store, kim_state):
        with pytest.raises(ValidationError):
            save_client(memory_store, kim_state, _draft(category="D(기타)"))

    def test_store_failure_leaves_state(self, kim_state):
        store = MemoryStore(seeded_tables())
        store.fail_tables.add("clients")

        with pytest.raises(RemoteError):
            save_client(store, kim_state, _draft())
        assert len(kim_state.clients) == 3


class TestUpdate:

    def test_update_replaces_in_place_and_keeps_stamp(self, memory_store):
        admin = make_state(ADMIN_EMAIL)
        draft = _draft(name="박상무", category="B(일반)")
        state, updated = save_client(memory_store, admin, replace(draft, id="client-kim-1"))

        assert updated.name == "박상무"
        assert updated.registered_by == "김철수"
        assert updated.registered_email == KIM_EMAIL
        assert [c.id for c in state.clients] == [c.id for c in admin.clients]
        assert state.find_client("client-kim-1").name == "박상무"

        row = next(r for r in memory_store.tables["clients"] if r["id"] == "client-kim-1")
        assert row["name"] == "박상무"
        assert row["registered_email"] == KIM_EMAIL

    def test_edit_keeps_existing_line_id(self, memory_store, kim_state):
        draft = replace(_draft(), id="client-kim-1")
        _, updated = save_client(memory_store, kim_state, draft)

        assert len(updated.gift_history) == 1
        assert updated.gift_history[0].id == "g-1"

    def test_other_employees_client_is_not_found(self, memory_store, kim_state):
        draft = replace(_draft(), id="client-lee-1")

        with pytest.raises(ClientNotFoundError):
            save_client(memory_store, kim_state, draft)
        assert memory_store.writes() == []


class TestDelete:

    def test_requires_confirmation(self, memory_store, kim_state):
        with pytest.raises(ConfirmationRequired):
            delete_client(memory_store, kim_state, "client-kim-1", confirmed=False)
        assert memory_store.writes() == []

    def test_owner_can_delete(self, memory_store, kim_state):
        state = delete_client(memory_store, kim_state, "client-kim-1", confirmed=True)

        assert state.find_client("client-kim-1") is None
        assert all(r["id"] != "client-kim-1" for r in memory_store.tables["clients"])

    def test_non_owner_cannot_delete(self, memory_store, kim_state):
        with pytest.raises(ClientNotFoundError):
            delete_client(memory_store, kim_state, "client-lee-1", confirmed=True)


class TestSnapshot:

    def test_catalog_price_change_does_not_touch_saved_lines(self, memory_store):
        admin = make_state(ADMIN_EMAIL)
        state, created = save_client(memory_store, admin, _draft())

        state = update_price(memory_store, state, "item-gen", 99999)

        assert state.find_item("item-gen").unit_price == 99999
        assert state.find_client(created.id).gift_history[0].price == 30000

    def test_catalog_deletion_does_not_touch_saved_lines(self, memory_store):
        admin = make_state(ADMIN_EMAIL)
        state = remove_item(memory_store, admin, "item-gen", confirmed=True)

        line = state.find_client("client-kim-1").gift_history[0]
        assert line.item_name == "홍삼 세트"
        assert line.price == 20000
        assert line.catalog_item_id == "item-gen"


def test_materialize_with_no_item_uses_fallback(kim_state):
    line = materialize_gift_line(GiftDraft(), kim_state.catalog, "A(VIP)")
    assert line.item_name == FALLBACK_ITEM_NAME
    assert line.price == 0
    assert line.quantity == 1
