from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest

from distbill.core.exceptions import RecordNotFoundError
from distbill.services.line_items import Cart, DuplicateLineError, LineEditError


def make_product(product_id=1, gst_rate="12", sale_rate="100", **overrides):
    fields = dict(
        id=product_id,
        name=f"Product {product_id}",
        batch="B1",
        expiry=date(2027, 1, 31),
        hsn="3004",
        manufacturer="Cipla",
        mrp=Decimal("120"),
        old_mrp=None,
        sale_rate=Decimal(sale_rate),
        gst_rate=Decimal(gst_rate),
    )
    fields.update(overrides)
    return SimpleNamespace(**fields)


def make_profile(use_default_gst=False, default_gst_rate="5", gstin="24AADPO7411Q1ZE"):
    return SimpleNamespace(
        gstin=gstin,
        use_default_gst=use_default_gst,
        default_gst_rate=None if default_gst_rate is None else Decimal(default_gst_rate),
    )


LOCAL_PARTY = SimpleNamespace(id=1, name="Local", gstin="24ABCDE1234F1Z5", address="")
REMOTE_PARTY = SimpleNamespace(id=2, name="Remote", gstin="27ABCDE1234F1Z5", address="")


def test_add_line_snapshots_product():
    cart = Cart(make_profile())
    line = cart.add_line(make_product())

    assert line.product_id == 1
    assert line.quantity == 1
    assert line.free_quantity == 0
    assert line.gst_rate == Decimal("12")
    assert line.old_mrp == Decimal("120")
    assert line.taxable_value == Decimal("100")
    assert line.cgst_amount == line.sgst_amount == Decimal("6")
    assert line.total_amount == Decimal("112")


def test_duplicate_product_is_rejected():
    cart = Cart(make_profile())
    product = make_product()
    cart.add_line(product)

    with pytest.raises(DuplicateLineError) as exc_info:
        cart.add_line(product)

    assert exc_info.value.error_code == "DUPLICATE_LINE"
    assert len(cart) == 1


def test_default_gst_policy_overrides_product_rate():
    cart = Cart(make_profile(use_default_gst=True, default_gst_rate="5"))
    line = cart.add_line(make_product(gst_rate="18"))
    assert line.gst_rate == Decimal("5")


def test_default_gst_policy_falls_back_when_rate_unset():
    cart = Cart(make_profile(use_default_gst=True, default_gst_rate=None), default_gst_rate=5)
    assert cart.add_line(make_product(gst_rate="18")).gst_rate == Decimal("5")


def test_zero_default_rate_is_respected():
    cart = Cart(make_profile(use_default_gst=True, default_gst_rate="0"))
    line = cart.add_line(make_product(gst_rate="18"))
    assert line.gst_rate == 0
    assert line.total_amount == line.taxable_value


def test_profile_change_does_not_rerate_existing_lines():
    cart = Cart(make_profile(use_default_gst=False))
    cart.add_line(make_product(1, gst_rate="18"))

    cart.set_profile(make_profile(use_default_gst=True, default_gst_rate="5"))
    cart.add_line(make_product(2, gst_rate="18"))

    assert cart.get_line(1).gst_rate == Decimal("18")
    assert cart.get_line(2).gst_rate == Decimal("5")


def test_explicit_rate_restores_earlier_choice():
    cart = Cart(make_profile(use_default_gst=True))
    assert cart.add_line(make_product(gst_rate="18"), gst_rate="12").gst_rate == Decimal("12")


def test_edit_reprices_line():
    cart = Cart(make_profile())
    cart.add_line(make_product())

    line = cart.update_line(1, quantity=10, discount_percent="10", free_quantity=2)

    assert line.taxable_value == Decimal("900")
    assert line.cgst_amount == Decimal("54")
    assert line.total_amount == Decimal("1008")
    assert line.stock_units == 12


def test_free_quantity_is_not_charged():
    cart = Cart(make_profile())
    cart.add_line(make_product())
    before = cart.get_line(1).total_amount

    assert cart.update_line(1, free_quantity=5).total_amount == before


def test_recompute_is_idempotent():
    cart = Cart(make_profile(), party=REMOTE_PARTY)
    cart.add_line(make_product())
    cart.update_line(1, quantity=3, discount_percent="2.5", sale_rate="99.99")

    first = cart.lines
    cart.recompute()
    cart.recompute()

    assert cart.lines == first


def test_party_change_reprices_every_line():
    cart = Cart(make_profile(), party=LOCAL_PARTY)
    cart.add_line(make_product(1))
    cart.add_line(make_product(2, gst_rate="5"))
    assert all(line.igst_amount == 0 for line in cart)

    cart.set_party(REMOTE_PARTY)

    for line in cart:
        assert line.cgst_amount == line.sgst_amount == 0
        assert line.igst_rate == line.gst_rate
        assert line.igst_amount == line.taxable_value * line.gst_rate / 100


def test_cash_sale_is_intrastate():
    cart = Cart(make_profile())
    line = cart.add_line(make_product())
    assert cart.buyer_state_code == "24"
    assert line.igst_amount == 0


def test_only_one_tax_kind_per_line():
    for party in (None, LOCAL_PARTY, REMOTE_PARTY):
        cart = Cart(make_profile(), party=party)
        line = cart.add_line(make_product())
        assert (line.cgst_amount + line.sgst_amount == 0) != (line.igst_amount == 0)
        assert line.total_amount == line.taxable_value + line.cgst_amount + line.sgst_amount + line.igst_amount


def test_batch_and_mrp_edits_are_kept():
    cart = Cart(make_profile())
    cart.add_line(make_product())
    line = cart.update_line(1, batch=" NEW7 ", mrp="130")
    assert line.batch == "NEW7"
    assert line.mrp == Decimal("130")
    assert line.old_mrp == Decimal("120")


@pytest.mark.parametrize(
    "changes",
    [
        {"quantity": -1},
        {"quantity": "two"},
        {"quantity": 2.7},
        {"free_quantity": "1.5"},
        {"quantity": None},
        {"discount_percent": "ten"},
        {"discount_percent": "33.333"},
        {"sale_rate": "10.555"},
        {"mrp": "NaN"},
        {"discount_percent": "101"},
        {"sale_rate": "-5"},
        {"gst_rate": "18"},
        {"name": "Renamed"},
    ],
)
def test_invalid_edits_are_rejected(changes):
    cart = Cart(make_profile())
    cart.add_line(make_product())
    before = cart.lines

    with pytest.raises(LineEditError):
        cart.update_line(1, **changes)

    assert cart.lines == before


def test_editing_unknown_line_raises():
    cart = Cart(make_profile())
    with pytest.raises(RecordNotFoundError):
        cart.update_line(42, quantity=2)


def test_remove_line():
    cart = Cart(make_profile())
    cart.add_line(make_product(1))
    cart.add_line(make_product(2))

    cart.remove_line(1)

    assert 1 not in cart
    assert [line.product_id for line in cart] == [2]


def test_whole_and_two_place_values_are_accepted():
    cart = Cart(make_profile())
    cart.add_line(make_product())

    line = cart.update_line(1, quantity=3.0, free_quantity="1", sale_rate="100.70", discount_percent="33.30")

    assert line.quantity == 3
    assert isinstance(line.quantity, int)
    assert line.free_quantity == 1
    assert line.sale_rate == Decimal("100.70")
    assert line.discount_percent == Decimal("33.30")
