from decimal import Decimal

import pytest

from payments.models import Transaction
from payments.services.reconciliation import flatten_metadata, reconcile_callback

pytestmark = [pytest.mark.django_db, pytest.mark.payment]

CHECKOUT_ID = "ws_CO_191220191020363925"

SUCCESS_ITEMS = [
    {"Name": "Amount", "Value": 10.00},
    {"Name": "MpesaReceiptNumber", "Value": "ABC123"},
    {"Name": "Balance"},
    {"Name": "TransactionDate", "Value": 20191219102115},
    {"Name": "PhoneNumber", "Value": 254711111111},
]


@pytest.fixture
def pending():
    return Transaction.objects.create(
        phone_number="254700000000",
        amount=10,
        checkout_request_id=CHECKOUT_ID,
        merchant_request_id="29115-34620561-1",
        gateway_response={"CheckoutRequestID": CHECKOUT_ID, "ResponseCode": "0"},
        status=Transaction.Status.PENDING,
    )


def test_flatten_metadata():
    stk = {"CallbackMetadata": {"Item": SUCCESS_ITEMS}}
    meta = flatten_metadata(stk)

    assert meta["MpesaReceiptNumber"] == "ABC123"
    assert meta["Amount"] == 10.00
    assert meta["Balance"] is None
    assert flatten_metadata({}) == {}
    assert flatten_metadata({"CallbackMetadata": {"Item": "oops"}}) == {}


def test_success_callback_completes_pending_record(pending, make_callback):
    txn = reconcile_callback(make_callback(items=SUCCESS_ITEMS))

    assert txn.pk == pending.pk
    pending.refresh_from_db()
    assert pending.status == Transaction.Status.SUCCESS
    assert pending.result_code == "0"
    assert pending.mpesa_receipt_number == "ABC123"
    assert pending.amount_paid == Decimal("10.00")
    assert pending.phone_number == "254711111111"
    assert pending.callback_metadata["TransactionDate"] == 20191219102115
    assert pending.callback_received_at is not None
    assert pending.is_orphan is False
    assert Transaction.objects.count() == 1


def test_failed_callback_keeps_phone_and_metadata(pending, make_callback):
    items = [{"Name": "PhoneNumber", "Value": 254799999999}]
    reconcile_callback(make_callback(result_code=1032, result_desc="Request cancelled by user", items=items))

    pending.refresh_from_db()
    assert pending.status == Transaction.Status.FAILED
    assert pending.result_code == "1032"
    assert pending.result_desc == "Request cancelled by user"
    assert pending.callback_metadata == {"PhoneNumber": 254799999999}
    assert pending.phone_number == "254700000000"
    assert pending.mpesa_receipt_number is None
    assert pending.amount_paid is None


def test_string_result_code_zero_is_success(pending, make_callback):
    reconcile_callback(make_callback(result_code="0", items=SUCCESS_ITEMS))

    pending.refresh_from_db()
    assert pending.status == Transaction.Status.SUCCESS


def test_redelivered_callback_does_not_mutate_terminal_record(pending, make_callback):
    reconcile_callback(make_callback(items=SUCCESS_ITEMS))
    reconcile_callback(make_callback(result_code=1, result_desc="late failure"))

    pending.refresh_from_db()
    assert pending.status == Transaction.Status.SUCCESS
    assert pending.mpesa_receipt_number == "ABC123"
    assert Transaction.objects.count() == 1


@pytest.mark.parametrize("result_code, expected", [
    (0, Transaction.Status.SUCCESS),
    (2001, Transaction.Status.FAILED),
])
def test_unmatched_callback_creates_one_orphan(pending, make_callback, result_code, expected):
    before = Transaction.objects.count()

    txn = reconcile_callback(make_callback(checkout_request_id="ws_CO_unknown", result_code=result_code))

    assert Transaction.objects.count() == before + 1
    assert txn.is_orphan is True
    assert txn.status == expected
    assert txn.checkout_request_id == "ws_CO_unknown"
    pending.refresh_from_db()
    assert pending.status == Transaction.Status.PENDING


def test_payload_without_stk_callback_is_stored_raw():
    payload = {"TransactionType": "Pay Bill", "TransID": "RKTQDM7W6S"}

    txn = reconcile_callback(payload)

    txn.refresh_from_db()
    assert txn.raw_callback == payload
    assert txn.status is None
    assert txn.to_dict()["rawCallback"] == payload


def test_non_mapping_payload_is_stored_raw():
    txn = reconcile_callback(["unexpected"])

    assert txn.raw_callback == ["unexpected"]
    assert txn.status is None
