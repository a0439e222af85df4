import logging
from decimal import Decimal, InvalidOperation

from django.db import transaction as db_transaction
from django.utils import timezone

from payments.models import Transaction

logger = logging.getLogger(__name__)


def flatten_metadata(stk):
    """Turn CallbackMetadata.Item ([{Name, Value}, ...]) into a dict."""
    metadata = stk.get("CallbackMetadata") or {}
    items = metadata.get("Item") if isinstance(metadata, dict) else None
    meta = {}
    if isinstance(items, list):
        for item in items:
            if isinstance(item, dict) and "Name" in item:
                meta[item["Name"]] = item.get("Value")
    return meta


def _to_decimal(value):
    if value is None:
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


def apply_payment_metadata(txn, meta):
    """Copy receipt, paid amount and paying phone from a successful callback."""
    txn.mpesa_receipt_number = meta.get("MpesaReceiptNumber")
    txn.amount_paid = _to_decimal(meta.get("Amount"))
    if meta.get("PhoneNumber") is not None:
        txn.phone_number = str(meta["PhoneNumber"])


def _store_raw(payload):
    txn = Transaction.objects.create(raw_callback=payload)
    logger.info("Callback without stkCallback stored raw", extra={
        "event": "callback_raw",
        "local_id": txn.id,
    })
    return txn


def reconcile_callback(payload):
    """Apply a Daraja STK callback to the transaction it belongs to.

    Matching is by CheckoutRequestID. A matched PENDING record moves to
    SUCCESS (ResultCode 0) or FAILED; a record that is already terminal is
    left untouched. With no match an orphan record is created in the
    terminal status. Payloads without ``Body.stkCallback`` are stored raw.
    """
    body = payload.get("Body") if isinstance(payload, dict) else None
    stk = body.get("stkCallback") if isinstance(body, dict) else None
    if not isinstance(stk, dict):
        return _store_raw(payload)

    merchant_request_id = stk.get("MerchantRequestID")
    checkout_request_id = stk.get("CheckoutRequestID") or None
    result_code = str(stk.get("ResultCode")) if stk.get("ResultCode") is not None else None
    result_desc = stk.get("ResultDesc")
    meta = flatten_metadata(stk)

    result_ok = result_code == '0'
    status = Transaction.Status.SUCCESS if result_ok else Transaction.Status.FAILED
    log_extra = {
        "checkout_request_id": checkout_request_id,
        "result_code": result_code,
    }

    with db_transaction.atomic():
        txn = None
        if checkout_request_id:
            txn = (Transaction.objects.select_for_update()
                   .filter(checkout_request_id=checkout_request_id)
                   .first())

        if txn is None:
            txn = Transaction.objects.create(
                merchant_request_id=merchant_request_id,
                checkout_request_id=checkout_request_id,
                result_code=result_code,
                result_desc=result_desc,
                callback_metadata=meta,
                callback_received_at=timezone.now(),
                status=status,
                is_orphan=True,
            )
            # An orphan usually means the initiation record never captured its CheckoutRequestID
            logger.warning("Callback matched no transaction; orphan record created", extra={
                **log_extra, "event": "callback_orphan", "local_id": txn.id,
            })
            return txn

        if txn.is_terminal:
            logger.info("Duplicate callback ignored", extra={
                **log_extra, "event": "callback_duplicate", "local_id": txn.id,
                "current_status": txn.status,
            })
            return txn

        txn.status = status
        txn.result_code = result_code
        txn.result_desc = result_desc
        txn.callback_metadata = meta
        txn.callback_received_at = timezone.now()
        if not txn.merchant_request_id:
            txn.merchant_request_id = merchant_request_id
        if result_ok:
            apply_payment_metadata(txn, meta)
        txn.save()

    logger.info("Callback reconciled", extra={
        **log_extra, "event": "callback_reconciled", "local_id": txn.id, "status": txn.status,
    })
    return txn
