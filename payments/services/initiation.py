import logging
from decimal import Decimal, InvalidOperation

from django.db import IntegrityError
from django.db import transaction as db_transaction

from payments.exceptions import BadRequest, GatewayError
from payments.models import Transaction
from payments.services.reconciliation import apply_payment_metadata

logger = logging.getLogger(__name__)


def _parse_amount(amount):
    if amount is None or isinstance(amount, bool) or amount == "":
        raise BadRequest("phone and amount required")
    try:
        value = Decimal(str(amount).strip())
    except InvalidOperation:
        raise BadRequest("amount must be a number")
    if not value.is_finite() or value <= 0:
        raise BadRequest("amount must be positive")
    # Daraja only accepts whole shillings
    rounded = int(round(value))
    if rounded <= 0:
        raise BadRequest("amount must be at least 1")
    return rounded


def _adopt_orphan(checkout_request_id, fields):
    """Attach initiation details to an orphan the callback created first."""
    with db_transaction.atomic():
        txn = (Transaction.objects.select_for_update()
               .filter(checkout_request_id=checkout_request_id)
               .first())
        if txn is None or not txn.is_orphan:
            raise GatewayError("Duplicate CheckoutRequestID returned by MPESA",
                               payload=fields['gateway_response'])
        for name, value in fields.items():
            setattr(txn, name, value)
        if txn.status == Transaction.Status.SUCCESS:
            apply_payment_metadata(txn, txn.callback_metadata or {})
        txn.is_orphan = False
        txn.save()
    logger.warning("Callback arrived before initiation was recorded; orphan adopted", extra={
        "event": "orphan_adopted",
        "local_id": txn.id,
        "checkout_request_id": checkout_request_id,
    })
    return txn


def initiate_payment(provider, phone, amount, account_reference="Ref", description="Payment"):
    """Send an STK push and record it as a PENDING transaction.

    Returns ``(transaction, acknowledgment)``. Nothing is saved unless the
    gateway accepted the request.
    """
    phone = str(phone).strip() if phone is not None else ""
    if not phone:
        raise BadRequest("phone and amount required")
    amount = _parse_amount(amount)

    try:
        ack = provider.initiate(
            phone=phone,
            amount=amount,
            account_reference=account_reference,
            description=description,
        )
    except GatewayError as e:
        logger.error("STK push failed: %s", e, extra={
            "event": "stk_push_failed",
            "upstream_status": e.status_code,
            "upstream_payload": e.payload,
        })
        raise

    checkout_request_id = ack.get('CheckoutRequestID') or None
    fields = dict(
        phone_number=phone,
        amount=amount,
        account_reference=account_reference,
        description=description,
        merchant_request_id=ack.get('MerchantRequestID'),
        gateway_response=ack,
    )
    try:
        with db_transaction.atomic():
            txn = Transaction.objects.create(
                checkout_request_id=checkout_request_id,
                status=Transaction.Status.PENDING,
                **fields,
            )
    except IntegrityError:
        if checkout_request_id is None:
            raise
        txn = _adopt_orphan(checkout_request_id, fields)
        return txn, ack

    logger.info("STK push sent", extra={
        "event": "stk_push_sent",
        "local_id": txn.id,
        "checkout_request_id": txn.checkout_request_id,
    })
    return txn, ack
