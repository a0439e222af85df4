import json
import logging

from django.conf import settings
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from .exceptions import BadRequest, GatewayError
from .services import get_mpesa_client
from .services.initiation import initiate_payment
from .services.listing import recent_transactions
from .services.reconciliation import reconcile_callback

logger = logging.getLogger(__name__)


@csrf_exempt
@require_POST
def stk_push(request):
    try:
        data = json.loads(request.body.decode('utf-8') or '{}')
    except (UnicodeDecodeError, ValueError):
        return JsonResponse({"error": "Invalid JSON"}, status=400)
    if not isinstance(data, dict):
        return JsonResponse({"error": "Invalid JSON"}, status=400)

    try:
        txn, ack = initiate_payment(
            get_mpesa_client(),
            phone=data.get('phone'),
            amount=data.get('amount'),
            account_reference=data.get('accountRef') or settings.MPESA_DEFAULT_ACCOUNT_REFERENCE,
            description=data.get('desc') or settings.MPESA_DEFAULT_TRANSACTION_DESC,
        )
    except BadRequest as e:
        return JsonResponse({"error": str(e)}, status=400)
    except GatewayError as e:
        return JsonResponse({"error": e.to_response()}, status=500)

    return JsonResponse({"success": True, "data": ack, "localId": txn.id})


@csrf_exempt
@require_POST
def stk_callback(request):
    # Daraja redelivers callbacks that are not acknowledged, so always answer 0
    try:
        raw_body = request.body.decode('utf-8', errors='replace')
        try:
            payload = json.loads(raw_body)
        except ValueError:
            payload = {"raw": raw_body}

        txn = reconcile_callback(payload)
        if txn.status is None:
            return JsonResponse({"ResultCode": 0, "ResultDesc": "Received"})
    except Exception:
        logger.exception("Callback handler error", extra={"event": "callback_failed"})
        return JsonResponse({"ResultCode": 0, "ResultDesc": "Accepted with handler error"})

    return JsonResponse({"ResultCode": 0, "ResultDesc": "Accepted"})


@require_GET
def transactions_list(request):
    return JsonResponse([txn.to_dict() for txn in recent_transactions()], safe=False)
