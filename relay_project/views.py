from django.conf import settings
from django.http import JsonResponse


def index(request):
    return JsonResponse({
        "message": "Daraja STK push relay",
        "env": settings.MPESA_ENV,
        "callback_url": settings.MPESA_CALLBACK_URL,
        "endpoints": {
            "admin": "/admin/",
            "stk_push": "/stkpush",
            "callback": "/callback",
            "transactions": "/transactions",
        }
    })
