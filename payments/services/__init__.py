from functools import lru_cache

from django.conf import settings

from .mpesa import MpesaDarajaClient


@lru_cache(maxsize=None)
def get_mpesa_client():
    """Build the Daraja client from settings; one instance per process owns the token cache."""
    return MpesaDarajaClient(
        env=getattr(settings, 'MPESA_ENV', 'sandbox'),
        consumer_key=getattr(settings, 'MPESA_CONSUMER_KEY', ''),
        consumer_secret=getattr(settings, 'MPESA_CONSUMER_SECRET', ''),
        shortcode=getattr(settings, 'MPESA_SHORTCODE', ''),
        passkey=getattr(settings, 'MPESA_PASSKEY', ''),
        callback_url=getattr(settings, 'MPESA_CALLBACK_URL', ''),
        timeout=getattr(settings, 'MPESA_TIMEOUT', 30),
    )
