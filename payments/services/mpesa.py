import base64
import datetime as dt
import logging
import threading
import time

import requests
from requests.auth import HTTPBasicAuth

from payments.exceptions import GatewayError
from .base import PaymentProvider

logger = logging.getLogger(__name__)

SANDBOX_BASE_URL = 'https://sandbox.safaricom.co.ke'
PRODUCTION_BASE_URL = 'https://api.safaricom.co.ke'

DEFAULT_TOKEN_TTL = 3600
TOKEN_SAFETY_MARGIN = 10


class AccessTokenCache:
    """Caches one Daraja access token until shortly before it expires.

    ``fetch`` performs the credential exchange and returns ``(token, ttl)``
    with ``ttl`` in seconds. Refresh is single-flight: callers that find the
    token expired at the same time wait on one fetch instead of each
    issuing their own.
    """

    def __init__(self, fetch, clock=time.monotonic, safety_margin=TOKEN_SAFETY_MARGIN):
        self._fetch = fetch
        self._clock = clock
        self._safety_margin = safety_margin
        self._lock = threading.Lock()
        self._token = None
        self._expires_at = 0.0

    def _valid_token(self):
        if self._token and self._clock() < self._expires_at:
            return self._token
        return None

    def get_token(self):
        token = self._valid_token()
        if token:
            return token

        with self._lock:
            # Another caller may have refreshed while we waited
            token = self._valid_token()
            if token:
                return token

            token, ttl = self._fetch()
            self._token = token
            self._expires_at = self._clock() + ttl - self._safety_margin
            logger.debug("Access token refreshed", extra={"event": "token_refreshed", "ttl": ttl})
            return token

    def invalidate(self):
        with self._lock:
            self._token = None
            self._expires_at = 0.0


def _response_payload(response):
    try:
        return response.json()
    except ValueError:
        return response.text


class MpesaDarajaClient(PaymentProvider):
    def __init__(self, env, consumer_key, consumer_secret, shortcode, passkey, callback_url,
                 token_cache=None, timeout=30):
        self.env = env
        self.consumer_key = consumer_key
        self.consumer_secret = consumer_secret
        self.shortcode = shortcode
        self.passkey = passkey
        self.callback_url = callback_url
        self.timeout = timeout

        self.base_url = PRODUCTION_BASE_URL if env in ('production', 'prod') else SANDBOX_BASE_URL
        self.token_cache = token_cache or AccessTokenCache(self._fetch_access_token)

    def _fetch_access_token(self):
        url = f"{self.base_url}/oauth/v1/generate?grant_type=client_credentials"
        try:
            response = requests.get(
                url,
                auth=HTTPBasicAuth(self.consumer_key, self.consumer_secret),
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise GatewayError(f"MPESA OAuth request failed: {e}") from e

        if response.status_code != 200:
            raise GatewayError(
                f"MPESA OAuth error: status={response.status_code}",
                payload=_response_payload(response),
                status_code=response.status_code,
            )
        try:
            data = response.json()
        except ValueError:
            raise GatewayError(
                "MPESA OAuth returned non-JSON body",
                payload=response.text,
                status_code=response.status_code,
            )
        if not isinstance(data, dict) or "access_token" not in data:
            raise GatewayError("MPESA OAuth JSON missing access_token", payload=data,
                               status_code=response.status_code)

        # Daraja sends expires_in as a string, e.g. "3599"
        try:
            ttl = int(data.get("expires_in") or DEFAULT_TOKEN_TTL)
        except (TypeError, ValueError):
            ttl = DEFAULT_TOKEN_TTL
        return data["access_token"], ttl

    def access_token(self):
        return self.token_cache.get_token()

    def timestamp(self):
        return dt.datetime.now().strftime('%Y%m%d%H%M%S')

    def password(self, timestamp):
        raw = f"{self.shortcode}{self.passkey}{timestamp}".encode('utf-8')
        return base64.b64encode(raw).decode('utf-8')

    def initiate(self, phone, amount, account_reference, description):
        token = self.access_token()
        timestamp = self.timestamp()

        url = f"{self.base_url}/mpesa/stkpush/v1/processrequest"
        headers = {"Authorization": f"Bearer {token}", "Content-Type": "application/json"}
        payload = {
            "BusinessShortCode": self.shortcode,
            "Password": self.password(timestamp),
            "Timestamp": timestamp,
            "TransactionType": "CustomerPayBillOnline",
            "Amount": amount,
            "PartyA": phone,
            "PartyB": self.shortcode,
            "PhoneNumber": phone,
            "CallBackURL": self.callback_url,
            "AccountReference": account_reference,
            "TransactionDesc": description,
        }

        try:
            resp = requests.post(url, json=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise GatewayError(f"Failed to reach MPESA STK API: {e}") from e

        data = _response_payload(resp)
        if resp.status_code == 401:
            self.token_cache.invalidate()
        if not resp.ok:
            raise GatewayError(
                f"MPESA STK API error: status={resp.status_code}",
                payload=data,
                status_code=resp.status_code,
            )
        if not isinstance(data, dict):
            raise GatewayError("MPESA STK API returned non-JSON body", payload=data,
                               status_code=resp.status_code)
        # Acceptance code from Daraja is ResponseCode == "0"; error bodies carry errorCode
        if 'errorCode' in data or str(data.get('ResponseCode')) != '0':
            raise GatewayError(
                data.get('errorMessage') or data.get('ResponseDescription') or "STK Push was not accepted",
                payload=data,
                status_code=resp.status_code,
            )
        return data
