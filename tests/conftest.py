import pytest
from unittest.mock import Mock

from payments.services import get_mpesa_client
from payments.services.mpesa import MpesaDarajaClient


def pytest_configure(config):
    config.addinivalue_line(
        "markers",
        "payment: mark test as payment-related"
    )


@pytest.fixture(autouse=True)
def mpesa_settings(settings):
    settings.MPESA_ENV = "sandbox"
    settings.MPESA_CONSUMER_KEY = "test-key"
    settings.MPESA_CONSUMER_SECRET = "test-secret"
    settings.MPESA_SHORTCODE = "174379"
    settings.MPESA_PASSKEY = "test-passkey"
    settings.MPESA_CALLBACK_URL = "https://relay.example.com/callback"
    get_mpesa_client.cache_clear()
    yield settings
    get_mpesa_client.cache_clear()


@pytest.fixture
def client_factory():
    def make(**overrides):
        options = dict(
            env="sandbox",
            consumer_key="test-key",
            consumer_secret="test-secret",
            shortcode="174379",
            passkey="test-passkey",
            callback_url="https://relay.example.com/callback",
        )
        options.update(overrides)
        return MpesaDarajaClient(**options)
    return make


@pytest.fixture
def stk_ack():
    return {
        "MerchantRequestID": "29115-34620561-1",
        "CheckoutRequestID": "ws_CO_191220191020363925",
        "ResponseCode": "0",
        "ResponseDescription": "Success. Request accepted for processing",
        "CustomerMessage": "Success. Request accepted for processing",
    }


@pytest.fixture
def provider(stk_ack):
    fake = Mock()
    fake.initiate.return_value = stk_ack
    return fake


@pytest.fixture
def make_callback():
    def make(checkout_request_id="ws_CO_191220191020363925", result_code=0,
             result_desc="The service request is processed successfully.", items=None):
        stk = {
            "MerchantRequestID": "29115-34620561-1",
            "CheckoutRequestID": checkout_request_id,
            "ResultCode": result_code,
            "ResultDesc": result_desc,
        }
        if items is not None:
            stk["CallbackMetadata"] = {"Item": items}
        return {"Body": {"stkCallback": stk}}
    return make
