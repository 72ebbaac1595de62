"""Signature verifier factory.

Selects the verifier named by ``Settings.payment_verifier``:
- ``fake`` accepts the fixed test signature (development and tests)
- ``hmac`` checks timestamped HMAC-SHA256 signatures with the webhook secret
"""

from storefront.payment.verifier.fake_verifier import FakeSignatureVerifier
from storefront.payment.verifier.hmac_verifier import HmacSignatureVerifier
from storefront.payment.verifier.port import SignatureVerifier


def build_verifier(settings) -> SignatureVerifier:
    if settings.payment_verifier == "hmac":
        return HmacSignatureVerifier(settings.webhook_secret, tolerance=settings.webhook_tolerance_seconds)
    if settings.payment_verifier == "fake":
        return FakeSignatureVerifier()
    raise ValueError(f"Unknown payment verifier: {settings.payment_verifier}")
