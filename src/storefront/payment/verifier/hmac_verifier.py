"""Timestamped HMAC-SHA256 webhook signatures, checked with the Stripe SDK.

Header format::

    Stripe-Signature: t=1700000000,v1=<hex>[,v1=<hex>...]

Several ``v1`` entries appear while the sender rotates secrets; any match is
accepted. Signatures older than ``tolerance`` seconds are rejected to bound
replay.
"""

import stripe
import structlog

from storefront.payment.verifier.port import SignatureVerifier

logger = structlog.get_logger(__name__)


class HmacSignatureVerifier(SignatureVerifier):
    def __init__(self, secret: str, tolerance: int = 300):
        if not secret:
            raise ValueError("A webhook secret is required for HMAC verification")
        self.secret = secret
        self.tolerance = tolerance

    def verify(self, payload: bytes, signature: str) -> bool:
        try:
            stripe.WebhookSignature.verify_header(
                payload.decode("utf-8"), signature, self.secret, tolerance=self.tolerance
            )
        except UnicodeDecodeError:
            logger.warning("webhook_payload_not_utf8")
            return False
        except stripe.SignatureVerificationError as exc:
            logger.warning("webhook_signature_invalid", error=str(exc))
            return False
        return True
