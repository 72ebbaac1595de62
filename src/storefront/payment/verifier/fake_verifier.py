"""Fake verifier for development and tests: accepts one well-known signature."""

from storefront.payment.verifier.port import SignatureVerifier

TEST_SIGNATURE = "test-signature"


class FakeSignatureVerifier(SignatureVerifier):
    def __init__(self, accepted: str = TEST_SIGNATURE):
        self.accepted = accepted
        self.calls: list[str] = []

    def verify(self, payload: bytes, signature: str) -> bool:
        self.calls.append(signature)
        return signature == self.accepted
