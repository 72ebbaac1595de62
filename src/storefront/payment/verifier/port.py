"""Webhook signature verifier port.

Adapters decide whether an inbound payment notification really comes from
the payment processor. Verification runs before any parsing or state access.
"""

from abc import ABC, abstractmethod


class SignatureVerifier(ABC):
    @abstractmethod
    def verify(self, payload: bytes, signature: str) -> bool:
        """Return True when ``signature`` authenticates ``payload``."""
        ...
