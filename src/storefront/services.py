"""Composition root: every storefront component, wired to one domain.

Nothing here is a module-level singleton. The web app builds one ``Services``
at startup and keeps it on ``app.state``; tests build their own with fakes.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from protean.domain import Domain

from storefront.cart.service import CartService
from storefront.locks import RecordLocks
from storefront.notification.email_port import EmailPort
from storefront.notification.fake_email import FakeEmailAdapter
from storefront.notification.notifier import OrderNotifier
from storefront.notification.smtp_email import SmtpEmailAdapter
from storefront.order.creation import OrderCreationService
from storefront.order.lifecycle import OrderLifecycleService
from storefront.order.numbering import OrderNumberAllocator
from storefront.order.store import OrderStore
from storefront.payment.processor import PaymentEventProcessor
from storefront.payment.verifier import build_verifier
from storefront.payment.verifier.port import SignatureVerifier
from storefront.settings import Settings, load_settings


@dataclass
class Services:
    domain: Domain
    settings: Settings
    locks: RecordLocks
    orders: OrderStore
    carts: CartService
    allocator: OrderNumberAllocator
    notifier: OrderNotifier
    creation: OrderCreationService
    lifecycle: OrderLifecycleService
    payments: PaymentEventProcessor
    email: EmailPort
    executor: ThreadPoolExecutor

    def shutdown(self, wait: bool = True) -> None:
        self.executor.shutdown(wait=wait)


def build_email(settings: Settings) -> EmailPort:
    if settings.email_adapter == "smtp":
        return SmtpEmailAdapter(
            host=settings.smtp_host,
            port=settings.smtp_port,
            sender=settings.mail_from,
            username=settings.smtp_username,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
        )
    if settings.email_adapter == "fake":
        return FakeEmailAdapter()
    raise ValueError(f"Unknown email adapter: {settings.email_adapter}")


def build_services(
    domain: Domain,
    settings: Settings | None = None,
    email: EmailPort | None = None,
    verifier: SignatureVerifier | None = None,
    executor: ThreadPoolExecutor | None = None,
    allocator: OrderNumberAllocator | None = None,
) -> Services:
    settings = settings or load_settings(domain)
    email = email or build_email(settings)
    verifier = verifier or build_verifier(settings)
    executor = executor or ThreadPoolExecutor(
        max_workers=settings.notifier_workers, thread_name_prefix="storefront-notify"
    )

    locks = RecordLocks(timeout=settings.lock_timeout_seconds)
    orders = OrderStore(domain, locks)
    carts = CartService(domain, locks)
    allocator = allocator or OrderNumberAllocator(
        orders.number_exists,
        prefix=settings.order_number_prefix,
        max_attempts=settings.order_number_max_attempts,
    )
    notifier = OrderNotifier(email, executor, client_url=settings.client_url)

    return Services(
        domain=domain,
        settings=settings,
        locks=locks,
        orders=orders,
        carts=carts,
        allocator=allocator,
        notifier=notifier,
        creation=OrderCreationService(orders, carts, allocator, notifier),
        lifecycle=OrderLifecycleService(
            orders,
            page_limit=settings.orders_page_limit,
            max_page_limit=settings.orders_max_page_limit,
        ),
        payments=PaymentEventProcessor(domain, orders, verifier),
        email=email,
        executor=executor,
    )
