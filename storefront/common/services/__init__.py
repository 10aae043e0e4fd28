from .activity_monitor import UserActivityMonitor
from .auth_service import AuthService, TokenIssuer, hash_password, verify_password
from .cart_service import CartService
from .catalog_service import CatalogService
from .logging import log_event
from .mailer import OrderMailer
from .order_service import OrderService
from .payment_gateway import PayKeeperClient
from .payment_status import apply_invoice_status, map_provider_status
from .reconciler import PaymentStatusReconciler
from .scheduler import PeriodicWorker

__all__ = [
    "AuthService",
    "CartService",
    "CatalogService",
    "OrderMailer",
    "OrderService",
    "PayKeeperClient",
    "PaymentStatusReconciler",
    "PeriodicWorker",
    "TokenIssuer",
    "UserActivityMonitor",
    "apply_invoice_status",
    "hash_password",
    "log_event",
    "map_provider_status",
    "verify_password",
]
