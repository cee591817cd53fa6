"""
Payment Gateway Integration
============================

Central export point for the payment processor adapters.

Usage::

    from gigbridge.integrations.payments import (
        GatewayResult,
        MockPaymentGateway,
        PaymentGateway,
        PaymentGatewayError,
        build_gateway,
    )
"""

from .gateway import (
    DECLINE_REASON,
    FixedOutcomeGateway,
    GatewayResult,
    MockPaymentGateway,
    PaymentGateway,
    PaymentGatewayError,
    build_gateway,
    generate_transaction_id,
)

__all__ = [
    "DECLINE_REASON",
    "FixedOutcomeGateway",
    "GatewayResult",
    "MockPaymentGateway",
    "PaymentGateway",
    "PaymentGatewayError",
    "build_gateway",
    "generate_transaction_id",
]
