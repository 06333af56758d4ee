# payments/services/exceptions.py

"""
PAYMENT DOMAIN ERRORS

Hierarchy:
- PaymentError
  - PaymentValidationError   (client-fixable; 400)
    - DuplicateTenderError   (card intent / gift card code reused on an order; 409)
  - GatewayError             (card gateway unreachable / rejected; 502)
    - GatewayNotConfiguredError
  - SplitPaymentError        (one or more split entries failed; carries results)
- RefundError
  - RefundValidationError    (precondition failed; nothing written)
  - RefundAllocationError    (a reversal line failed; carries results so far)
"""

from __future__ import annotations


class PaymentError(Exception):
    pass


class PaymentValidationError(PaymentError):
    pass


class DuplicateTenderError(PaymentValidationError):
    pass


class GatewayError(PaymentError):
    pass


class GatewayNotConfiguredError(GatewayError):
    pass


class SplitPaymentError(PaymentError):
    """
    Raised after every split entry was attempted and at least one failed.

    `results` holds one SplitEntryResult per entry, in request order; the
    successful ones stay committed.
    """

    def __init__(self, message: str, *, split_group=None, results=None):
        super().__init__(message)
        self.split_group = split_group
        self.results = list(results or [])

    @property
    def failures(self):
        return [r for r in self.results if not r.ok]


class RefundError(Exception):
    pass


class RefundValidationError(RefundError):
    pass


class RefundAllocationError(RefundError):
    """
    A reversal line failed; the remaining allocations were not attempted.

    `lines` holds every RefundLine recorded so far, the failing one last.
    """

    def __init__(self, message: str, *, refund_group=None, lines=None):
        super().__init__(message)
        self.refund_group = refund_group
        self.lines = list(lines or [])
