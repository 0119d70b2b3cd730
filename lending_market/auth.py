"""
auth.py - Caller authorization for market entry points

Classes:
- Authorizer: Protocol with require_caller_is(address)
- SessionAuthorizer: Checks against the principal set by invoked_by()
- MockAllAuthorizer: Accepts every principal and records the requests

The market calls require_caller_is() once per mutating entry point with the
principal the operation acts for (lender, borrower, liquidator or admin).
"""

from __future__ import annotations
import hmac
from contextlib import contextmanager
from typing import Iterator, List, Optional, Protocol, runtime_checkable

from .core import Address, Unauthorized


@runtime_checkable
class Authorizer(Protocol):

    def require_caller_is(self, address: Address) -> None:
        """Raise Unauthorized unless the invoking principal is ``address``."""
        ...


class SessionAuthorizer:
    """
    Authorizer bound to an explicitly set invoking principal.

    Example:
        auth = SessionAuthorizer()
        with auth.invoked_by("alice"):
            market.create_offer("alice", ...)
    """

    def __init__(self):
        self._stack: List[Address] = []

    @property
    def caller(self) -> Optional[Address]:
        return self._stack[-1] if self._stack else None

    @contextmanager
    def invoked_by(self, principal: Address) -> Iterator[None]:
        """Run the enclosed calls on behalf of ``principal``. Nests."""
        self._stack.append(principal)
        try:
            yield
        finally:
            self._stack.pop()

    def require_caller_is(self, address: Address) -> None:
        caller = self.caller
        if caller is None:
            raise Unauthorized(f"no invoking principal; {address} required")
        if not hmac.compare_digest(caller.encode(), address.encode()):
            raise Unauthorized(f"{address} required")


class MockAllAuthorizer:
    """Accepts every principal. For tests and demos."""

    def __init__(self):
        self.required: List[Address] = []

    def require_caller_is(self, address: Address) -> None:
        self.required.append(address)
