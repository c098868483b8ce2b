"""
Error taxonomy for the launchpad engine

Every failure surfaced to a caller is a LaunchpadError carrying a category
and the structured amounts needed to decide how to retry. Invariant
violations are not LaunchpadErrors: they signal a logic defect and must
never be handled like user errors.
"""

from enum import Enum
from typing import Any, Dict


class ErrorCategory(Enum):
    """Broad class of a failure"""
    VALIDATION = "validation"
    FEASIBILITY = "feasibility"
    FUNDS = "funds"
    AUTHORIZATION = "authorization"
    TRANSFER = "transfer"


class LaunchpadError(Exception):
    """Base class for every error raised by a launchpad operation"""

    category = ErrorCategory.VALIDATION

    def __init__(self, message: str = "", **details: Any):
        self.details: Dict[str, Any] = details
        if not message:
            message = self.code
        if details:
            rendered = ", ".join(f"{k}={v}" for k, v in details.items())
            message = f"{message} ({rendered})"
        super().__init__(message)

    @property
    def code(self) -> str:
        """Stable error name, used in logs and metrics labels"""
        return type(self).__name__


class InvariantViolation(Exception):
    """Ledger state would break a reserve invariant (engine defect)"""


# =============================================================================
# VALIDATION
# =============================================================================

class ZeroAddress(LaunchpadError):
    pass


class ZeroAmount(LaunchpadError):
    pass


class InvalidConfig(LaunchpadError):
    pass


class NotInitialized(LaunchpadError):
    pass


class InvalidRatio(LaunchpadError):
    pass


class TokenNotFound(LaunchpadError):
    pass


class TokenAlreadyExists(LaunchpadError):
    pass


class CurveCompleted(LaunchpadError):
    pass


class ReentrantCall(LaunchpadError):
    pass


# =============================================================================
# FEASIBILITY
# =============================================================================

class FeasibilityError(LaunchpadError):
    category = ErrorCategory.FEASIBILITY


class InsufficientOutputAmount(FeasibilityError):
    pass


class InvalidTokenDelta(FeasibilityError):
    pass


class IncompatibleGeometry(FeasibilityError):
    pass


class InvalidTR(FeasibilityError):
    pass


class NetRaiseZero(FeasibilityError):
    pass


class BaseRaiseZero(FeasibilityError):
    pass


class InvalidVirtuals(FeasibilityError):
    pass


class InvalidVirtualReservesForMigration(FeasibilityError):
    pass


class CurveNotCompleted(FeasibilityError):
    pass


# =============================================================================
# FUNDS
# =============================================================================

class FundsError(LaunchpadError):
    category = ErrorCategory.FUNDS


class InsufficientFundsInProtocol(FundsError):
    pass


class InsufficientEthForPartialFill(FundsError):
    pass


class NotEnoughFunds(FundsError):
    pass


class InsufficientTokenBalance(FundsError):
    pass


class InsufficientTokenBalanceForLP(FundsError):
    pass


# =============================================================================
# AUTHORIZATION / TRANSFER
# =============================================================================

class Unauthorized(LaunchpadError):
    category = ErrorCategory.AUTHORIZATION


class TransferFailed(LaunchpadError):
    category = ErrorCategory.TRANSFER


class LiquidityDepositFailed(TransferFailed):
    pass
