"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth/User
  2xxx: Wallet
  3xxx: Offer
  4xxx: Order
  5xxx: Dispute
  9xxx: System
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Auth/User ---

class UsernameExistsError(AppError):
    def __init__(self) -> None:
        super().__init__(1001, "Username already exists", 409)


class EmailExistsError(AppError):
    def __init__(self) -> None:
        super().__init__(1002, "Email already exists", 409)


class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Invalid username or password", 401)


class AccountDisabledError(AppError):
    def __init__(self) -> None:
        super().__init__(1004, "Account is disabled", 403)


class InvalidRefreshTokenError(AppError):
    def __init__(self) -> None:
        super().__init__(1005, "Refresh token is invalid or expired", 401)


class NotAuthorizedError(AppError):
    def __init__(self, detail: str = "Not authorized for this action") -> None:
        super().__init__(1006, detail, 403)


class StepUpRequiredError(AppError):
    def __init__(self) -> None:
        super().__init__(1007, "Step-up authentication code required", 401)


class AccountFrozenError(AppError):
    def __init__(self, user_id: str) -> None:
        super().__init__(1008, f"Account {user_id} is frozen", 403)


class KycNotApprovedError(AppError):
    def __init__(self) -> None:
        super().__init__(1009, "KYC approval required", 403)


class UserNotFoundError(AppError):
    def __init__(self, user_id: str) -> None:
        super().__init__(1010, f"User not found: {user_id}", 404)


# --- 2xxx: Wallet ---

class InsufficientFundsError(AppError):
    def __init__(self, required: str, available: str) -> None:
        super().__init__(
            2001,
            f"Insufficient balance: need {required}, have {available}",
            422,
        )


class WalletNotFoundError(AppError):
    def __init__(self, user_id: str, currency: str) -> None:
        super().__init__(2002, f"{currency} wallet not found for user {user_id}", 404)


class InvalidAmountError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(2003, f"Invalid amount: {detail}", 422)


class UnsupportedCurrencyError(AppError):
    def __init__(self, currency: str) -> None:
        super().__init__(2004, f"Unsupported currency: {currency}", 422)


class DuplicateDepositError(AppError):
    def __init__(self, reference: str) -> None:
        super().__init__(2005, f"Deposit already credited: {reference}", 409)


# --- 3xxx: Offer ---

class OfferNotFoundError(AppError):
    def __init__(self, offer_id: str) -> None:
        super().__init__(3001, f"Offer not found: {offer_id}", 404)


class OfferNotActiveError(AppError):
    def __init__(self, offer_id: str) -> None:
        super().__init__(3002, f"Offer is not active: {offer_id}", 422)


class OfferLimitError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(3003, f"Offer limit violated: {detail}", 422)


class InsufficientOfferEscrowError(AppError):
    def __init__(self, required: str, available: str) -> None:
        super().__init__(
            3004,
            f"Insufficient offer escrow: need {required}, have {available}",
            422,
        )


# --- 4xxx: Order ---

class OrderNotFoundError(AppError):
    def __init__(self, order_id: str) -> None:
        super().__init__(4001, f"Order not found: {order_id}", 404)


class InvalidStateError(AppError):
    def __init__(self, entity: str, entity_id: str, status: str, action: str) -> None:
        super().__init__(
            4002, f"{entity} {entity_id} in status {status} cannot {action}", 409
        )


class SelfTradeError(AppError):
    def __init__(self) -> None:
        super().__init__(4003, "Cannot trade against your own offer", 422)


class OrderValidationError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(4004, f"Invalid order: {detail}", 422)


# --- 5xxx: Dispute ---

class DisputeNotFoundError(AppError):
    def __init__(self, dispute_id: str) -> None:
        super().__init__(5001, f"Dispute not found: {dispute_id}", 404)


class AlreadyDisputedError(AppError):
    def __init__(self, order_id: str) -> None:
        super().__init__(5002, f"Order {order_id} already has a dispute", 409)


class AlreadyResolvedError(AppError):
    def __init__(self, dispute_id: str) -> None:
        super().__init__(5003, f"Dispute {dispute_id} is already resolved", 409)


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)


class InvariantViolationError(AppError):
    """Broken internal precondition. Never user-correctable; never retried."""

    def __init__(self, detail: str) -> None:
        super().__init__(9003, f"Invariant violation: {detail}", 500)
