"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth/User
  2xxx: Ledger (tokens and points)
  3xxx: Event
  4xxx: Prediction / cashout
  5xxx: Reward / redemption
  6xxx: External odds provider
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


class AdminRequiredError(AppError):
    def __init__(self) -> None:
        super().__init__(1006, "Admin privileges required", 403)


# --- 2xxx: Ledger ---

class InsufficientBalanceError(AppError):
    def __init__(self, required: int, available: int) -> None:
        self.required = required
        self.available = available
        super().__init__(
            2001,
            f"Insufficient balance: required {required}, available {available}",
            422,
        )


class UserNotFoundError(AppError):
    def __init__(self, user_id: str) -> None:
        super().__init__(2002, f"User not found: {user_id}", 404)


class InvalidAmountError(AppError):
    def __init__(self, amount: int) -> None:
        super().__init__(2003, f"Amount must be a positive integer, got {amount}", 422)


class ReservedTransactionTypeError(AppError):
    def __init__(self, tx_type: str) -> None:
        super().__init__(2004, f"Transaction type {tx_type} is not permitted", 403)


class InvalidTransactionTypeError(AppError):
    def __init__(self, ledger: str, tx_type: str) -> None:
        super().__init__(2005, f"Unknown {ledger} transaction type: {tx_type}", 422)


# --- 3xxx: Event ---

class EventNotFoundError(AppError):
    def __init__(self, event_id: str) -> None:
        super().__init__(3001, f"Event not found: {event_id}", 404)


class EventNotOpenError(AppError):
    def __init__(self, event_id: str, status: str) -> None:
        super().__init__(3002, f"Event {event_id} is {status}, not OPEN", 409)


class EventAlreadyStartedError(AppError):
    def __init__(self, event_id: str) -> None:
        super().__init__(3003, f"Event has already started: {event_id}", 409)


class EventAlreadySettledError(AppError):
    def __init__(self, event_id: str, status: str) -> None:
        self.event_id = event_id
        self.status = status
        detail = "was cancelled" if status == "CANCELLED" else "has already been settled"
        super().__init__(3004, f"Event {event_id} {detail}", 409)


class InvalidOutcomeError(AppError):
    def __init__(self, outcome: str, valid: list[str]) -> None:
        super().__init__(
            3005,
            f"Invalid outcome '{outcome}'. Valid outcomes: {', '.join(valid)}",
            422,
        )


class InvalidEventError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(3006, f"Invalid event: {detail}", 422)


class SettlementTimeoutError(AppError):
    def __init__(self, event_id: str, seconds: float) -> None:
        super().__init__(
            3007, f"Settlement of event {event_id} timed out after {seconds:g}s", 503
        )


# --- 4xxx: Prediction ---

class PredictionNotFoundError(AppError):
    def __init__(self, prediction_id: str) -> None:
        super().__init__(4001, f"Prediction not found: {prediction_id}", 404)


class AlreadyPredictedError(AppError):
    def __init__(self, event_id: str) -> None:
        super().__init__(4002, f"You have already predicted on event {event_id}", 409)


class InvalidStakeError(AppError):
    def __init__(self, stake: int, minimum: int, maximum: int) -> None:
        super().__init__(
            4003, f"Stake {stake} out of range: must be {minimum}-{maximum} tokens", 422
        )


class PredictionForbiddenError(AppError):
    def __init__(self) -> None:
        super().__init__(4004, "You can only access your own predictions", 403)


class CashoutUnavailableError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(4005, f"Cashout unavailable: {detail}", 409)


# --- 5xxx: Reward ---

class RewardNotFoundError(AppError):
    def __init__(self, reward_id: str) -> None:
        super().__init__(5001, f"Reward not found: {reward_id}", 404)


class RewardUnavailableError(AppError):
    def __init__(self, reward_id: str) -> None:
        super().__init__(5002, f"Reward is not available: {reward_id}", 409)


class RewardOutOfStockError(AppError):
    def __init__(self, reward_id: str) -> None:
        super().__init__(5003, f"Reward is out of stock: {reward_id}", 409)


class RedemptionNotFoundError(AppError):
    def __init__(self, redemption_id: str) -> None:
        super().__init__(5004, f"Redemption not found: {redemption_id}", 404)


class RedemptionNotPendingError(AppError):
    def __init__(self, redemption_id: str, status: str) -> None:
        super().__init__(
            5005, f"Redemption {redemption_id} is {status}, expected PENDING", 409
        )


class InvalidRewardError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(5006, f"Invalid reward: {detail}", 422)


class RedemptionForbiddenError(AppError):
    def __init__(self) -> None:
        super().__init__(5007, "You can only view your own redemptions", 403)


# --- 6xxx: External provider ---

class ExternalUnavailableError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(6001, f"Odds provider unavailable: {detail}", 502)


# --- 9xxx: System ---

class RateLimitError(AppError):
    def __init__(self) -> None:
        super().__init__(9001, "Rate limit exceeded", 429)


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)


class InvalidInputError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(9003, f"Invalid input: {detail}", 422)
