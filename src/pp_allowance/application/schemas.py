from pydantic import BaseModel

from src.pp_allowance.domain.models import TokenAllowance


class AllowanceStatus(BaseModel):
    tokens_remaining: int
    last_reset_date: str  # YYYY-MM-DD (UTC)

    @classmethod
    def from_domain(cls, record: TokenAllowance) -> "AllowanceStatus":
        return cls(
            tokens_remaining=record.tokens_remaining,
            last_reset_date=record.last_reset_date.isoformat(),
        )


class AllowanceResponse(BaseModel):
    allowance: AllowanceStatus
    balance: int
    verified: bool
