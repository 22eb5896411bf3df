"""
Ledger Policy - configuration parameters for the token ledger

The policy supplies the token metadata and the defaults written at
initialization. After initialization the withdrawal limits live in the
event log and only change through a timelocked proposal; the policy is
never consulted for them again.
"""

from pydantic import BaseModel, Field

DECIMALS = 18
UNIT = 10**DECIMALS
SECONDS_PER_DAY = 24 * 60 * 60


class LedgerPolicy(BaseModel):
    """
    Token ledger configuration

    Attributes:
        token_name: Human-readable token name reported by `name`
        token_symbol: Ticker reported by `symbol`
        default_daily_withdrawal_limit: Rolling-window cap set at initialization
        default_max_withdrawal_amount: Per-call withdrawal ceiling set at initialization
        withdrawal_window_seconds: Length of the rolling withdrawal window
        timelock_delay_seconds: Mandatory delay between proposing and executing
    """

    policy_version: str = Field(
        default="1.0",
        description="Policy version for tracking changes over time",
    )

    token_name: str = Field(default="Vault Token", min_length=1, max_length=64)

    token_symbol: str = Field(default="VLT", min_length=1, max_length=16)

    default_daily_withdrawal_limit: int = Field(
        default=100_000 * UNIT,
        gt=0,
        description="Cumulative withdrawals allowed per rolling window (base units)",
    )

    default_max_withdrawal_amount: int = Field(
        default=100_000 * UNIT,
        gt=0,
        description="Largest single withdrawal allowed (base units)",
    )

    withdrawal_window_seconds: int = Field(
        default=SECONDS_PER_DAY,
        gt=0,
        description="Rolling withdrawal window length",
    )

    timelock_delay_seconds: int = Field(
        default=SECONDS_PER_DAY,
        ge=0,
        description="Minimum delay before a parameter change proposal can execute",
    )

    model_config = {
        "frozen": True,
        "json_schema_extra": {
            "description": "Token ledger metadata, default limits and timing parameters"
        },
    }

    @property
    def decimals(self) -> int:
        """Decimals are fixed; base units are 10**-18 of a token"""
        return DECIMALS


default_ledger_policy = LedgerPolicy()
