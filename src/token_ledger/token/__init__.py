"""
Token Module - Balances, allowances and rate-limited withdrawal

- Mint / burn / burn_from / transfer / approve / transfer_from
- Withdraw: an issuance path with its own role, a per-call ceiling and a
  rolling daily limit
"""

from token_ledger.token.models import WithdrawalWindow

__all__ = ["WithdrawalWindow"]
