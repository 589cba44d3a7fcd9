"""XP and leveling module.

Provides functionality for:
- Converting XP into levels on a fixed, monotonic curve
- Granting XP with optional idempotency keys
- Auditing grants through the XP ledger
"""

from .levels import LevelState, XPGrant, apply_xp, cumulative_xp, level_cost, level_for_xp
from .manager import XPManager
from .models import XPAccount, XPLedgerEntry
from .schemas import LevelUp, XPAccountResponse, XPGrantResult, XPLedgerEntryResponse

__all__ = [
    "XPManager",
    "XPAccount",
    "XPLedgerEntry",
    "XPAccountResponse",
    "XPGrantResult",
    "XPLedgerEntryResponse",
    "LevelUp",
    "LevelState",
    "XPGrant",
    "apply_xp",
    "cumulative_xp",
    "level_cost",
    "level_for_xp",
]
