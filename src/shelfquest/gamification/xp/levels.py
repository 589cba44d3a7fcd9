"""Level curve and pure XP arithmetic.

Leveling curve:
- Advancing from level L to L+1 costs 100 + (L-1) * 50 XP
  (100, 150, 200, 250, ...)
- Level 1 starts at 0 XP, level 2 at 100, level 3 at 250, level 4 at 450

An account is always stored as (total_xp, current_level, xp_to_next_level)
with the last two derived from total_xp, so a fresh account is (0, 1, 100).
"""

from dataclasses import dataclass

BASE_LEVEL_COST = 100
LEVEL_COST_STEP = 50


def level_cost(level: int) -> int:
    """XP required to advance from `level` to `level + 1`."""
    if level < 1:
        raise ValueError(f"Level must be at least 1, got {level}")
    return BASE_LEVEL_COST + (level - 1) * LEVEL_COST_STEP


def cumulative_xp(level: int) -> int:
    """Total XP spent on the first `level` level advances.

    cumulative_xp(0) == 0 and cumulative_xp(L) is the total XP at which
    level L + 1 is reached.
    """
    if level < 0:
        raise ValueError(f"Level cannot be negative, got {level}")
    return BASE_LEVEL_COST * level + (LEVEL_COST_STEP * level * (level - 1)) // 2


def level_for_xp(total_xp: int) -> int:
    """Highest level whose starting threshold total_xp has reached."""
    if total_xp < 0:
        raise ValueError(f"Total XP cannot be negative, got {total_xp}")
    level = 1
    while total_xp >= cumulative_xp(level):
        level += 1
    return level


def xp_to_next_level(total_xp: int) -> int:
    """XP still missing before the next level is reached."""
    return cumulative_xp(level_for_xp(total_xp)) - total_xp


@dataclass(frozen=True)
class LevelState:
    """Total XP together with the level fields derived from it."""

    total_xp: int
    current_level: int
    xp_to_next_level: int

    @classmethod
    def from_total(cls, total_xp: int) -> "LevelState":
        """Build a consistent state from a total."""
        return cls(
            total_xp=total_xp,
            current_level=level_for_xp(total_xp),
            xp_to_next_level=xp_to_next_level(total_xp),
        )

    @property
    def xp_into_level(self) -> int:
        """XP earned since the current level was reached."""
        return self.total_xp - cumulative_xp(self.current_level - 1)

    @property
    def level_progress(self) -> float:
        """Fraction of the current level completed (0-1)."""
        return self.xp_into_level / level_cost(self.current_level)


@dataclass(frozen=True)
class XPGrant:
    """Outcome of adding XP to a level state."""

    state: LevelState
    previous_level: int
    leveled_up: bool

    @property
    def new_level(self) -> int:
        return self.state.current_level


def apply_xp(state: LevelState, amount: int) -> XPGrant:
    """Add XP to a state and recompute the level.

    Args:
        state: Current level state
        amount: Non-negative XP to add

    Returns:
        XPGrant with the replacement state and level-up flag

    Raises:
        ValueError: If amount is negative
    """
    if amount < 0:
        raise ValueError(f"XP amount cannot be negative, got {amount}")

    new_state = LevelState.from_total(state.total_xp + amount)
    return XPGrant(
        state=new_state,
        previous_level=state.current_level,
        leveled_up=new_state.current_level > state.current_level,
    )
