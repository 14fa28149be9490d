from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional, Union


@dataclass
class Streak:
    current: int = 0
    longest: int = 0
    last_active: Optional[date] = None

    def to_dict(self) -> dict:
        return {
            "current": self.current,
            "longest": self.longest,
            "lastActive": self.last_active.isoformat() if self.last_active else None,
        }


def _as_date(day: Union[str, date]) -> date:
    return day if isinstance(day, date) else date.fromisoformat(day)


def compute_streaks(days: Iterable[Union[str, date]]) -> Streak:
    """
    Activity streaks over distinct UTC days ("YYYY-MM-DD" or date objects).

    `current` is the run of consecutive days ending at the most recent active
    day, `longest` the longest run anywhere in the history.
    """
    active = sorted({_as_date(d) for d in days})
    if not active:
        return Streak()

    longest = run = 1
    for prev, curr in zip(active, active[1:]):
        if (curr - prev).days == 1:
            run += 1
        else:
            run = 1
        longest = max(longest, run)

    # the loop leaves `run` at the length of the final run
    return Streak(current=run, longest=longest, last_active=active[-1])
