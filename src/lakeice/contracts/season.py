from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Tuple

_MONTH_DAY_RE = re.compile(r"^(?P<m>0[1-9]|1[0-2])-(?P<d>0[1-9]|[12][0-9]|3[01])$")


class IceMode(str, Enum):
    ICE_ON = "ice-on"
    ICE_OFF = "ice-off"


def parse_month_day(v: str) -> Tuple[int, int]:
    m = _MONTH_DAY_RE.match(v.strip())
    if not m:
        raise ValueError(f"fecha MM-DD inválida: {v}")
    return int(m.group("m")), int(m.group("d"))


@dataclass(frozen=True)
class SeasonWindows:
    """
    Ventanas de la temporada de hielo del año Y:
      temporada = [season_start de Y-1, season_end de Y)
      ice-on    = [season_start de Y-1, ice_split de Y)
      ice-off   = [ice_split de Y, season_end de Y)
    """
    season_start: str = "11-01"
    ice_split: str = "02-15"
    season_end: str = "04-15"

    @staticmethod
    def _at(year: int, md: str) -> datetime:
        m, d = parse_month_day(md)
        return datetime(year, m, d, tzinfo=timezone.utc)

    def season(self, year: int) -> Tuple[datetime, datetime]:
        return self._at(year - 1, self.season_start), self._at(year, self.season_end)

    def window(self, year: int, mode: IceMode | str) -> Tuple[datetime, datetime]:
        mode = IceMode(mode)
        if mode is IceMode.ICE_ON:
            return self._at(year - 1, self.season_start), self._at(year, self.ice_split)
        return self._at(year, self.ice_split), self._at(year, self.season_end)


__all__ = ["IceMode", "SeasonWindows", "parse_month_day"]
