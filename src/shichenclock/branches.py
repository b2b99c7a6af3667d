"""Fixed reference tables for the twelve earthly branches and sovereign hexagrams.

All tables are index-aligned with ``EARTHLY_BRANCHES``: index 0 is Zi, the
double-hour that starts at solar 23:00.
"""

from dataclasses import dataclass
from typing import Literal

from shichenclock.models import EarthlyBranch

EARTHLY_BRANCHES: tuple[EarthlyBranch, ...] = (
    "zi", "chou", "yin", "mao", "chen", "si",
    "wu", "wei", "shen", "you", "xu", "hai",
)

# Twelve sovereign hexagrams (消息卦): waxing yang zi..si, waxing yin wu..hai.
# Hand-curated sequence; not derivable from the branch index.
SOVEREIGN_HEXAGRAMS: tuple[int, ...] = (24, 19, 11, 34, 43, 1, 44, 33, 12, 20, 23, 2)

SHICHEN_MINUTES = 120
MINUTES_PER_DAY = 24 * 60


@dataclass(frozen=True)
class BranchInfo:
    """Static correlations of one earthly branch."""

    branch: EarthlyBranch
    chinese: str  # Branch character ("子")
    animal: str  # Zodiac animal (English)
    element: str  # Wu Xing element (English, lowercase)
    yin_yang: Literal["yin", "yang"]
    solar_start_minute: int  # Minute of the solar day the branch starts at


@dataclass(frozen=True)
class SovereignHexagram:
    """A sovereign hexagram and its place in the yin-yang cycle."""

    number: int  # King Wen number
    name: str  # Pinyin name
    chinese: str
    english: str
    yang_lines: int  # 0..6
    phase: Literal["waxing", "waning"]


BRANCH_INFO: dict[EarthlyBranch, BranchInfo] = {
    "zi": BranchInfo("zi", "子", "Rat", "water", "yang", 23 * 60),
    "chou": BranchInfo("chou", "丑", "Ox", "earth", "yin", 1 * 60),
    "yin": BranchInfo("yin", "寅", "Tiger", "wood", "yang", 3 * 60),
    "mao": BranchInfo("mao", "卯", "Rabbit", "wood", "yin", 5 * 60),
    "chen": BranchInfo("chen", "辰", "Dragon", "earth", "yang", 7 * 60),
    "si": BranchInfo("si", "巳", "Snake", "fire", "yin", 9 * 60),
    "wu": BranchInfo("wu", "午", "Horse", "fire", "yang", 11 * 60),
    "wei": BranchInfo("wei", "未", "Goat", "earth", "yin", 13 * 60),
    "shen": BranchInfo("shen", "申", "Monkey", "metal", "yang", 15 * 60),
    "you": BranchInfo("you", "酉", "Rooster", "metal", "yin", 17 * 60),
    "xu": BranchInfo("xu", "戌", "Dog", "earth", "yang", 19 * 60),
    "hai": BranchInfo("hai", "亥", "Pig", "water", "yin", 21 * 60),
}

SOVEREIGN_BY_BRANCH: dict[EarthlyBranch, SovereignHexagram] = {
    "zi": SovereignHexagram(24, "Fu", "復", "Return", 1, "waxing"),
    "chou": SovereignHexagram(19, "Lin", "臨", "Approach", 2, "waxing"),
    "yin": SovereignHexagram(11, "Tai", "泰", "Peace", 3, "waxing"),
    "mao": SovereignHexagram(34, "Da Zhuang", "大壯", "Great Power", 4, "waxing"),
    "chen": SovereignHexagram(43, "Guai", "夬", "Breakthrough", 5, "waxing"),
    "si": SovereignHexagram(1, "Qian", "乾", "The Creative", 6, "waxing"),
    "wu": SovereignHexagram(44, "Gou", "姤", "Coming to Meet", 5, "waning"),
    "wei": SovereignHexagram(33, "Dun", "遯", "Retreat", 4, "waning"),
    "shen": SovereignHexagram(12, "Pi", "否", "Standstill", 3, "waning"),
    "you": SovereignHexagram(20, "Guan", "觀", "Contemplation", 2, "waning"),
    "xu": SovereignHexagram(23, "Bo", "剝", "Splitting Apart", 1, "waning"),
    "hai": SovereignHexagram(2, "Kun", "坤", "The Receptive", 0, "waning"),
}


def branch_index(branch: str) -> int:
    """Position of ``branch`` in the cyclical order.

    Raises:
        ValueError: If ``branch`` is not one of the twelve branches.
    """
    try:
        return EARTHLY_BRANCHES.index(branch)  # type: ignore[arg-type]
    except ValueError:
        raise ValueError(f"Unknown earthly branch: {branch!r}") from None
