"""Small three-language (en/zh/es) translation helper."""

from shichenclock.branches import BRANCH_INFO, SOVEREIGN_BY_BRANCH

_STRINGS: dict[str, dict[str, str]] = {
    "label_civil_time": {
        "en": "Clock time",
        "zh": "時鐘時間",
        "es": "Hora civil",
    },
    "label_solar_time": {
        "en": "Solar time",
        "zh": "真太陽時",
        "es": "Hora solar",
    },
    "label_offset": {
        "en": "Solar offset",
        "zh": "時差",
        "es": "Desfase solar",
    },
    "label_precision": {
        "en": "Precision",
        "zh": "精度",
        "es": "Precisión",
    },
    "label_current_hour": {
        "en": "Current Hour",
        "zh": "當前時辰",
        "es": "Hora Actual",
    },
    "label_hexagram": {
        "en": "Sovereign hexagram",
        "zh": "消息卦",
        "es": "Hexagrama soberano",
    },
    "label_next": {
        "en": "Next hour in",
        "zh": "距下一時辰",
        "es": "Siguiente hora en",
    },
    "label_time_range": {
        "en": "Time Range",
        "zh": "時段",
        "es": "Rango Horario",
    },
    "unit_minutes": {
        "en": "min",
        "zh": "分",
        "es": "min",
    },
}

_ANIMALS: dict[str, dict[str, str]] = {
    "zh": {
        "Rat": "鼠", "Ox": "牛", "Tiger": "虎", "Rabbit": "兔", "Dragon": "龍", "Snake": "蛇",
        "Horse": "馬", "Goat": "羊", "Monkey": "猴", "Rooster": "雞", "Dog": "狗", "Pig": "豬",
    },
    "es": {
        "Rat": "Rata", "Ox": "Buey", "Tiger": "Tigre", "Rabbit": "Conejo", "Dragon": "Dragón",
        "Snake": "Serpiente", "Horse": "Caballo", "Goat": "Cabra", "Monkey": "Mono",
        "Rooster": "Gallo", "Dog": "Perro", "Pig": "Cerdo",
    },
}

_ELEMENTS: dict[str, dict[str, str]] = {
    "en": {"water": "Water", "wood": "Wood", "fire": "Fire", "earth": "Earth", "metal": "Metal"},
    "zh": {"water": "水", "wood": "木", "fire": "火", "earth": "土", "metal": "金"},
    "es": {"water": "Agua", "wood": "Madera", "fire": "Fuego", "earth": "Tierra", "metal": "Metal"},
}


def t(key: str, lang: str) -> str:
    """Return the translated string for key in lang.

    Falls back to 'en', then to the key itself if not found.
    """
    entry = _STRINGS.get(key)
    if entry is None:
        return key
    return entry.get(lang) or entry.get("en") or key


def branch_label(branch: str, lang: str) -> str:
    """One-line description of a branch: "午 wu · Horse · Fire"."""
    info = BRANCH_INFO[branch]  # type: ignore[index]
    animal = _ANIMALS.get(lang, {}).get(info.animal, info.animal)
    element = _ELEMENTS.get(lang, _ELEMENTS["en"])[info.element]
    return f"{info.chinese} {branch} · {animal} · {element}"


def hexagram_label(branch: str, lang: str) -> str:
    """Sovereign hexagram of a branch: "#44 姤 Gou (Coming to Meet)"."""
    hexagram = SOVEREIGN_BY_BRANCH[branch]  # type: ignore[index]
    if lang == "zh":
        return f"#{hexagram.number} {hexagram.chinese}"
    return f"#{hexagram.number} {hexagram.chinese} {hexagram.name} ({hexagram.english})"
