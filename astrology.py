# astrology.py
# ======================
# Offline rules engine: sun sign, numerology life path, Chinese zodiac,
# lucky values, seeded daily message and rule-based Q&A.
# Not precise astronomy. Every function is pure; tables are read-only.

import re
from typing import Dict, List, NamedTuple, Optional, Sequence, Tuple

# ================================
# Static tables
# ================================

# (name, (start month, day), (end month, day), element, modality)
# Capricorn is the only row that wraps the year end.
SIGN_TABLE = (
    ("Capricorn", (12, 22), (1, 19), "Earth", "Cardinal"),
    ("Aquarius", (1, 20), (2, 18), "Air", "Fixed"),
    ("Pisces", (2, 19), (3, 20), "Water", "Mutable"),
    ("Aries", (3, 21), (4, 19), "Fire", "Cardinal"),
    ("Taurus", (4, 20), (5, 20), "Earth", "Fixed"),
    ("Gemini", (5, 21), (6, 20), "Air", "Mutable"),
    ("Cancer", (6, 21), (7, 22), "Water", "Cardinal"),
    ("Leo", (7, 23), (8, 22), "Fire", "Fixed"),
    ("Virgo", (8, 23), (9, 22), "Earth", "Mutable"),
    ("Libra", (9, 23), (10, 22), "Air", "Cardinal"),
    ("Scorpio", (10, 23), (11, 21), "Water", "Fixed"),
    ("Sagittarius", (11, 22), (12, 21), "Fire", "Mutable"),
)

DEFAULT_SIGN = ("Capricorn", "Earth", "Cardinal")

ELEMENTS = ("Fire", "Earth", "Air", "Water")
MODALITIES = ("Cardinal", "Fixed", "Mutable")

SIGN_TRAITS = {
    "Aries": ("bold", "energetic", "decisive", "pioneering"),
    "Taurus": ("steady", "sensual", "practical", "loyal"),
    "Gemini": ("curious", "adaptable", "witty", "communicative"),
    "Cancer": ("nurturing", "intuitive", "protective", "empathetic"),
    "Leo": ("confident", "creative", "warm", "charismatic"),
    "Virgo": ("analytical", "helpful", "meticulous", "grounded"),
    "Libra": ("harmonious", "diplomatic", "fair", "aesthetic"),
    "Scorpio": ("intense", "transformational", "private", "magnetic"),
    "Sagittarius": ("expansive", "optimistic", "philosophical", "adventurous"),
    "Capricorn": ("ambitious", "disciplined", "resilient", "strategic"),
    "Aquarius": ("visionary", "inventive", "independent", "humanitarian"),
    "Pisces": ("dreamy", "compassionate", "artistic", "mystical"),
}

SIGN_COLORS = {
    "Aries": "#ef4444",
    "Taurus": "#22c55e",
    "Gemini": "#06b6d4",
    "Cancer": "#14b8a6",
    "Leo": "#f59e0b",
    "Virgo": "#84cc16",
    "Libra": "#a78bfa",
    "Scorpio": "#e11d48",
    "Sagittarius": "#f97316",
    "Capricorn": "#64748b",
    "Aquarius": "#38bdf8",
    "Pisces": "#60a5fa",
}
DEFAULT_COLOR = "#38bdf8"

# 2008 was a Rat year, so index 0 of the cycle lines up with it.
CHINESE_EPOCH_YEAR = 2008
CHINESE_ANIMALS = (
    "Rat", "Ox", "Tiger", "Rabbit", "Dragon", "Snake",
    "Horse", "Goat", "Monkey", "Rooster", "Dog", "Pig",
)

LUCKY_NUMBERS = (3, 6, 9, 2, 1, 8, 7, 5, 4)
MASTER_NUMBERS = frozenset((11, 22, 33))

ELEMENT_HINTS = {
    "Fire": "You are passionate, energetic, and courageous.",
    "Earth": "You are grounded, practical, and reliable.",
    "Air": "You are intellectual, communicative, and curious.",
    "Water": "You are intuitive, empathetic, and emotional.",
}

DAILY_AFFIRMATIONS = (
    "Trust the process; your path unfolds as you act.",
    "Small consistent steps beat rare bursts of effort.",
    "Ask for help; collaboration brings faster clarity.",
    "Rest fuels insight\u2014balance doing with being.",
    "Lead with kindness; it compounds quietly.",
    "Be curious; questions unlock opportunities.",
    "Declutter one thing; make room for growth.",
)

FNV_OFFSET_BASIS = 2166136261
FNV_PRIME = 16777619
UINT32_MASK = 0xFFFFFFFF


# ================================
# Records
# ================================

class BirthInput(NamedTuple):
    """Birth fields as submitted by the form (already validated)."""
    name: str
    date: str         # YYYY-MM-DD
    time: str         # HH:MM, 24h
    place: str
    tz_offset: str    # e.g. +05:30


class AstroProfile(NamedTuple):
    name: str
    sun_sign: str
    element: str
    modality: str
    life_path: int
    chinese_animal: str
    lucky_color: str
    lucky_number: int
    summary: str

    def to_dict(self) -> Dict[str, object]:
        return dict(self._asdict())

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "AstroProfile":
        """Rebuild a profile from `to_dict()` output (e.g. a session copy)."""
        return cls(**{field: data[field] for field in cls._fields})


class MalformedDateError(ValueError):
    """Date text could not be split into integer year, month and day."""


def _date_parts(iso_date: str) -> Tuple[int, int, int]:
    try:
        year, month, day = (int(p) for p in iso_date.split("-"))
    except (AttributeError, ValueError) as e:
        raise MalformedDateError(f"expected YYYY-MM-DD, got {iso_date!r}") from e
    return year, month, day


# ================================
# Sun sign
# ================================

def sign_for_month_day(month: int, day: int) -> Tuple[str, str, str]:
    """First SIGN_TABLE row whose interval (inclusive both ends) holds month/day."""
    for name, (sm, sd), (em, ed), element, modality in SIGN_TABLE:
        after_start = month > sm or (month == sm and day >= sd)
        before_end = month < em or (month == em and day <= ed)
        if sm <= em:
            if after_start and before_end:
                return name, element, modality
        elif after_start or before_end:
            return name, element, modality
    return DEFAULT_SIGN


def get_sun_sign(iso_date: str) -> Tuple[str, str, str]:
    """Returns (sign, element, modality) for a YYYY-MM-DD string. Year is ignored."""
    _, month, day = _date_parts(iso_date)
    return sign_for_month_day(month, day)


def element_hint(element: str) -> str:
    return ELEMENT_HINTS.get(element, "Your star sign is undefined. Unique paths await you.")


# ================================
# Numerology
# ================================

def digit_sum(n: int) -> int:
    return sum(int(c) for c in str(n))


def reduce_digits(n: int) -> int:
    """Re-sum digits until single-digit, stopping early on 11, 22 or 33."""
    while n > 9 and n not in MASTER_NUMBERS:
        n = digit_sum(n)
    return n


def life_path_from_date(iso_date: str) -> int:
    digits = re.sub(r"[^0-9]", "", iso_date)
    return reduce_digits(sum(int(c) for c in digits))


# ================================
# Chinese zodiac
# ================================

def animal_for_year(year: int) -> str:
    index = ((year - CHINESE_EPOCH_YEAR) % 12 + 12) % 12
    return CHINESE_ANIMALS[index]


def chinese_zodiac_from_year(iso_date: str) -> str:
    """Animal for the four-digit year that starts `iso_date`."""
    try:
        year = int(iso_date[:4])
    except (TypeError, ValueError) as e:
        raise MalformedDateError(f"expected a 4-digit year, got {iso_date!r}") from e
    return animal_for_year(year)


# ================================
# Lucky values
# ================================

def lucky_color(sign: str) -> str:
    return SIGN_COLORS.get(sign, DEFAULT_COLOR)


def lucky_number(life_path: int) -> int:
    # master numbers wrap through the same formula
    return LUCKY_NUMBERS[(life_path - 1) % len(LUCKY_NUMBERS)]


# ================================
# Seeded selector
# ================================

def _utf16_units(text: str) -> List[int]:
    raw = text.encode("utf-16-le")
    return [int.from_bytes(raw[i:i + 2], "little") for i in range(0, len(raw), 2)]


def seed_from(text: str) -> float:
    """
    Hash `text` to a float in [0, 1).

    32-bit FNV-1a over UTF-16 code units with unsigned wraparound, so the
    same text always lands on the same value.
    """
    h = FNV_OFFSET_BASIS
    for unit in _utf16_units(text):
        h ^= unit
        h = (h * FNV_PRIME) & UINT32_MASK
    return h / 2 ** 32


def seeded_index(text: str, length: int) -> int:
    return int(seed_from(text) * length)


def pick_seeded(text: str, items: Sequence[str]) -> str:
    return items[seeded_index(text, len(items))]


def daily_message(name: str, iso_date: str) -> str:
    """Affirmation that stays the same for a given (name, date) pair."""
    return pick_seeded(name + iso_date, DAILY_AFFIRMATIONS)


# ================================
# Profile composer
# ================================

def compose_summary(name: str, sign: str, element: str, modality: str,
                    traits: Sequence[str], life_path: int, animal: str) -> str:
    return (
        f"{name}, you're a {sign} ({element}, {modality}). "
        f"Traits: {', '.join(traits[:3])}. "
        f"Life Path {life_path}. Chinese Zodiac: {animal}."
    )


def profile_from_birth(birth: BirthInput) -> AstroProfile:
    """Derive the full profile. Raises MalformedDateError on unparsable dates."""
    sign, element, modality = get_sun_sign(birth.date)
    life_path = life_path_from_date(birth.date)
    animal = chinese_zodiac_from_year(birth.date)
    traits = SIGN_TRAITS.get(sign, ())
    return AstroProfile(
        name=birth.name,
        sun_sign=sign,
        element=element,
        modality=modality,
        life_path=life_path,
        chinese_animal=animal,
        lucky_color=lucky_color(sign),
        lucky_number=lucky_number(life_path),
        summary=compose_summary(birth.name, sign, element, modality, traits, life_path, animal),
    )


# ================================
# Rule-based Q&A
# ================================

# Checked in this order; the first keyword found anywhere in the question wins.
TOPIC_KEYWORDS = (
    ("career", "career"),
    ("job", "career"),
    ("work", "career"),
    ("internship", "career"),
    ("study", "study"),
    ("exam", "study"),
    ("love", "love"),
    ("relationship", "love"),
    ("marriage", "love"),
    ("health", "health"),
    ("money", "money"),
    ("finance", "money"),
    ("wealth", "money"),
)

CAREER_BY_ELEMENT = {
    "Fire": "act boldly the next 7\u201310 days; pitch ideas and network. "
            "Document wins daily; momentum is your ally.",
    "Earth": "focus on process\u2014refactor routines, learn one automation, "
             "and ship one small improvement this week.",
    "Air": "ideate and communicate\u2014write a one\u2011page plan, seek feedback, and iterate fast.",
    "Water": "trust intuition\u2014choose fewer, deeper tasks; avoid overcommitting; flow > force.",
}

STUDY_BY_MODALITY = {
    "Mutable": "use spaced repetition + quick quizzes; rotate subjects to stay engaged.",
    "Fixed": "create a strict block schedule; deep work in 50\u2011min chunks, "
             "minimal context switching.",
    "Cardinal": "start with an outline and teach-back method; "
                "you'll learn fastest by explaining.",
}

TOPIC_TEMPLATES = {
    "love": "name your needs directly this week; schedule one shared ritual. "
            "Tiny, reliable gestures beat grand promises.",
    "health": "prioritize sleep consistency and light morning movement; "
              "pick one nourishing meal you can repeat.",
    "money": "do a 30\u2011minute review: subscriptions, 1% saving bump, "
             "and one low\u2011risk upskill investment.",
}

CLARIFY_TEMPLATE = ("clarify intention in one sentence, take the smallest next step today, "
                    "and review results in 48 hours.")


def match_topic(question: str) -> Optional[str]:
    """Topic bucket for the question, or None when no keyword is present."""
    q = (question or "").lower()
    for keyword, topic in TOPIC_KEYWORDS:
        if keyword in q:
            return topic
    return None


def qa_fallback(question: str, profile: AstroProfile) -> str:
    """Offline answer: keyword bucket, then element/modality table. Never empty."""
    base = f"As a {profile.sun_sign} ({profile.element}), Life Path {profile.life_path}: "
    topic = match_topic(question)
    if topic == "career":
        advice = CAREER_BY_ELEMENT.get(profile.element, CAREER_BY_ELEMENT["Water"])
    elif topic == "study":
        advice = STUDY_BY_MODALITY.get(profile.modality, STUDY_BY_MODALITY["Cardinal"])
    elif topic in TOPIC_TEMPLATES:
        advice = TOPIC_TEMPLATES[topic]
    else:
        advice = CLARIFY_TEMPLATE
    return base + advice
