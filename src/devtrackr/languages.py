"""Language statistics: byte counts to percentage shares."""

import logging
from collections.abc import Iterable, Mapping
from decimal import ROUND_HALF_UP, Decimal

from devtrackr.errors import ValidationError
from devtrackr.models import LanguageStat, LanguageStats

logger = logging.getLogger(__name__)

HUNDRED = Decimal(100)
CENT = Decimal("0.01")

DEFAULT_LANGUAGE_COLOR = "#858585"

# Colors from GitHub linguist
LANGUAGE_COLORS = {
    "Assembly": "#6E4C13",
    "C": "#555555",
    "C#": "#178600",
    "C++": "#F34B7D",
    "Clojure": "#DB5855",
    "CSS": "#563D7C",
    "Dart": "#00B4AB",
    "Dockerfile": "#384D54",
    "Elixir": "#6E4A7E",
    "Elm": "#60B5CC",
    "Erlang": "#B83998",
    "Go": "#00ADD8",
    "Groovy": "#4298B8",
    "Haskell": "#5E5086",
    "HCL": "#844FBA",
    "HTML": "#E34C26",
    "Java": "#B07219",
    "JavaScript": "#F1E05A",
    "Jupyter Notebook": "#DA5B0B",
    "Kotlin": "#A97BFF",
    "Lua": "#000080",
    "Makefile": "#427819",
    "Nix": "#7E7EFF",
    "Objective-C": "#438EFF",
    "OCaml": "#EF7A08",
    "Perl": "#0298C3",
    "PHP": "#4F5D95",
    "PowerShell": "#012456",
    "Python": "#3572A5",
    "R": "#198CE7",
    "Ruby": "#701516",
    "Rust": "#DEA584",
    "Scala": "#C22D40",
    "SCSS": "#C6538C",
    "Shell": "#89E051",
    "Svelte": "#FF3E00",
    "Swift": "#F05138",
    "TeX": "#3D6117",
    "TypeScript": "#3178C6",
    "Vue": "#41B883",
    "Zig": "#EC915C",
}


def get_language_color(name: str) -> str:
    """Return the ``#RRGGBB`` color GitHub uses for a language."""
    return LANGUAGE_COLORS.get(name, DEFAULT_LANGUAGE_COLOR)


def merge_language_bytes(mappings: Iterable[Mapping[str, int]]) -> dict[str, int]:
    """Sum per-repository byte counts, keeping first-seen language order."""
    merged: dict[str, int] = {}
    for mapping in mappings:
        for language, count in mapping.items():
            merged[language] = merged.get(language, 0) + count
    return merged


def normalize_language_stats(byte_counts: Mapping[str, int]) -> LanguageStats:
    """Convert byte counts per language into percentage shares.

    Shares are rounded to two decimals. Whatever the rounding loses or gains
    is added to the language with the most bytes, so the shares always sum
    to exactly 100.00. Output is sorted by bytes descending; equal counts keep
    their input order.

    Args:
        byte_counts: Language name to byte count

    Returns:
        LanguageStats with an empty language list when there are no bytes

    Raises:
        ValidationError: If any byte count is negative
    """
    for name, count in byte_counts.items():
        if count < 0:
            raise ValidationError(f"Byte count for {name} cannot be negative: {count}")

    total_bytes = sum(byte_counts.values())
    if total_bytes == 0:
        return LanguageStats(total_bytes=0, languages=[])

    # sorted() is stable, so ties stay in insertion order
    ranked = sorted(byte_counts.items(), key=lambda item: item[1], reverse=True)

    shares = [
        (Decimal(count) * HUNDRED / Decimal(total_bytes)).quantize(CENT, ROUND_HALF_UP)
        for _, count in ranked
    ]

    drift = HUNDRED - sum(shares)
    if drift != 0:
        logger.debug(f"Adding rounding drift {drift} to {ranked[0][0]}")
        shares[0] += drift

    return LanguageStats(
        total_bytes=total_bytes,
        languages=[
            LanguageStat(name=name, percentage=share, color=get_language_color(name))
            for (name, _), share in zip(ranked, shares)
        ],
    )
