"""Convert entity and field names between naming conventions.

Used for generated file names and registered as template filters:
  - snake:    "MovieReview"  -> "movie_review"
  - pascal:   "user_id"      -> "UserId"
  - plural:   "movie"        -> "movies"
  - singular: "categories"   -> "category"

Examples:
  entity "movies", field "title"    -> enum member Movies.Title
  entity "movie_review", link table -> file m20240101_120000_movie_reviews.py
"""

from __future__ import annotations

import re

# Irregular plural/singular pairs seen in entity names
_PLURALS: dict[str, str] = {
    "person": "people",
    "child": "children",
    "man": "men",
    "woman": "women",
    "mouse": "mice",
    "datum": "data",
    "index": "indices",
    "status": "statuses",
    # -ie stems; the generic rule would turn "movies" into "movy"
    "movie": "movies",
    "cookie": "cookies",
    "tie": "ties",
    "pie": "pies",
    "zombie": "zombies",
    "rookie": "rookies",
    "selfie": "selfies",
    "calorie": "calories",
}

_SINGULARS: dict[str, str] = {v: k for k, v in _PLURALS.items()}

# Words that are the same in both forms
_UNCOUNTABLE = {"equipment", "information", "series", "species", "news", "metadata"}


def to_snake(name: str) -> str:
    """Convert camelCase, PascalCase or dashed names to snake_case."""
    s1 = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", name)
    s2 = re.sub(r"([a-z\d])([A-Z])", r"\1_\2", s1)
    s3 = re.sub(r"[\s.\-]+", "_", s2)
    return re.sub(r"_+", "_", s3).strip("_").lower()


def to_pascal(name: str) -> str:
    """Convert any supported form to PascalCase."""
    return "".join(part.capitalize() for part in to_snake(name).split("_") if part)


def _split_last(name: str) -> tuple[str, str]:
    """Split a snake_case name into its prefix and last word."""
    head, sep, last = name.rpartition("_")
    return head + sep, last


def pluralize(name: str) -> str:
    """Return the plural form of a snake_case name (only the last word changes)."""
    prefix, word = _split_last(name)
    if word in _UNCOUNTABLE or word in _SINGULARS:
        return name
    if singularize(word) != word:
        # already plural, e.g. "movies"
        return name
    if word in _PLURALS:
        return prefix + _PLURALS[word]
    if re.search(r"[^aeiou]y$", word):
        return prefix + word[:-1] + "ies"
    if re.search(r"(s|x|z|ch|sh)$", word):
        return prefix + word + "es"
    return prefix + word + "s"


def singularize(name: str) -> str:
    """Return the singular form of a snake_case name (only the last word changes)."""
    prefix, word = _split_last(name)
    if word in _UNCOUNTABLE or word in _PLURALS:
        return name
    if word in _SINGULARS:
        return prefix + _SINGULARS[word]
    if word.endswith("ies"):
        return prefix + word[:-3] + "y"
    if re.search(r"(ss|x|z|ch|sh)es$", word):
        return prefix + word[:-2]
    if word.endswith("ses"):
        return prefix + word[:-1]
    if word.endswith("s") and not word.endswith(("ss", "us", "is")):
        return prefix + word[:-1]
    return name
