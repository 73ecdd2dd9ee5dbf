"""Naming conventions that connect class names, tables and keys."""

from __future__ import annotations

import re

_PLURAL_RULES: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"(quiz)$", re.I), r"\1zes"),
    (re.compile(r"(matr|vert|ind)(?:ix|ex)$", re.I), r"\1ices"),
    (re.compile(r"(x|ch|ss|sh)$", re.I), r"\1es"),
    (re.compile(r"([^aeiouy]|qu)y$", re.I), r"\1ies"),
    (re.compile(r"(?:([^f])fe|([lr])f)$", re.I), r"\1\2ves"),
    (re.compile(r"sis$", re.I), "ses"),
    (re.compile(r"([ti])um$", re.I), r"\1a"),
    (re.compile(r"(bu)s$", re.I), r"\1ses"),
    (re.compile(r"(alias|status)$", re.I), r"\1es"),
    (re.compile(r"(octop|vir)us$", re.I), r"\1i"),
    (re.compile(r"s$", re.I), "s"),
    (re.compile(r"$"), "s"),
]

_SINGULAR_RULES: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"(m)ovies$", re.I), r"\1ovie"),
    (re.compile(r"(quiz)zes$", re.I), r"\1"),
    (re.compile(r"(matr)ices$", re.I), r"\1ix"),
    (re.compile(r"(vert|ind)ices$", re.I), r"\1ex"),
    (re.compile(r"(alias|status)es$", re.I), r"\1"),
    (re.compile(r"(octop|vir)i$", re.I), r"\1us"),
    (re.compile(r"(bus)es$", re.I), r"\1"),
    (re.compile(r"(x|ch|ss|sh)es$", re.I), r"\1"),
    (re.compile(r"([^aeiouy]|qu)ies$", re.I), r"\1y"),
    (re.compile(r"([lr])ves$", re.I), r"\1f"),
    (re.compile(r"([^f])ves$", re.I), r"\1fe"),
    (re.compile(r"([ti])a$", re.I), r"\1um"),
    (re.compile(r"(analy|ba|diagno|parenthe|progno|synop|the)ses$", re.I), r"\1sis"),
    (re.compile(r"ss$", re.I), "ss"),
    (re.compile(r"s$", re.I), ""),
]

_IRREGULAR = {"person": "people", "man": "men", "child": "children", "mouse": "mice"}
_UNCOUNTABLE = {"equipment", "information", "rice", "money", "species", "series", "fish", "sheep"}


def _ends_with_word(word: str, suffix: str) -> bool:
    return word == suffix or word.endswith("_" + suffix)


def pluralize(word: str) -> str:
    lowered = word.lower()
    if lowered in _UNCOUNTABLE:
        return word
    for singular, plural in _IRREGULAR.items():
        if _ends_with_word(lowered, singular):
            return word[: len(word) - len(singular)] + plural
    for pattern, replacement in _PLURAL_RULES:
        if pattern.search(word):
            return pattern.sub(replacement, word, count=1)
    return word


def singularize(word: str) -> str:
    lowered = word.lower()
    if lowered in _UNCOUNTABLE:
        return word
    for singular, plural in _IRREGULAR.items():
        if _ends_with_word(lowered, plural):
            return word[: len(word) - len(plural)] + singular
    for pattern, replacement in _SINGULAR_RULES:
        if pattern.search(word):
            return pattern.sub(replacement, word, count=1)
    return word


def camelize(word: str) -> str:
    """``credit_card`` -> ``CreditCard``."""
    return "".join(part[:1].upper() + part[1:] for part in word.split("_") if part)


def underscore(word: str) -> str:
    """``CreditCard`` -> ``credit_card``."""
    word = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", word)
    word = re.sub(r"([a-z\d])([A-Z])", r"\1_\2", word)
    return word.replace("-", "_").lower()


def tableize(class_name: str) -> str:
    return pluralize(underscore(class_name))


def classify(name: str) -> str:
    """Class name for an association or table name: ``clients`` -> ``Client``."""
    return camelize(singularize(name))


def foreign_key(class_name: str) -> str:
    return f"{underscore(class_name)}_id"


def humanize(attribute: str) -> str:
    return attribute.removesuffix("_id").replace("_", " ").capitalize()
