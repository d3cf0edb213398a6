"""Table name pluralization.

Backup files wrap each table's rows in an element named with the plural
of the table name.  The serializer and deserializer must agree, so both
default to ``pluralize`` from this module.

Usage:
    >>> pluralize("customer")
    'customers'
    >>> pluralize("Category")
    'Categories'
    >>> pluralize("person")
    'people'
"""

_IRREGULAR: dict[str, str] = {
    "child": "children",
    "foot": "feet",
    "goose": "geese",
    "man": "men",
    "mouse": "mice",
    "ox": "oxen",
    "person": "people",
    "tooth": "teeth",
    "woman": "women",
}

_UNCOUNTABLE: frozenset[str] = frozenset({
    "data",
    "deer",
    "equipment",
    "fish",
    "information",
    "news",
    "series",
    "sheep",
    "species",
})

_VOWELS = "aeiou"


def _match_case(word: str, plural: str) -> str:
    if word[:1].isupper():
        return plural[:1].upper() + plural[1:]
    return plural


def pluralize(name: str) -> str:
    """Return the plural form of a singular English-ish identifier.

    Pure and deterministic.  Only the leading letter's case is carried
    over for irregular nouns; regular suffixes are appended lower-case.
    """
    if not name:
        return name

    lowered = name.lower()

    if lowered in _UNCOUNTABLE:
        return name

    if lowered in _IRREGULAR:
        return _match_case(name, _IRREGULAR[lowered])

    if lowered.endswith(("s", "x", "z", "ch", "sh")):
        return name + "es"

    if lowered.endswith("y") and len(lowered) > 1 and lowered[-2] not in _VOWELS:
        return name[:-1] + "ies"

    return name + "s"
