"""Rule-based English pluralization for PascalCase identifiers.

Only the last PascalCase word is inflected: ``OrderLine`` -> ``OrderLines``.
Rules are tried most-recently-added first; irregular forms and uncountable
words override the generic rules.
"""

from __future__ import annotations

import re

# Generic plural endings used by the name resolver's fallback scan
SUFFIXES: tuple[str, ...] = (
    "i", "es", "oes", "a", "ses", "ves", "ies", "ices", "ice", "en", "zes", "ae", "um",
)  # fmt: skip

_Rule = tuple[re.Pattern[str], str]

_PLURALS: list[_Rule] = []
_SINGULARS: list[_Rule] = []

_UNCOUNTABLE = frozenset(
    """
    accommodation advertising air aid advice anger art assistance bread business butter
    calm cash chaos cheese childhood clothing coffee content corruption courage currency
    damage danger darkness data determination economics education electricity employment
    energy entertainment enthusiasm equipment evidence failure fame fire flour food freedom
    friendship fuel furniture fun genetics gold grammar guilt hair happiness harm health heat
    help homework honesty hospitality housework humour imagination importance information
    innocence intelligence jealousy juice justice kindness knowledge labour lack laughter
    leisure literature litter logic love luck magic management metal milk money motherhood
    motivation music nature news nutrition obesity oil oxygen paper patience permission
    pollution poverty power pride production progress pronunciation publicity punctuation
    quality quantity racism rain relaxation research respect rice room rubbish safety salt
    sand seafood shopping silence smoke snow software soup speed spelling stress sugar
    sunshine staff training corn metadata mail means scissors corps tuna trout swine someone
    shrimp salmon offspring moose luggage elk mud grass bison sperm semen waters water
    aircraft oz tsp tbsp sheep fish series species christmas aggression attention bacon
    baggage ballet beauty beef beer biology blood botany carbon cardboard chalk chess coal
    commerce compassion comprehension cotton dancing delight dessert dignity dirt
    distribution dust engineering enjoyment envy ethics evolution faith fiction flu fruit
    garbage garlic gas glass golf gossip gratitude grief ground gymnastics hardware hate
    hatred height honey hunger hydrogen ice inflation injustice iron irony jam jelly joy judo
    karate land lava leather lightning linguistics livestock loneliness machinery mankind
    marble mathematics mayonnaise measles meat methane nitrogen nonsense nurture obedience
    passion pasta physics poetry psychology quartz recreation reliability revenge rum salad
    satire scenery seaside shame sleep smoking soap soil sorrow sport steam strength stuff
    stupidity success symmetry tea tennis thirst thunder timber time toast tolerance trade
    traffic transportation travel trust understanding underwear unemployment unity usage
    validity veal vegetation vegetarianism vengeance violence vision vitality warmth wealth
    weather weight welfare wheat whiskey width wildlife wine wisdom wood wool work yeast
    yoga youth zinc zoology
    """.split()
) | {"old age", "ice cream"}


def _plural(pattern: str, replacement: str) -> None:
    _PLURALS.append((re.compile(pattern, re.IGNORECASE), replacement))


def _singular(pattern: str, replacement: str) -> None:
    _SINGULARS.append((re.compile(pattern, re.IGNORECASE), replacement))


def _irregular(singular: str, plural: str, match_ending: bool = True) -> None:
    if match_ending:
        _plural(f"({singular[0]}){singular[1:]}$", rf"\g<1>{plural[1:]}")
        _singular(f"({plural[0]}){plural[1:]}$", rf"\g<1>{singular[1:]}")
    else:
        _plural(f"^{singular}$", plural)
        _singular(f"^{plural}$", singular)


_plural(r"$", "s")
_plural(r"s$", "s")
_plural(r"(ax|test)is$", r"\1es")
_plural(r"(octop|vir|alumn|fung|cact|foc|hippopotam|radi|stimul|syllab|nucle)us$", r"\1i")
_plural(r"(alias|bias|iris|status|campus|apparatus|virus|walrus|trellis)$", r"\1es")
_plural(r"(bu)s$", r"\1ses")
_plural(r"(buffal|tomat|volcan|ech|embarg|her|mosquit|potat|torped|vet)o$", r"\1oes")
_plural(r"([dti])um$", r"\1a")
_plural(r"sis$", "ses")
_plural(r"(?:([^f])fe|([lr])f)$", r"\1\2ves")
_plural(r"(hive)$", r"\1s")
_plural(r"([^aeiouy]|qu)y$", r"\1ies")
_plural(r"(x|ch|ss|sh)$", r"\1es")
_plural(r"(matr|vert|ind)(ix|ex)$", r"\1ices")
_plural(r"([m|l])ouse$", r"\1ice")
_plural(r"^(ox)$", r"\1en")
_plural(r"(quiz)$", r"\1zes")
_plural(r"(buz|blit|walt)z$", r"\1zes")
_plural(r"(hoo|lea|loa|thie)f$", r"\1ves")
_plural(r"(alumn|alg|larv|vertebr)a$", r"\1ae")
_plural(r"(criteri|phenomen)on$", r"\1a")

_singular(r"s$", "")
_singular(r"(n)ews$", r"\1ews")
_singular(r"([dti])a$", r"\1um")
_singular(
    r"(analy|ba|diagno|parenthe|progno|synop|the|ellip|empha|neuro|oa|paraly)ses", r"\1sis"
)
_singular(r"([^f])ves$", r"\1fe")
_singular(r"(hive)s$", r"\1")
_singular(r"(tive)s$", r"\1")
_singular(r"([lr]|hoo|lea|loa|thie)ves$", r"\1f")
_singular(r"(^zomb)?([^aeiouy]|qu)ies$", r"\2y")
_singular(r"(s)eries$", r"\1eries")
_singular(r"(m)ovies$", r"\1ovie")
_singular(r"(x|ch|ss|sh)es$", r"\1")
_singular(r"([m|l])ice$", r"\1ouse")
_singular(r"(?<!^[a-z])(o)es$", r"\1")
_singular(r"(shoe)s$", r"\1")
_singular(r"(cris|ax|test)es$", r"\1is")
_singular(r"(octop|vir|alumn|fung|cact|foc|hippopotam|radi|stimul|syllab|nucle)i$", r"\1us")
_singular(r"(alias|bias|iris|status|campus|apparatus|virus|walrus|trellis)es$", r"\1")
_singular(r"^(ox)en", r"\1")
_singular(r"(matr|d)ices$", r"\1ix")
_singular(r"(vert|ind)ices$", r"\1ex")
_singular(r"(quiz)zes$", r"\1")
_singular(r"(buz|blit|walt)zes$", r"\1z")
_singular(r"(alumn|alg|larv|vertebr)ae$", r"\1a")
_singular(r"(criteri|phenomen)a$", r"\1on")
_singular(r"([b|r|c]ook|room|smooth)ies$", r"\1ie")

_irregular("person", "people")
_irregular("man", "men")
_irregular("human", "humans")
_irregular("child", "children")
_irregular("sex", "sexes")
_irregular("glove", "gloves")
_irregular("move", "moves")
_irregular("goose", "geese")
_irregular("wave", "waves")
_irregular("foot", "feet")
_irregular("tooth", "teeth")
_irregular("curriculum", "curricula")
_irregular("database", "databases")
_irregular("zombie", "zombies")
_irregular("personnel", "personnel")
_irregular("cache", "caches")
_irregular("ex", "exes", match_ending=False)
_irregular("is", "are", match_ending=False)
_irregular("that", "those", match_ending=False)
_irregular("this", "these", match_ending=False)
_irregular("bus", "buses", match_ending=False)
_irregular("die", "dice", match_ending=False)
_irregular("tie", "ties", match_ending=False)

_LAST_WORD = re.compile(r"[A-Z]*[^A-Z]*$")


def split_pascal(word: str) -> tuple[str, str]:
    """Split ``OrderLine`` into ``("Order", "Line")``."""
    match = _LAST_WORD.search(word)
    start = match.start() if match else 0
    return word[:start], word[start:]


def _apply(rules: list[_Rule], word: str) -> str | None:
    if word.lower() in _UNCOUNTABLE:
        return word
    for pattern, replacement in reversed(rules):
        if pattern.search(word):
            return pattern.sub(replacement, word)
    return None


def pluralize(word: str) -> str | None:
    prefix, last = split_pascal(word)
    result = _apply(_PLURALS, last)
    return f"{prefix}{result}" if result is not None else None


def singularize(word: str) -> str | None:
    """Singular form, or None when no rule recognizes the word as plural."""
    prefix, last = split_pascal(word)
    result = _apply(_SINGULARS, last)
    return f"{prefix}{result}" if result is not None else None
