"""Random password generation and a coarse strength heuristic.

The default random source is :class:`secrets.SystemRandom`, but nothing here
is meant as a hardened generator: the strength label is a rough hint for the
user, not an entropy estimate.
"""

from __future__ import annotations

import random
import secrets
import string
from typing import Any, Optional

from .models import GeneratorConfig, Strength, validate_model

UPPERCASE = string.ascii_uppercase
LOWERCASE = string.ascii_lowercase
DIGITS = string.digits
SYMBOLS = r"!@#$%^&*()-_=+[]{}|;:,.<>?"

# Used when every character class is switched off.
FALLBACK_ALPHABET = LOWERCASE

MEDIUM_LENGTH = 8
STRONG_LENGTH = 12

_system_random = secrets.SystemRandom()


def make_config(**options: Any) -> GeneratorConfig:
    """Build a :class:`GeneratorConfig`; bad values raise ``ValidationError``."""
    return validate_model(GeneratorConfig, options)


def _classes(config: GeneratorConfig) -> list[str]:
    selected = [
        chars
        for enabled, chars in (
            (config.uppercase, UPPERCASE),
            (config.lowercase, LOWERCASE),
            (config.digits, DIGITS),
            (config.symbols, SYMBOLS),
        )
        if enabled
    ]
    return selected or [FALLBACK_ALPHABET]


def alphabet_for(config: GeneratorConfig) -> str:
    """Return every character *config* allows, in a fixed order."""
    return "".join(_classes(config))


def generate(config: GeneratorConfig, rng: Optional[random.Random] = None) -> str:
    """Return a random password of exactly ``config.length`` characters.

    Characters are drawn uniformly, with replacement, from the enabled
    classes.  One randomly chosen position per enabled class is then redrawn
    from that class alone, so each selected class shows up at least once.
    """
    rng = rng or _system_random
    classes = _classes(config)
    alphabet = "".join(classes)

    chars = [rng.choice(alphabet) for _ in range(config.length)]
    positions = rng.sample(range(config.length), len(classes))
    for pos, class_chars in zip(positions, classes):
        chars[pos] = rng.choice(class_chars)
    return "".join(chars)


def classify_strength(password: str, config: GeneratorConfig) -> Strength:
    """Label *password* Weak, Medium or Strong.

    Medium from 8 characters.  Strong from 12 characters, provided at least
    one character from an enabled class is actually present.
    """
    if len(password) >= STRONG_LENGTH:
        present = set(password)
        if any(present.intersection(chars) for chars in _classes(config)):
            return Strength.STRONG
    if len(password) >= MEDIUM_LENGTH:
        return Strength.MEDIUM
    return Strength.WEAK
