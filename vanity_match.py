"""
vanity_match.py - Prefix/suffix match criteria

An address matches when it starts with any of the prefixes AND ends with
any of the suffixes. An empty prefix (or suffix) group always matches.
Patterns are folded to lowercase unless the search is case sensitive, and
are checked against the chain alphabet before any search starts.
"""

from dataclasses import dataclass
from typing import Tuple

from vanity_codec import Address, Chain, validate_alphabet
from vanity_errors import ConfigError, PatternError

MAX_PATTERN_LENGTH = 20


def split_patterns(value, case_sensitive=False):
    """Split a comma-separated pattern list, dropping empty items"""
    if not value:
        return ()
    if not case_sensitive:
        value = value.lower()
    return tuple(p.strip() for p in value.split(",") if p.strip())


def check_pattern(chain, pattern, case_sensitive=False, kind="pattern"):
    if len(pattern) > MAX_PATTERN_LENGTH:
        raise PatternError(
            f"{kind.capitalize()} must be at most {MAX_PATTERN_LENGTH} characters",
            chain=chain.value, pattern=pattern, stage="validate")
    if not validate_alphabet(chain, pattern, case_sensitive):
        raise PatternError(
            f"{kind.capitalize()} must be a {chain.alphabet_name} string ({chain.alphabet}) for {chain.value}",
            chain=chain.value, pattern=pattern, stage="validate")


@dataclass(frozen=True)
class MatchCriteria:
    chain: Chain
    prefixes: Tuple[str, ...] = ()
    suffixes: Tuple[str, ...] = ()
    case_sensitive: bool = False

    def __post_init__(self):
        for name, value in (("prefixes", self.prefixes), ("suffixes", self.suffixes)):
            if not isinstance(value, (tuple, list)):
                raise ConfigError(f"{name.capitalize()} must be a tuple or list of patterns",
                                  chain=self.chain.value, value=repr(value))
        # Store folded tuples so matching never has to fold patterns again
        prefixes = tuple(self.prefixes)
        suffixes = tuple(self.suffixes)
        if not self.case_sensitive:
            prefixes = tuple(p.lower() for p in prefixes)
            suffixes = tuple(s.lower() for s in suffixes)
        object.__setattr__(self, "prefixes", prefixes)
        object.__setattr__(self, "suffixes", suffixes)

        for p in prefixes:
            check_pattern(self.chain, p, self.case_sensitive, "prefix")
        for s in suffixes:
            check_pattern(self.chain, s, self.case_sensitive, "suffix")

    @classmethod
    def from_strings(cls, chain, prefix="", suffix="", case_sensitive=False):
        """Build criteria from comma-separated prefix and suffix lists"""
        return cls(
            chain=chain,
            prefixes=split_patterns(prefix, case_sensitive),
            suffixes=split_patterns(suffix, case_sensitive),
            case_sensitive=case_sensitive,
        )

    @property
    def is_empty(self):
        return not self.prefixes and not self.suffixes

    def describe(self):
        parts = []
        if self.prefixes:
            parts.append("prefix " + "|".join(self.prefixes))
        if self.suffixes:
            parts.append("suffix " + "|".join(self.suffixes))
        if not parts:
            parts.append("any address")
        mode = "case sensitive" if self.case_sensitive else "case insensitive"
        return f"{self.chain.value}: {' and '.join(parts)} ({mode})"


def matches(address, criteria):
    """Test an address (Address or its body as a string) against the criteria"""
    if isinstance(address, Address):
        text = address.match_text(criteria.case_sensitive)
    elif criteria.case_sensitive:
        text = address
    else:
        text = address.lower()

    if criteria.prefixes and not text.startswith(criteria.prefixes):
        return False
    if criteria.suffixes and not text.endswith(criteria.suffixes):
        return False
    return True
