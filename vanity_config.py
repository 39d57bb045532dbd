"""
vanity_config.py - Validated, immutable run configuration

The CLI builds one of these records once and hands it to the core; nothing
downstream reads raw command-line flags.
"""

import multiprocessing
from dataclasses import dataclass, field
from typing import Optional, Tuple

from vanity_codec import Chain
from vanity_errors import ConfigError, PatternError
from vanity_keys import MAX_HD_INDEX
from vanity_match import MatchCriteria, matches

OUTPUT_FORMATS = ("text", "json")
START_METHODS = (None, "fork", "spawn", "forkserver")
HEX_DIGITS = "0123456789abcdefABCDEF"
PROFANITY_PATTERN_LENGTH = 40


def default_worker_count():
    """Half of the available CPUs, at least one"""
    return max(1, multiprocessing.cpu_count() // 2)


def _check_common(output_format, account, address_index):
    if output_format not in OUTPUT_FORMATS:
        raise ConfigError(f"Output format must be one of {', '.join(OUTPUT_FORMATS)}", format=output_format)
    for name, value in (("account", account), ("address index", address_index)):
        if not 0 <= value <= MAX_HD_INDEX:
            raise ConfigError(f"The {name} must be between 0 and {MAX_HD_INDEX}", value=value)


@dataclass(frozen=True)
class SearchConfig:
    """Local (CPU) vanity search"""
    criteria: MatchCriteria
    workers: int = field(default_factory=default_worker_count)
    count: int = 1
    output: Optional[str] = None
    output_format: str = "text"
    account: int = 0
    address_index: int = 0
    contract: bool = False
    start_method: Optional[str] = None
    status_interval: float = 10.0

    def __post_init__(self):
        if self.workers < 1:
            raise ConfigError("Worker count must be at least 1", workers=self.workers)
        if self.count < 1:
            raise ConfigError("Number of addresses must be at least 1", count=self.count)
        if self.status_interval <= 0:
            raise ConfigError("Status interval must be positive", status_interval=self.status_interval)
        if self.start_method not in START_METHODS:
            raise ConfigError("Unknown multiprocessing start method", start_method=self.start_method)
        _check_common(self.output_format, self.account, self.address_index)
        if self.contract:
            if self.criteria.chain is not Chain.EVM:
                raise ConfigError("Contract addresses are only supported for evm", chain=self.criteria.chain.value)
            raise ConfigError("Contract addresses are not supported for mnemonic-backed generation; "
                              "use the profanity command with --contract", chain=self.criteria.chain.value)

    @property
    def chain(self):
        return self.criteria.chain


def profanity_pattern(criteria):
    """Translate hex prefix/suffix criteria into the tool's 40-character X-wildcard pattern"""
    if criteria.chain is not Chain.EVM or criteria.case_sensitive:
        raise PatternError("Delegated patterns are case-insensitive hex", chain=criteria.chain.value,
                           pattern=criteria.describe(), stage="translate")
    if criteria.is_empty:
        raise PatternError("Delegated search needs a prefix or a suffix", stage="translate")
    if len(criteria.prefixes) > 1 or len(criteria.suffixes) > 1:
        raise PatternError("Delegated search takes a single prefix and a single suffix",
                           pattern=criteria.describe(), stage="translate")
    prefix = criteria.prefixes[0] if criteria.prefixes else ""
    suffix = criteria.suffixes[0] if criteria.suffixes else ""
    if not suffix:
        return prefix
    return prefix + "X" * (PROFANITY_PATTERN_LENGTH - len(prefix) - len(suffix)) + suffix


def pattern_matches(pattern, address):
    """Compare a 0x address with a tool pattern nibble by nibble from its first character"""
    body = address[2:] if address[:2].lower() == "0x" else address
    body = body.lower()
    if len(pattern) > len(body):
        return False
    return all(p in "Xx" or p.lower() == c for p, c in zip(pattern, body))


@dataclass(frozen=True)
class ProfanityConfig:
    """Delegated search through the profanity2 GPU tool

    Hex prefix/suffix criteria are translated into a `matching` pattern and
    kept for checking the final address. Scored modes (leading, leading-range,
    zero-bytes) have no natural end, so stopping at a result needs `min_score`.
    """
    chain: Chain = Chain.EVM
    tool_path: str = "profanity2"
    launcher: Tuple[str, ...] = ()
    leading: Optional[str] = None
    matching: Optional[str] = None
    criteria: Optional[MatchCriteria] = None
    leading_range: bool = False
    range_min: Optional[int] = None
    range_max: Optional[int] = None
    zero_bytes: bool = False
    contract: bool = False
    stop_on_match: bool = True
    min_score: Optional[int] = None
    account: int = 0
    address_index: int = 0
    output: Optional[str] = None
    output_format: str = "text"

    def __post_init__(self):
        if self.chain not in (Chain.EVM, Chain.TRON):
            raise ConfigError("Delegated search supports evm and tron only", chain=self.chain.value)
        if self.contract and self.chain is not Chain.EVM:
            raise ConfigError("Contract addresses are only supported for evm", chain=self.chain.value)
        _check_common(self.output_format, self.account, self.address_index)

        if self.criteria is not None:
            if self.matching is not None:
                raise ConfigError("Use either --matching or --prefix/--suffix, not both")
            object.__setattr__(self, "matching", profanity_pattern(self.criteria))

        modes = [m for m, on in (("leading", self.leading is not None),
                                 ("matching", self.matching is not None),
                                 ("leading-range", self.leading_range),
                                 ("zero-bytes", self.zero_bytes)) if on]
        if len(modes) != 1:
            raise ConfigError("Select exactly one scoring mode: --leading, --matching/--prefix/--suffix, "
                              "--leading-range or --zero-bytes", modes=",".join(modes) or "none")

        if self.leading is not None and (len(self.leading) != 1 or self.leading not in HEX_DIGITS):
            raise PatternError("Leading character must be a single hex digit",
                               chain=self.chain.value, pattern=self.leading, stage="validate")
        if self.matching is not None:
            pattern = self.matching
            if not pattern or len(pattern) > PROFANITY_PATTERN_LENGTH or \
                    any(c not in HEX_DIGITS + "Xx" for c in pattern):
                raise PatternError(f"Matching pattern must be 1-{PROFANITY_PATTERN_LENGTH} hex digits or X wildcards",
                                   chain=self.chain.value, pattern=pattern, stage="validate")
            if self.min_score is not None:
                raise ConfigError("--min-score only applies to --leading, --leading-range and --zero-bytes")
        elif self.min_score is None:
            if self.stop_on_match:
                raise ConfigError(f"Scored mode --{modes[0]} needs --min-score to know when a result is "
                                  "good enough (or --keep-running to take the best one)")
        elif self.min_score < 1:
            raise ConfigError("Minimum score must be at least 1", min_score=self.min_score)
        if self.leading_range:
            for name, value in (("min", self.range_min), ("max", self.range_max)):
                if value is not None and not 0 <= value <= 15:
                    raise ConfigError(f"Range {name} must be between 0 and 15", value=value)
            if self.range_min is not None and self.range_max is not None and self.range_min > self.range_max:
                raise ConfigError("Range min must not exceed range max", min=self.range_min, max=self.range_max)

    @property
    def scoring_arguments(self):
        if self.leading is not None:
            return ["--leading", self.leading]
        if self.matching is not None:
            return ["--matching", self.matching]
        if self.leading_range:
            args = ["--leading-range"]
            if self.range_min is not None:
                args += ["-m", str(self.range_min)]
            if self.range_max is not None:
                args += ["-M", str(self.range_max)]
            return args
        return ["--zero-bytes"]

    def is_complete(self, tweak):
        """Whether a tool record is a finished result rather than an intermediate best score"""
        if self.matching is not None:
            return bool(tweak.reported_address) and pattern_matches(self.matching, tweak.reported_address)
        if self.min_score is None:
            return True
        return tweak.score is not None and tweak.score >= self.min_score

    def accepts(self, address):
        """Final check of the verified account (or contract) address against the requested pattern"""
        if self.criteria is not None:
            return matches(address[2:] if address[:2].lower() == "0x" else address, self.criteria)
        if self.matching is not None:
            return pattern_matches(self.matching, address)
        return True
