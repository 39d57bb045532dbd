"""
vanity_search.py - Brute-force search loop and worker coordination

Each worker runs its own SearchLoop: generate a candidate, encode its
address, test it against the criteria, repeat. Workers share nothing but a
cancel event and a result queue. The coordinator collects results in
arrival order and, once it has enough, sets the cancel event; every worker
notices it at its next iteration and exits.
"""

import logging
import multiprocessing
import queue
import signal
import time
from dataclasses import dataclass
from enum import Enum

import numpy as np

from vanity_codec import BASE58_ALPHABET, Chain
from vanity_errors import CandidateError, ConfigError, PatternError, VanityError, WorkerFailedError
from vanity_keys import Candidate, CandidateGenerator
from vanity_match import matches

logger = logging.getLogger(__name__)

# Rough single-worker keys/sec, only used for time estimates.
# HD chains pay for PBKDF2 (2048 rounds) plus BIP44 derivation on every attempt.
NOMINAL_RATES = {
    Chain.EVM: 400,
    Chain.TRON: 400,
    Chain.SOLANA: 20000,
    Chain.APTOS: 20000,
}


class SearchState(Enum):
    SEARCHING = "searching"
    FOUND = "found"
    FINALIZING = "finalizing"
    DONE = "done"


@dataclass(frozen=True)
class SearchResult:
    worker_id: int
    candidate: Candidate
    attempts: int
    elapsed: float

    @property
    def address(self):
        return self.candidate.address


class SearchLoop:
    """Generate-encode-match loop for one worker"""

    def __init__(self, criteria, worker_id=0, generator=None, account=0, address_index=0):
        self.criteria = criteria
        self.worker_id = worker_id
        self.generator = generator or CandidateGenerator(criteria.chain, account, address_index)
        self.state = SearchState.SEARCHING
        self.attempts = 0
        self.discarded = 0

    def _finalize(self, candidate):
        # Rebuild the address from the retained secret only and make sure it
        # is the exact address that matched.
        self.state = SearchState.FINALIZING
        rebuilt = self.generator.rederive(candidate)
        if rebuilt.address != candidate.address or rebuilt.key != candidate.key:
            raise CandidateError("Re-derived key does not reproduce the matched address",
                                 chain=self.criteria.chain.value, stage="finalize",
                                 address=candidate.address.value)
        if not matches(rebuilt.address, self.criteria):
            raise CandidateError("Re-derived address no longer matches",
                                 chain=self.criteria.chain.value, stage="finalize")
        return rebuilt

    def run(self, cancel_event=None, max_attempts=None):
        """Search until a match, cancellation or max_attempts; returns a SearchResult or None"""
        start_time = time.time()
        self.state = SearchState.SEARCHING

        while True:
            if cancel_event is not None and cancel_event.is_set():
                self.state = SearchState.DONE
                return None
            if max_attempts is not None and self.attempts >= max_attempts:
                self.state = SearchState.DONE
                return None

            self.attempts += 1
            try:
                candidate = self.generator.generate()
            except CandidateError as e:
                self.discarded += 1
                logger.debug(f"Worker {self.worker_id}: discarded candidate: {e}")
                continue

            if not matches(candidate.address, self.criteria):
                continue

            self.state = SearchState.FOUND
            logger.debug(f"Worker {self.worker_id}: candidate matched after {self.attempts:,} attempts, finalizing")
            try:
                candidate = self._finalize(candidate)
            except CandidateError as e:
                self.discarded += 1
                logger.warning(f"Worker {self.worker_id}: {e}")
                self.state = SearchState.SEARCHING
                continue

            self.state = SearchState.DONE
            return SearchResult(
                worker_id=self.worker_id,
                candidate=candidate,
                attempts=self.attempts,
                elapsed=time.time() - start_time,
            )


def search_worker(worker_id, criteria, account, address_index, cancel_event, result_queue):
    """Process entry point: run one SearchLoop and report its outcome"""
    # Ctrl+C is handled by the coordinator, which cancels us through the event
    signal.signal(signal.SIGINT, signal.SIG_IGN)

    loop = SearchLoop(criteria, worker_id, account=account, address_index=address_index)
    try:
        result = loop.run(cancel_event)
    except VanityError as e:
        result_queue.put(("error", worker_id, str(e)))
        return

    if result is not None:
        result_queue.put(("found", worker_id, result))


class WorkerCoordinator:
    """Runs independent search workers until the requested number of matches is collected"""

    def __init__(self, criteria, workers=1, count=1, account=0, address_index=0,
                 start_method=None, status_interval=10.0, poll_interval=0.2, join_timeout=5.0):
        if workers < 1:
            raise ConfigError("Worker count must be at least 1", workers=workers)
        if count < 1:
            raise ConfigError("Match count must be at least 1", count=count)
        self.criteria = criteria
        self.workers = workers
        self.count = count
        self.account = account
        self.address_index = address_index
        self.status_interval = status_interval
        self.poll_interval = poll_interval
        self.join_timeout = join_timeout
        self._ctx = multiprocessing.get_context(start_method)
        self._processes = {}
        self._next_worker_id = 0

    @property
    def processes(self):
        return list(self._processes.values())

    def _spawn(self, cancel_event, result_queue):
        worker_id = self._next_worker_id
        self._next_worker_id += 1
        process = self._ctx.Process(
            target=search_worker,
            args=(worker_id, self.criteria, self.account, self.address_index, cancel_event, result_queue),
            name=f"vanity-worker-{worker_id}",
            daemon=True,
        )
        process.start()
        self._processes[worker_id] = process
        logger.debug(f"Started worker {worker_id} (pid {process.pid})")

    def _check_workers(self):
        for worker_id, process in self._processes.items():
            if process.exitcode not in (None, 0):
                raise WorkerFailedError("Search worker exited unexpectedly",
                                        worker=worker_id, exitcode=process.exitcode)

    def _shutdown(self, cancel_event, result_queue):
        cancel_event.set()
        deadline = time.time() + self.join_timeout
        for process in self._processes.values():
            process.join(max(0.0, deadline - time.time()))
        for worker_id, process in self._processes.items():
            if process.is_alive():
                logger.debug(f"Terminating worker {worker_id}")
                process.terminate()
                process.join()

        # Late results from workers that matched while we were stopping
        while True:
            try:
                kind, worker_id, _ = result_queue.get_nowait()
            except (queue.Empty, OSError, EOFError):
                break
            logger.debug(f"Discarded late '{kind}' message from worker {worker_id}")
        result_queue.close()

    def run(self):
        """Collect `count` results in completion order"""
        cancel_event = self._ctx.Event()
        result_queue = self._ctx.Queue()
        results = []

        logger.info(f"Searching for {self.criteria.describe()}")
        logger.info(f"Using {self.workers} workers, stopping after {self.count} match(es)")

        start_time = time.time()
        last_status_time = start_time
        try:
            for _ in range(self.workers):
                self._spawn(cancel_event, result_queue)

            while len(results) < self.count:
                try:
                    kind, worker_id, payload = result_queue.get(timeout=self.poll_interval)
                except queue.Empty:
                    self._check_workers()
                    now = time.time()
                    if now - last_status_time >= self.status_interval:
                        logger.debug(f"Still searching after {format_duration(now - start_time)}")
                        last_status_time = now
                    continue

                if kind == "error":
                    raise WorkerFailedError(payload, worker=worker_id)

                results.append(payload)
                logger.info(f"Match #{len(results)} found by worker {worker_id} "
                            f"after {payload.attempts:,} attempts in {payload.elapsed:.2f} seconds")

                # The worker exits after reporting; keep the pool at full size
                self._processes.pop(worker_id).join()
                if len(results) < self.count:
                    self._spawn(cancel_event, result_queue)
        finally:
            self._shutdown(cancel_event, result_queue)

        logger.info(f"Collected {len(results)} match(es) in {format_duration(time.time() - start_time)}")
        return results


def run_search(criteria, workers=1, count=1, **options):
    """Run a coordinated search and return its results in completion order"""
    return WorkerCoordinator(criteria, workers=workers, count=count, **options).run()


def _fold(odds):
    folded = {}
    for c, p in odds.items():
        folded[c.lower()] = folded.get(c.lower(), 0.0) + p
    return folded


def _symbol_odds(chain, case_sensitive):
    """Probability of each (folded) symbol at a single address position"""
    if chain.alphabet_name == "hex":
        odds = {}
        for c in "0123456789abcdef":
            if chain is Chain.EVM and case_sensitive and c.isalpha():
                # EIP-55 upper-cases a letter half of the time
                odds[c] = odds[c.upper()] = 1 / 32
            else:
                odds[c] = 1 / 16
    else:
        odds = {c: 1 / len(BASE58_ALPHABET) for c in BASE58_ALPHABET}
    return odds if case_sensitive else _fold(odds)


def _tron_second_char_odds():
    """Exact odds of the character following the leading 'T' of a Tron address"""
    # Base58Check payloads are 25 bytes starting with 0x41: values in [0x41 << 192, 0x42 << 192)
    low, high = 0x41 << 192, 0x42 << 192
    unit = 58 ** 32
    first = low // (58 * unit)
    odds = {}
    for i, c in enumerate(BASE58_ALPHABET):
        start = (first * 58 + i) * unit
        overlap = min(start + unit, high) - max(start, low)
        odds[c] = max(0, overlap) / (high - low)
    return odds


TRON_SECOND_CHAR_ODDS = _tron_second_char_odds()


def pattern_probability(chain, pattern, case_sensitive=False, is_prefix=True):
    odds = _symbol_odds(chain, case_sensitive)
    probability = 1.0
    for i, c in enumerate(pattern):
        if chain is Chain.TRON and is_prefix and i == 0:
            # Every Tron address starts with 'T'
            first = "T" if case_sensitive else "t"
            probability *= 1.0 if c == first else 0.0
        elif chain is Chain.TRON and is_prefix and i == 1:
            # The 0x41 version byte limits the second character to '9'..'Z'
            second = TRON_SECOND_CHAR_ODDS if case_sensitive else _fold(TRON_SECOND_CHAR_ODDS)
            probability *= second.get(c, 0.0)
        else:
            probability *= odds.get(c, 0.0)
    return probability


def estimate_difficulty(criteria, workers=1, levels=(0.5, 0.9, 0.99)):
    """Estimate the chance per attempt and the attempts needed to find a match"""
    chain = criteria.chain
    p_prefix = 1.0
    if criteria.prefixes:
        p_prefix = min(1.0, sum(pattern_probability(chain, p, criteria.case_sensitive, True)
                                for p in criteria.prefixes))
    p_suffix = 1.0
    if criteria.suffixes:
        p_suffix = min(1.0, sum(pattern_probability(chain, s, criteria.case_sensitive, False)
                                for s in criteria.suffixes))
    probability = p_prefix * p_suffix
    if probability <= 0.0:
        raise PatternError("Pattern can never match an address on this chain",
                           chain=chain.value, pattern=criteria.describe(), stage="estimate")

    levels = np.asarray(levels, dtype=float)
    if probability >= 1.0:
        attempts = np.ones_like(levels)
    else:
        attempts = np.ceil(np.log1p(-levels) / np.log1p(-probability))

    expected_attempts = 1.0 / probability
    rate = NOMINAL_RATES[chain] * max(1, workers)
    return {
        "probability": probability,
        "expected_attempts": expected_attempts,
        "attempts_for": {float(q): int(n) for q, n in zip(levels, attempts)},
        "estimated_seconds": expected_attempts / rate,
    }


def format_duration(seconds):
    """Format seconds into a human-readable time string"""
    if seconds < 60:
        return f"{seconds:.1f} seconds"
    elif seconds < 3600:
        return f"{seconds/60:.1f} minutes"
    elif seconds < 86400:
        return f"{seconds/3600:.1f} hours"
    elif seconds < 604800:
        return f"{seconds/86400:.1f} days"
    elif seconds < 2592000:
        return f"{seconds/604800:.1f} weeks"
    elif seconds < 31536000:
        return f"{seconds/2592000:.1f} months"
    else:
        return f"{seconds/31536000:.1f} years"
