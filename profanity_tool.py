"""
profanity_tool.py - Delegated vanity search through the profanity2 GPU tool

profanity2 (https://github.com/1inch/profanity2) is driven as a black box:

    profanity2 -z <128 hex public key> <scoring mode> [--contract]

It prints result lines on stdout. The only fields read from them are

    Private: [0x]<64 hex chars>     the tweak t
    Address: 0x<40 hex chars>       the address of (s + t) mod n

(labels are case-insensitive), plus the "Score:" that precedes them. The tool
reports every improvement of its best score, so a record only ends the search
once it actually satisfies the requested pattern (or minimum score); output
that never completes such a record is a hard error.
"""

import logging
import os
import re
import shutil
import subprocess

import vanity_codec
from vanity_compose import KeyComposer, Tweak
from vanity_errors import KeyCompositionError, ToolExecutionError, ToolNotFoundError, ToolOutputError
from vanity_keys import CandidateGenerator

logger = logging.getLogger(__name__)

INSTALL_HINT = ("Please install profanity2 from: https://github.com/1inch/profanity2\n"
                "Or specify the path with --profanity-path")

ADDRESS_RE = re.compile(r"address:\s*0x([0-9a-f]{40})(?![0-9a-f])", re.IGNORECASE)
PRIVATE_RE = re.compile(r"private:\s*(?:0x)?([0-9a-f]{64})(?![0-9a-f])", re.IGNORECASE)
SCORE_RE = re.compile(r"score:\s*(\d+)", re.IGNORECASE)


class ToolOutputParser:
    """Incremental parser for profanity2 stdout"""

    def __init__(self):
        self.lines = []
        self.record = None
        self._address = None
        self._private = None
        self._score = None

    @property
    def output(self):
        return "".join(self.lines)

    def feed(self, line):
        """Consume one line; returns a Tweak when it completes a record"""
        self.lines.append(line)
        score = SCORE_RE.search(line)
        if score:
            self._score = int(score.group(1))
        private = PRIVATE_RE.search(line)
        if private:
            self._private = private.group(1)
        address = ADDRESS_RE.search(line)
        if address:
            self._address = "0x" + address.group(1)

        if self._private and self._address:
            self.record = Tweak.from_hex(self._private, self._address, self._score)
            self._private = self._address = self._score = None
            return self.record
        return None

    def result(self):
        if self.record is None:
            raise ToolOutputError("Could not find both 'Address:' and 'Private:' in the profanity2 output",
                                  output=self.output, stage="parse")
        return self.record


def parse_tool_output(text):
    """Last complete record in a block of tool output"""
    parser = ToolOutputParser()
    for line in text.splitlines(keepends=True):
        parser.feed(line)
    return parser.result()


def build_arguments(config, public_key_hex):
    if len(public_key_hex) != 128:
        raise ToolExecutionError("profanity2 expects a 128 hex character public key",
                                 length=len(public_key_hex), stage="arguments")
    args = ["-z", public_key_hex] + config.scoring_arguments
    if config.contract:
        args.append("--contract")
    return args


class ProfanityRunner:
    """Starts profanity2, streams its output and extracts the tweak"""

    def __init__(self, config):
        self.config = config

    def command(self, args):
        return list(self.config.launcher) + [self.config.tool_path] + list(args)

    def check_available(self):
        tool = self.config.tool_path
        if not self.config.launcher:
            if shutil.which(tool) or (os.path.isfile(tool) and os.access(tool, os.X_OK)):
                return
            raise ToolNotFoundError(f"Profanity2 not found at: {tool}\n{INSTALL_HINT}", tool=tool, stage="check")

        # Behind a launcher (e.g. wsl) the path is only meaningful on the other side
        try:
            help_run = subprocess.run(self.command(["--help"]), stdout=subprocess.PIPE,
                                      stderr=subprocess.STDOUT, text=True, timeout=60)
        except (OSError, subprocess.TimeoutExpired) as e:
            raise ToolNotFoundError(f"Could not start profanity2: {e}\n{INSTALL_HINT}",
                                    tool=tool, stage="check") from e
        if help_run.returncode != 0:
            raise ToolNotFoundError(f"Profanity2 not found at: {tool}\n{INSTALL_HINT}",
                                    output=help_run.stdout, tool=tool, exit_code=help_run.returncode,
                                    stage="check")

    def run(self, public_key_hex):
        """Run the search; returns (tweak, raw output)"""
        cmd = self.command(build_arguments(self.config, public_key_hex))
        logger.info(f"Running: {' '.join(cmd)}")
        logger.info("This may take a while depending on the difficulty of your vanity pattern...")

        try:
            process = subprocess.Popen(cmd, stdout=subprocess.PIPE, stderr=subprocess.STDOUT,
                                       text=True, bufsize=1)
        except OSError as e:
            raise ToolNotFoundError(f"Could not start profanity2: {e}\n{INSTALL_HINT}",
                                    tool=self.config.tool_path, stage="run") from e

        parser = ToolOutputParser()
        result = None
        try:
            for line in process.stdout:
                logger.info(line.rstrip())
                tweak = parser.feed(line)
                if tweak is None:
                    continue
                if not self.config.is_complete(tweak):
                    logger.info(f"Intermediate result (score {tweak.score}), still searching...")
                    continue
                result = tweak
                if self.config.stop_on_match:
                    process.terminate()
                    break
            returncode = process.wait()
        finally:
            if process.poll() is None:
                process.kill()
                process.wait()
            process.stdout.close()

        if result is not None:
            return result, parser.output
        if returncode != 0:
            raise ToolExecutionError(f"Profanity2 exited with code {returncode}",
                                     output=parser.output, exit_code=returncode, stage="run")
        if parser.record is None:
            parser.result()
        raise ToolOutputError("Profanity2 exited before reporting a result that meets the requested pattern",
                              output=parser.output, score=parser.record.score, stage="run")


def run_delegated_search(config, runner=None, generator=None):
    """Full delegated protocol: derive seed key, search tweak on GPU, combine and verify"""
    runner = runner or ProfanityRunner(config)
    runner.check_available()

    generator = generator or CandidateGenerator(config.chain, config.account, config.address_index)
    base = generator.generate()
    public_key_hex = vanity_codec.secp256k1_public_key(base.key.public_key).hex()
    logger.info(f"Seed address: {base.address.value}")
    logger.info(f"Public key for profanity2: {public_key_hex}")

    tweak, output = runner.run(public_key_hex)
    composed = KeyComposer(config.chain, config.contract).compose(base, tweak, output)
    checked = composed.contract_address if config.contract else composed.evm_address
    if not config.accepts(checked):
        raise KeyCompositionError("Final address does not match the requested pattern",
                                  output=output, address=checked, pattern=config.matching, stage="pattern")
    logger.info(f"Final address verified: {composed.address.value}")
    return composed
