#!/usr/bin/env python3
"""
vanity.py - Multi-chain vanity address generator

Commands:
    address    CPU search on evm, tron, solana or aptos
    profanity  GPU search through profanity2, keeping the key recoverable
               from a BIP39 phrase
    derive     rebuild a key from a 24-word phrase (and optional tweak)

Examples:
    vanity address 012,111 abc,def -s -w 2
    vanity address so,far so,good -c solana -n 2
    vanity address 0000 1111 -c aptos -w 1 -n 2 -o output.txt
    vanity address tp -c tron
    vanity profanity --prefix dead --chain tron
    vanity profanity --leading-range -m 0 -M 1 --min-score 6
    vanity derive -c tron --account 0 --index 0
"""

import argparse
import getpass
import logging
import shlex
import sys

from profanity_tool import run_delegated_search
from vanity_codec import Chain
from vanity_compose import recover
from vanity_config import OUTPUT_FORMATS, ProfanityConfig, SearchConfig, default_worker_count
from vanity_errors import ToolError, VanityError
from vanity_keys import CandidateGenerator, SeedPhrase
from vanity_match import MatchCriteria
from vanity_output import (DELEGATED_LABEL_WIDTH, LABEL_WIDTH, ResultSink, candidate_record, composed_record,
                           search_result_record)
from vanity_search import WorkerCoordinator, estimate_difficulty, format_duration

logger = logging.getLogger("vanity")


def setup_logging(verbose=False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler()]
    )


def build_parser():
    parser = argparse.ArgumentParser(prog="vanity", description="Multi-chain vanity address generator",
                                     formatter_class=argparse.RawDescriptionHelpFormatter, epilog=__doc__)
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")
    commands = parser.add_subparsers(dest="command", required=True)

    address = commands.add_parser("address", help="Generate vanity addresses on the CPU")
    address.add_argument("prefix", nargs="?", default="",
                         help="Prefix to match, multiple prefixes separated by commas")
    address.add_argument("suffix", nargs="?", default="",
                         help="Suffix to match, multiple suffixes separated by commas")
    address.add_argument("-c", "--chain", choices=[c.value for c in Chain], default="evm",
                         help="The chain type to use for address generation")
    address.add_argument("-s", "--case-sensitive", action="store_true",
                         help="Whether the vanity address is case sensitive")
    address.add_argument("-w", "--workers", type=int, default=0,
                         help=f"Number of workers (0=half the CPUs, here {default_worker_count()})")
    address.add_argument("-n", "--num", type=int, default=1, help="Number of addresses to generate")
    address.add_argument("-o", "--output", type=str, default=None, help="File to append the addresses to")
    address.add_argument("--format", choices=OUTPUT_FORMATS, default="text", help="Output record format")
    address.add_argument("-C", "--contract", action="store_true",
                         help="Search a contract address (evm only, needs the profanity command)")
    address.add_argument("--account", type=int, default=0, help="BIP44 account for evm/tron")
    address.add_argument("--index", type=int, default=0, help="BIP44 address index for evm/tron")
    address.add_argument("--start-method", choices=["fork", "spawn", "forkserver"], default=None,
                         help="Multiprocessing start method")
    address.add_argument("--no-estimate", action="store_true", help="Skip difficulty estimation")

    profanity = commands.add_parser("profanity", help="Generate BIP39 vanity addresses with profanity2")
    profanity.add_argument("-c", "--chain", choices=["eth", "evm", "tron"], default="eth",
                           help="The chain type to use for address generation")
    profanity.add_argument("--leading", type=str, default=None,
                           help="Score on hashes leading with given hex character")
    profanity.add_argument("--matching", type=str, default=None,
                           help="Score on hashes matching given hex string (X is a wildcard)")
    profanity.add_argument("--prefix", type=str, default="",
                           help="Hex prefix of the 20-byte address body, translated to --matching")
    profanity.add_argument("--suffix", type=str, default="",
                           help="Hex suffix of the 20-byte address body, translated to --matching")
    profanity.add_argument("--leading-range", action="store_true",
                           help="Score on hashes leading with characters within given range")
    profanity.add_argument("-m", "--min", type=int, default=None,
                           help='Set range minimum (inclusive), 0 is "0" 15 is "f"')
    profanity.add_argument("-M", "--max", type=int, default=None,
                           help='Set range maximum (inclusive), 0 is "0" 15 is "f"')
    profanity.add_argument("-b", "--zero-bytes", action="store_true",
                           help="Score on hashes containing the most zero bytes")
    profanity.add_argument("-C", "--contract", action="store_true",
                           help="Score the contract address instead of account address")
    profanity.add_argument("-o", "--output", type=str, default=None, help="File to append the result to")
    profanity.add_argument("--format", choices=OUTPUT_FORMATS, default="text", help="Output record format")
    profanity.add_argument("--profanity-path", type=str, default="profanity2",
                           help="Path to profanity2 executable")
    profanity.add_argument("--launcher", type=str, default="",
                           help='Command prefix used to start profanity2, e.g. "wsl --exec"')
    profanity.add_argument("--keep-running", action="store_true",
                           help="Let profanity2 exit on its own instead of stopping at the first result")
    profanity.add_argument("--min-score", type=int, default=None,
                           help="Stop at the first result scoring at least this much (scored modes)")
    profanity.add_argument("--account", type=int, default=0, help="BIP44 account of the seed key")
    profanity.add_argument("--index", type=int, default=0, help="BIP44 address index of the seed key")

    derive = commands.add_parser("derive", help="Rebuild a key from a 24-word phrase")
    derive.add_argument("-c", "--chain", choices=["evm", "tron"], default="evm",
                        help="The chain type to derive for")
    derive.add_argument("--mnemonic", type=str, default=None,
                        help="24-word phrase (prompted for when omitted)")
    derive.add_argument("--account", type=int, default=0, help="BIP44 account index")
    derive.add_argument("--index", type=int, default=0, help="BIP44 address index")
    derive.add_argument("--tweak", type=str, default=None,
                        help="Profanity private key to add to the derived key")
    derive.add_argument("-o", "--output", type=str, default=None, help="File to append the result to")
    derive.add_argument("--format", choices=OUTPUT_FORMATS, default="text", help="Output record format")
    return parser


def log_estimate(config):
    estimate = estimate_difficulty(config.criteria, config.workers)
    logger.info(f"Difficulty: approximately 1 in {estimate['expected_attempts']:,.0f} keys")
    for level, attempts in estimate["attempts_for"].items():
        logger.info(f"  {level:.0%} chance after {attempts:,} keys")
    logger.info(f"  Estimated time with {config.workers} workers: "
                f"{format_duration(estimate['estimated_seconds'])}")


def cmd_address(args):
    chain = Chain.parse(args.chain)
    criteria = MatchCriteria.from_strings(chain, args.prefix, args.suffix, args.case_sensitive)
    config = SearchConfig(
        criteria=criteria,
        workers=args.workers if args.workers > 0 else default_worker_count(),
        count=args.num,
        output=args.output,
        output_format=args.format,
        account=args.account,
        address_index=args.index,
        contract=args.contract,
        start_method=args.start_method,
    )

    if criteria.is_empty:
        logger.warning("No prefix or suffix given, every address will match")
    if args.no_estimate:
        # Still refuse patterns that can never match
        estimate_difficulty(criteria, config.workers)
    else:
        log_estimate(config)

    logger.info(f"Generating {chain.value} vanity address...")
    coordinator = WorkerCoordinator(
        criteria,
        workers=config.workers,
        count=config.count,
        account=config.account,
        address_index=config.address_index,
        start_method=config.start_method,
        status_interval=config.status_interval,
    )
    results = coordinator.run()

    sink = ResultSink(config.output, config.output_format)
    for i, result in enumerate(results, 1):
        sink.write(search_result_record(result))
        logger.info(f"Vanity address #{i} found and saved.")
    if config.output:
        logger.info(f"Saved {len(results)} result(s) to: {config.output}")
    return 0


def cmd_profanity(args):
    # Hex patterns apply to the 20-byte account body, also for tron
    criteria = None
    if args.prefix or args.suffix:
        criteria = MatchCriteria.from_strings(Chain.EVM, args.prefix, args.suffix)

    config = ProfanityConfig(
        chain=Chain.EVM if args.chain == "eth" else Chain.parse(args.chain),
        tool_path=args.profanity_path,
        launcher=tuple(shlex.split(args.launcher)),
        leading=args.leading,
        matching=args.matching,
        criteria=criteria,
        leading_range=args.leading_range,
        range_min=args.min,
        range_max=args.max,
        zero_bytes=args.zero_bytes,
        contract=args.contract,
        stop_on_match=not args.keep_running,
        min_score=args.min_score,
        account=args.account,
        address_index=args.index,
        output=args.output,
        output_format=args.format,
    )

    logger.info("Generating BIP39 seed with profanity2 GPU acceleration...")
    composed = run_delegated_search(config)
    ResultSink(config.output, config.output_format, label_width=DELEGATED_LABEL_WIDTH).write(
        composed_record(composed))
    if config.output:
        logger.info(f"Results saved to: {config.output}")
    return 0


def cmd_derive(args):
    chain = Chain.parse(args.chain)
    phrase = args.mnemonic
    if phrase is None:
        phrase = getpass.getpass("Enter your 24-word mnemonic phrase (space-separated): ")

    if args.tweak:
        composed = recover(phrase, args.tweak, chain, args.account, args.index)
        data = composed_record(composed)
        width = DELEGATED_LABEL_WIDTH
    else:
        generator = CandidateGenerator(chain, args.account, args.index)
        data = candidate_record(generator.from_seed_phrase(SeedPhrase.from_phrase(phrase)))
        width = LABEL_WIDTH
    ResultSink(args.output, args.format, label_width=width).write(data)
    return 0


COMMANDS = {
    "address": cmd_address,
    "profanity": cmd_profanity,
    "derive": cmd_derive,
}


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    try:
        return COMMANDS[args.command](args)
    except KeyboardInterrupt:
        logger.info("Stopped by user.")
        return 130
    except ToolError as e:
        logger.error(f"Error: {e}")
        if e.output:
            logger.error(f"Raw tool output:\n{e.output}")
        return 1
    except VanityError as e:
        logger.error(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
