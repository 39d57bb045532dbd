"""
vanity_output.py - Result records

Results are written as labeled plain text (the 24-word phrase as a
numbered 6 x 4 table) or as one JSON object per line. Records are appended
to the output file, or printed when no file is given.
"""

import json
import os
import sys
import time

import base58

import vanity_codec
from vanity_codec import Chain

LABEL_WIDTH = 18
DELEGATED_LABEL_WIDTH = 24

LABELS = {
    "address": "Vanity Address:",
    "vanity_address": "Vanity Address:",
    "final_address": "Final Address:",
    "evm_address": "EVM Address:",
    "contract_address": "Vanity Contract:",
    "public_key": "Public Key:",
    "path": "Derivation Path:",
    "mnemonic": "24-Word Phrase:",
    "private_key": "Private Key:",
    "phantom_key": "Phantom Key:",
    "final_private_key": "Final Private Key:",
    "seed_private_key": "Seed Private Key:",
    "tweak_private_key": "Profanity Private Key:",
}


def format_mnemonic_table(phrase, rows=6, cols=4):
    """Number the words column by column: 1-6 down the first column, 7-12 down the second..."""
    words = phrase.split()
    lines = []
    for row in range(rows):
        line = ""
        for col in range(cols):
            idx = row + col * rows
            if idx < len(words):
                line += f"{str(idx + 1).ljust(2)}) {words[idx].ljust(7)}  "
        lines.append(line)
    return "\n".join(lines) + "\n"


def candidate_record(candidate):
    """Output fields for a locally generated (or re-derived) key"""
    key = candidate.key
    chain = key.chain
    data = {"chain": chain.value, "address": candidate.address.value}

    if chain is Chain.TRON:
        data["evm_address"] = vanity_codec.to_checksum_address(
            vanity_codec.evm_bytes_from_tron(candidate.address.value))
    if chain is Chain.APTOS:
        data["public_key"] = "0x" + key.public_key.hex()
    if candidate.seed_phrase is not None:
        data["path"] = candidate.path
        data["mnemonic"] = candidate.seed_phrase.phrase

    if chain.uses_mnemonic:
        data["private_key"] = "0x" + key.private_key.hex()
    elif chain is Chain.SOLANA:
        data["private_key"] = key.secret_key.hex()
        data["phantom_key"] = base58.b58encode(key.secret_key).decode()
    else:
        data["private_key"] = key.private_key.hex()
    return data


def search_result_record(result):
    data = candidate_record(result.candidate)
    data["worker_id"] = result.worker_id
    data["attempts"] = result.attempts
    data["elapsed_sec"] = round(result.elapsed, 3)
    return data


def composed_record(composed):
    """Output fields for a delegated-search (or recovered) key"""
    data = {"chain": composed.chain.value}
    if composed.seed_phrase is not None:
        data["mnemonic"] = composed.seed_phrase.phrase
    if composed.tweak.reported_address:
        data["vanity_address"] = composed.tweak.reported_address
    if composed.contract_address:
        data["contract_address"] = composed.contract_address
    data["final_address"] = composed.address.value
    if composed.chain is Chain.TRON:
        data["evm_address"] = composed.evm_address
    data["final_private_key"] = "0x" + composed.private_key.hex()
    data["seed_private_key"] = "0x" + composed.seed_private_key.hex()
    data["tweak_private_key"] = "0x" + composed.tweak.private_key.hex()
    return data


def render_text(data, label_width=LABEL_WIDTH):
    content = ""
    for key, value in data.items():
        label = LABELS.get(key)
        if label is None or value is None:
            continue
        if key == "mnemonic":
            content += f"\n{label.ljust(label_width)}\n{format_mnemonic_table(value)}"
        else:
            content += f"\n{label.ljust(label_width)}{value}"
    return content + "\n"


class ResultSink:
    """Appends records to a file, or prints them"""

    def __init__(self, output=None, output_format="text", stream=None, label_width=LABEL_WIDTH):
        self.output = output
        self.output_format = output_format
        self.stream = stream
        self.label_width = label_width

    def render(self, data):
        if self.output_format == "json":
            data = dict(data, timestamp=time.strftime("%Y-%m-%d %H:%M:%S"))
            return json.dumps(data) + "\n"
        return render_text(data, self.label_width)

    def write(self, data):
        content = self.render(data)
        if self.output:
            out_dir = os.path.dirname(self.output)
            if out_dir and not os.path.exists(out_dir):
                os.makedirs(out_dir)
            with open(self.output, "a") as f:
                f.write(content)
        else:
            (self.stream or sys.stdout).write(content)
        return content
