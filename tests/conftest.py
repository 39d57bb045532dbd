import stat
import sys
import textwrap

import pytest

from vanity_codec import Chain
from vanity_keys import CandidateGenerator, SeedPhrase

# BIP39 phrase for 32 zero bytes of entropy
ZERO_PHRASE = " ".join(["abandon"] * 23 + ["art"])


@pytest.fixture
def zero_phrase():
    return ZERO_PHRASE


@pytest.fixture
def evm_base():
    return CandidateGenerator(Chain.EVM).from_seed_phrase(SeedPhrase.from_phrase(ZERO_PHRASE))


@pytest.fixture
def tron_base():
    return CandidateGenerator(Chain.TRON).from_seed_phrase(SeedPhrase.from_phrase(ZERO_PHRASE))


FAKE_TOOL = '''\
#!{python}
"""Stand-in for profanity2: walks tweaks 1, 2, ... over the -z public key.

Like the real tool it prints a record for an intermediate best score before
the one that satisfies the whole pattern.
"""
import sys
import time

from coincurve import PublicKey
from Crypto.Hash import keccak

args = sys.argv[1:]
mode = {mode!r}
if "--help" in args:
    print("usage: profanity2 [OPTIONS]")
    sys.exit(0)
if mode == "crash":
    print("OpenCL error: no devices", flush=True)
    sys.exit(3)
if mode == "silent":
    print("Devices: none", flush=True)
    sys.exit(0)

if "--matching" in args:
    pattern = args[args.index("--matching") + 1].lower()
elif "--leading" in args:
    pattern = args[args.index("--leading") + 1].lower() * 2
else:
    pattern = "00"
full = sum(1 for c in pattern if c != "x")


def score(address):
    digits = address.hex()
    if "--leading" in args:
        return len(digits) - len(digits.lstrip(pattern[0]))
    return sum(1 for p, c in zip(pattern, digits) if p != "x" and p == c)


def report(tweak, address, points):
    print(f"  Time:     1s Score: {{points:2d}} Private: 0x{{tweak.hex()}} Address: 0x{{address.hex()}}", flush=True)


base = PublicKey(b"\\x04" + bytes.fromhex(args[args.index("-z") + 1]))


def candidates():
    t = 1
    while True:
        tweak = t.to_bytes(32, "big")
        k = keccak.new(digest_bits=256)
        k.update(base.add(tweak).format(compressed=False)[1:])
        address = k.digest()[-20:]
        yield tweak, address, score(address)
        t += 1


print("Initializing OpenCL...", flush=True)
if mode == "liar":
    report(bytes.fromhex("11" * 32), bytes.fromhex(pattern.replace("x", "0").ljust(40, "0")), full)
    sys.exit(0)

if full > 1:
    for tweak, address, points in candidates():
        if 0 < points < full:
            report(tweak, address, points)
            break
if mode == "partial":
    sys.exit(0)

for tweak, address, points in candidates():
    if points >= full:
        report(tweak, address, points)
        break
if mode == "linger":
    time.sleep(30)
'''


@pytest.fixture
def fake_tool(tmp_path):
    """Factory writing an executable fake profanity2 in the given mode"""
    def make(mode="ok"):
        path = tmp_path / f"profanity2-{mode}"
        path.write_text(textwrap.dedent(FAKE_TOOL.format(python=sys.executable, mode=mode)))
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return str(path)
    return make
