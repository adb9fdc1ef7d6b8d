#!/usr/bin/env python3
"""Quick smoke test: import app, encode a message with every scheme and decode it back."""

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
try:
    import veiltext  # type: ignore  # noqa: F401
except ModuleNotFoundError:
    sys.path.insert(0, str(ROOT))
    import veiltext  # type: ignore  # noqa: F401

from veiltext.chars import all_chars
from veiltext.decoder import decode
from veiltext.encoder import encode
from veiltext.errors import VeilTextError
from veiltext.schemes import Family, all_schemes

MESSAGE = b"hi!"
CARRIER = "The quick brown fox jumps over the lazy dog."


def main() -> int:
    workers = int(os.getenv("VEILTEXT_DECODE_WORKERS", "1") or "1")
    print(f"Registry: {len(all_chars())} invisible characters")
    if len(all_chars()) != 182:
        print("Unexpected registry size")
        return 1

    failures = []
    for scheme in all_schemes():
        carrier = CARRIER if scheme.family is Family.SEGMENTED else "cover text"
        try:
            stego = encode(MESSAGE, scheme, carrier_text=carrier)
            candidates = decode(stego, schemes=[scheme.scheme_id], workers=workers)
        except VeilTextError as exc:
            failures.append(scheme.scheme_id)
            print(f"  ❌ {scheme.scheme_id}: {exc.kind}: {exc}")
            continue
        hit = any(candidate.payload == MESSAGE for candidate in candidates)
        mark = "✅" if hit else "❌"
        best = candidates[0]
        print(f"  {mark} {scheme.scheme_id:<14} best={best.text!r} score={best.score}")
        if not hit:
            failures.append(scheme.scheme_id)

    candidates = decode(encode(MESSAGE, all_schemes()[1], carrier_text="cover"), workers=workers)
    print(f"Auto decode best: {candidates[0].scheme_id} -> {candidates[0].text!r}")

    from app import app

    client = app.test_client()
    resp = client.get("/api/schemes")
    assert resp.status_code == 200, resp.data

    if failures:
        print(f"Round trip failed for: {', '.join(failures)}")
        return 1
    print("Smoke test passed.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
