#!/usr/bin/env python3
"""
Round-trip demo: record → query multimap → query string → record

Shows the full workflow:
1. Build an example record
2. Encode it into a string multimap
3. Render it as a URL query string and parse it back
4. Decode the multimap into a fresh record
"""

import logging
from urllib.parse import parse_qs, urlencode

from mapquery import decode_as, encode
from mapquery.examples import CoolRoot, build_example_root


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    print("=" * 80)
    print("ROUND TRIP DEMO: record → multimap → query string → record")
    print("=" * 80)

    root = build_example_root()
    print(f"\n1. ORIGINAL RECORD\n   {root}")

    params = encode(root)
    print("\n2. ENCODED MULTIMAP")
    for key, values in params.items():
        print(f"   {key}: {values}")

    query = urlencode(params, doseq=True)
    print(f"\n3. QUERY STRING\n   {query}")

    decoded = decode_as(parse_qs(query), CoolRoot)
    print(f"\n4. DECODED RECORD\n   {decoded}")

    # The internal field is never encoded, so it comes back empty
    decoded._secret = root._secret
    print(f"\n   ✓ Round trip {'matches' if decoded == root else 'DIFFERS'}")


if __name__ == "__main__":
    main()
