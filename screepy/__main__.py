"""Module execution entrypoint for `python -m screepy`."""

from __future__ import annotations

import sys

from screepy.cli import main

if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
