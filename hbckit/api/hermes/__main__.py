"""
`python -m hbckit.api.hermes` entrypoint.

The CLI implementation lives in `hbckit/api/hermes/cli.py` so that importing
`hbckit.api.hermes` in library code does not pull in argparse wiring.
"""

from __future__ import annotations

from . import cli


def main() -> int:
    """Delegate to `hbckit.api.hermes.cli.main`."""
    return cli.main()


if __name__ == "__main__":
    raise SystemExit(main())
