# /// script
# dependencies = ["pillow", "jinja2", "tomli"]
# ///
"""
Albumen: build a static photo gallery from a directory tree of images.

Usage:
    uv run --script build.py            # build using ./albumen.toml
    uv run --script build.py new        # write a default albumen.toml

Any other arguments are passed through to `albumen`, e.g. `build --strict`.
"""

import sys

from albumen.cli import main

if __name__ == "__main__":
    argv = sys.argv[1:] or ["build"]
    sys.exit(main(argv))
