#!/usr/bin/env python3
"""Render a starfield animation from the repository checkout.

Same as the ``starfield-render`` console script:
    python scripts/render_starfield.py --config configs/starfield_v1.yaml --kind video
"""

import sys

from starfield.cli import main


if __name__ == '__main__':
    sys.exit(main())
