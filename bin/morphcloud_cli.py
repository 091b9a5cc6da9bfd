#!/usr/bin/env python
"""
Command-line interface for the morphcloud application.

This script provides a CLI wrapper around the run_morphcloud function, allowing all
parameters to be controlled via command-line arguments.

Examples:
    # Run with default settings (30000 particles, auto-switching every 8 seconds)
    python morphcloud_cli.py

    # Start with hand gesture control on
    python morphcloud_cli.py --gesture

    # Fewer particles, starting on the rose curve, with a fixed seed
    python morphcloud_cli.py --count 10000 --initial-shape rose --seed 42

    # Log gesture features and shape changes
    python morphcloud_cli.py --gesture --log-gesture-features --log-playback

    # List the available shapes
    python morphcloud_cli.py --list-shapes
"""

import argh
from morphcloud.script_utils import morphcloud_cli


def dispatched_morphcloud_cli():
    argh.dispatch_command(morphcloud_cli)


if __name__ == "__main__":
    dispatched_morphcloud_cli()
