#!/usr/bin/env python3
"""
NeoWatch main entry point for PaaS deployment.

Platforms that run `python main.py` get the alert trigger API. The consumer
and dispatcher roles run as separate processes via `neowatch consume` and
`neowatch dispatch`.
"""

import os
import sys


def main():
    """Start the NeoWatch trigger API."""
    # Get port from environment, handling Railway's variable expansion
    port_env = os.environ.get('PORT', '8000')

    # Railway sometimes passes '$PORT' as literal string, handle this case
    if port_env == '$PORT':
        print("Warning: Got literal '$PORT', using default port 8000")
        port = 8000
    else:
        try:
            port = int(port_env)
        except (ValueError, TypeError):
            print(f"Warning: Invalid PORT value '{port_env}', using default port 8000")
            port = 8000

    print(f"Starting NeoWatch trigger API on port {port}")

    from neowatch.run import cli

    sys.argv = ['main.py', 'serve', '--port', str(port)]

    cli()

if __name__ == '__main__':
    main()
