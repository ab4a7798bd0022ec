"""Advisory network check for the package registry used inside the build."""

import http.client
import sys
import urllib.error
import urllib.request

PREFLIGHT_TIMEOUT = 10


def check_network_connectivity(url: str, timeout: float = PREFLIGHT_TIMEOUT) -> bool:
    """Probe `url` once. Never raises; prints remediation hints on failure."""
    print(f"Checking network connectivity: {url}")

    try:
        with urllib.request.urlopen(url, timeout=timeout) as response:
            response.read(1)
        print("Package registry is accessible")
        return True
    except (urllib.error.URLError, http.client.HTTPException, OSError, ValueError) as e:
        print(f"Warning: Connectivity test failed: {e}", file=sys.stderr)
        print("Warning: This may cause build failures. Consider:", file=sys.stderr)
        print("  - Checking your network connection", file=sys.stderr)
        print("  - Configuring proxy settings if behind a corporate firewall", file=sys.stderr)
        print("  - Using --retry with a higher count", file=sys.stderr)
        return False
