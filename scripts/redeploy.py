"""
Re-resolve the public backend URL and write it to .env.

Usage:
    python scripts/redeploy.py
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from src.provisioning.cli import redeploy_main  # noqa: E402

if __name__ == "__main__":
    sys.exit(redeploy_main())
