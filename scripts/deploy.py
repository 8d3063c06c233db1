"""
Provision the assistant, its tools and knowledge sources.

Usage:
    python scripts/deploy.py
    python scripts/deploy.py --with-analytics
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from src.provisioning.cli import deploy_main  # noqa: E402

if __name__ == "__main__":
    sys.exit(deploy_main())
