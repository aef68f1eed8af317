"""pytest configuration.

This repo is usable without installing the package into a virtualenv.

When running `pytest` directly from the repo root, we want `import contact_relay`
and `import scripts.deploy_smoke` to resolve to the working tree, so the repo
root is forced onto `sys.path` here.
"""

from __future__ import annotations

import sys
from pathlib import Path


REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))
