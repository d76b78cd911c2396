import os
import sys
from pathlib import Path


# Ensure `backend/` is on sys.path so tests can import local modules
# like `clusters.*`, `geo.*`, and `main`.
BACKEND_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(BACKEND_ROOT))

# Keep API tests from writing telemetry into the repo; telemetry tests opt back in.
os.environ.setdefault("MAPCLUSTERS_TELEMETRY", "0")
