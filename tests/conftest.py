import os
import tempfile
from pathlib import Path

# Keep the app's import-time store out of the working tree and keep
# authorization waits short.
os.environ.setdefault(
    "SHELF_ALERTS_DATA_FILE",
    str(Path(tempfile.mkdtemp(prefix="shelf-alerts-")) / "data.json"),
)
os.environ.setdefault("AUTHORIZATION_WAIT_SECONDS", "0.2")
