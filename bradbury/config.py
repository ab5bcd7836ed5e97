import os
from pathlib import Path

DB_PATH = os.environ.get("BRADBURY_DB_PATH", str(Path.cwd() / "bradbury.db"))
DATABASE_URL = f"sqlite+aiosqlite:///{DB_PATH}"

# On-device snapshot store used by the offline client
LOCAL_DB_PATH = os.environ.get("BRADBURY_LOCAL_DB_PATH", str(Path.home() / ".bradbury" / "local.db"))
LOCAL_DATABASE_URL = f"sqlite+aiosqlite:///{LOCAL_DB_PATH}"

# Remote API settings (client side)
API_URL = os.environ.get("BRADBURY_API_URL", "http://localhost:4000")
API_TOKEN = os.environ.get("BRADBURY_API_TOKEN") or None
HTTP_TIMEOUT = float(os.environ.get("BRADBURY_HTTP_TIMEOUT", "10.0"))

# Server side bearer tokens, "token:user,token:user"
API_TOKENS = os.environ.get("BRADBURY_API_TOKENS", "")

# All day keys are calendar days in this zone
TIMEZONE = os.environ.get("BRADBURY_TIMEZONE", "America/New_York")

LOG_LEVEL = os.environ.get("BRADBURY_LOG_LEVEL", "INFO")
