"""Central constants for session state keys, cache naming and defaults."""

SS_USER_DATA: str = "user_data"
SS_AUTH_USER: str = "auth_user"
SS_SYNC_DEGRADED: str = "sync_degraded"

LOCAL_CACHE_NAMESPACE: str = "glowup-data"
REMOTE_COLLECTION: str = "users"

XP_PER_LEVEL_STEP: int = 100
DEFAULT_REMOTE_TIMEOUT_SECONDS: float = 5.0
MIN_REMOTE_TIMEOUT_SECONDS: float = 3.0
MAX_REMOTE_TIMEOUT_SECONDS: float = 10.0
