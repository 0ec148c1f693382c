"""Delta type, provider tag and error code constants."""

# ---------------------------------------------------------------------------
# Token delta types; import these instead of duplicating strings.
# ---------------------------------------------------------------------------

DELTA_TYPE_CONTENT = "content"
DELTA_TYPE_DONE = "done"
DELTA_TYPE_ERROR = "error"

TERMINAL_DELTA_TYPES = frozenset({DELTA_TYPE_DONE, DELTA_TYPE_ERROR})

# ---------------------------------------------------------------------------
# Provider tags
# ---------------------------------------------------------------------------

PROVIDER_OLLAMA = "ollama"
PROVIDER_OPENAI = "openai"
PROVIDER_GEMINI = "gemini"

# ---------------------------------------------------------------------------
# Error codes carried by terminal error deltas
# ---------------------------------------------------------------------------

ERROR_PROVIDER_NOT_CONFIGURED = "PROVIDER_NOT_CONFIGURED"
ERROR_UNKNOWN_PROVIDER = "UNKNOWN_PROVIDER"
ERROR_AUTH_FAILED = "AUTH_FAILED"
ERROR_RATE_LIMITED = "RATE_LIMITED"
ERROR_BAD_REQUEST = "BAD_REQUEST"
ERROR_NOT_FOUND = "NOT_FOUND"
ERROR_UPSTREAM = "UPSTREAM_ERROR"
ERROR_UPSTREAM_UNREACHABLE = "UPSTREAM_UNREACHABLE"
ERROR_UPSTREAM_TIMEOUT = "UPSTREAM_TIMEOUT"
ERROR_EMPTY_RESPONSE = "EMPTY_RESPONSE"
ERROR_INCOMPLETE_STREAM = "INCOMPLETE_STREAM"
ERROR_REQUEST_TIMEOUT = "REQUEST_TIMEOUT"
ERROR_PROCESSING = "PROCESSING_ERROR"

# ---------------------------------------------------------------------------
# History roles
# ---------------------------------------------------------------------------

ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"
ROLE_SYSTEM = "system"
