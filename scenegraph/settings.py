"""Runtime settings: tunable parameters for conversion and transport.

All values read from environment variables with defaults. Import from here
instead of hardcoding.

Infrastructure config (API host, tokens) stays in scenegraph/config.py.
"""

from __future__ import annotations

import os


def _int(key: str, default: int) -> int:
    return int(os.getenv(key, str(default)))


def _float(key: str, default: float) -> float:
    return float(os.getenv(key, str(default)))


def _str(key: str, default: str) -> str:
    return os.getenv(key, default)


# =====================================================================
# Normalization
# =====================================================================

# Max nodes converted in one run (selection pre-check + per-node guard)
NODE_LIMIT = _int("NODE_LIMIT", 500)

# Default max width/height (px) for icon-like subtrees embedded as one SVG
EMBED_VECTORS_MAX_SIZE = _int("EMBED_VECTORS_MAX_SIZE", 64)


# =====================================================================
# Transport (generation process → display process)
# =====================================================================

# Code payloads longer than this (chars) are sent as chunks of this size
CODE_CHUNK_SIZE = _int("CODE_CHUNK_SIZE", 500_000)

# Same for the rendered preview markup
PREVIEW_CHUNK_SIZE = _int("PREVIEW_CHUNK_SIZE", 500_000)

# Hard limit (chars) for one serialized channel message
CHANNEL_MAX_MESSAGE_SIZE = _int("CHANNEL_MAX_MESSAGE_SIZE", 1_000_000)


# =====================================================================
# HTTP Clients / SSE
# =====================================================================

FIGMA_HTTP_TIMEOUT = _float("FIGMA_HTTP_TIMEOUT", 60.0)

SSE_KEEPALIVE_INTERVAL = _float("SSE_KEEPALIVE_INTERVAL", 30.0)

# Pre-subscription event buffer limits (chunked runs post many events)
EVENT_BUFFER_MAX_EVENTS = _int("EVENT_BUFFER_MAX_EVENTS", 2000)
EVENT_BUFFER_MAX_AGE_SECS = _int("EVENT_BUFFER_MAX_AGE_SECS", 600)

# Finished conversion jobs older than this are evicted from the registry
JOB_RETENTION_SECS = _int("JOB_RETENTION_SECS", 3600)

# Directory for log files
LOG_DIR = _str("LOG_DIR", "")

# Level for every handler set up by scenegraph.logging_config
LOG_LEVEL = _str("LOG_LEVEL", "INFO")
