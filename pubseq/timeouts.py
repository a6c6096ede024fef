from __future__ import annotations

# External tool invocations
PUBLISH_TIMEOUT_SECONDS = 30 * 60.0
BUILD_TIMEOUT_SECONDS = 60 * 60.0

# Registry read APIs
REGISTRY_HTTP_TIMEOUT_SECONDS = 30.0

# Propagation confirmation polling
CONFIRM_POLL_INITIAL_SECONDS = 2.0
CONFIRM_POLL_MAX_SECONDS = 30.0

# Transient publish failure retry
RETRY_BACKOFF_MAX_SECONDS = 60.0

# Granularity of an interruptible settle wait
SETTLE_SLICE_SECONDS = 0.5
