from __future__ import annotations

# gh reads: auth status, repo view, api, pr list/view
GH_TIMEOUT_SECONDS = 60.0

# gh pr create also requests reviewers in the same call
GH_PR_CREATE_TIMEOUT_SECONDS = 2 * 60.0

# Only idempotent reads are retried; pr create never is.
GH_READ_RETRY_ATTEMPTS = 3
GH_READ_RETRY_DELAY_SECONDS = 1.0
