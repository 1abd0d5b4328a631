"""Prometheus metrics for the notification dispatch engine.

Covers:
- Dispatches and history entries per type
- Channel outcomes (push per endpoint, email per dispatch)
- Push/email latency
- Digest queue traffic
- Batch fan-out

Usage:
    from notification_service.features.notifications.metrics import (
        notification_dispatched_total,
        notification_delivered_total,
    )

    notification_dispatched_total.labels(notification_type="goal-reached").inc()
    notification_delivered_total.labels(channel="push", status="expired").inc()
"""

from __future__ import annotations

from prometheus_client import Counter, Histogram

# =============================================================================
# Dispatch Metrics
# =============================================================================

notification_dispatched_total = Counter(
    "notification_dispatched_total",
    "Total number of notifications dispatched (one per history entry)",
    labelnames=["notification_type"],
)
"""
Counter for tracking dispatch router invocations.

Labels:
    notification_type: donation-received, campaign-update, goal-reached, ...

Example:
    notification_dispatched_total.labels(
        notification_type="donation-received"
    ).inc()
"""

notification_validation_errors_total = Counter(
    "notification_validation_errors_total",
    "Total number of rejected notification requests",
    labelnames=["reason"],
)
"""
Counter for requests rejected before anything was recorded.

Labels:
    reason: unknown_type or malformed_payload
"""

notification_quiet_hours_suppressed_total = Counter(
    "notification_quiet_hours_suppressed_total",
    "Total number of push deliveries skipped because of quiet hours",
    labelnames=["notification_type"],
)
"""
Counter for push sends suppressed by the user's quiet-hours window.

Labels:
    notification_type: Type of notification
"""

# =============================================================================
# Delivery Metrics
# =============================================================================

notification_delivered_total = Counter(
    "notification_delivered_total",
    "Total number of channel delivery outcomes",
    labelnames=["channel", "status"],
)
"""
Counter for delivery outcomes.

Labels:
    channel: push or email
    status: ok, expired, error (push); sent, queued, failed (email)

Example:
    notification_delivered_total.labels(
        channel="push",
        status="expired"
    ).inc()
"""

notification_delivery_duration_seconds = Histogram(
    "notification_delivery_duration_seconds",
    "Notification delivery duration in seconds",
    labelnames=["channel"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)
"""
Histogram tracking delivery latency per transport call.

Labels:
    channel: push or email

Example:
    notification_delivery_duration_seconds.labels(
        channel="email"
    ).observe(0.4)
"""

push_subscriptions_expired_total = Counter(
    "push_subscriptions_expired_total",
    "Total number of push subscriptions removed after the push service reported them gone",
)
"""
Counter for registry cleanups triggered by 404/410 push responses.
"""

# =============================================================================
# Digest Metrics
# =============================================================================

digest_entries_enqueued_total = Counter(
    "digest_entries_enqueued_total",
    "Total number of email notifications held back for a digest",
    labelnames=["notification_type"],
)
"""
Counter for digest queue inserts.

Labels:
    notification_type: Type of notification
"""

digest_flushed_total = Counter(
    "digest_flushed_total",
    "Total number of digest emails produced by the scheduler",
    labelnames=["frequency", "status"],
)
"""
Counter for digest flushes.

Labels:
    frequency: daily, weekly or never
    status: sent, failed or discarded
"""

# =============================================================================
# Batch Metrics
# =============================================================================

notification_batch_items_total = Counter(
    "notification_batch_items_total",
    "Total number of notifications handled by batch sends",
    labelnames=["status"],
)
"""
Counter for batch items.

Labels:
    status: processed, failed or dropped
"""

notification_batch_duration_seconds = Histogram(
    "notification_batch_duration_seconds",
    "Duration of a full batch send in seconds",
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0],
)
"""
Histogram tracking end-to-end batch duration.
"""
