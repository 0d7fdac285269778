"""Prometheus metrics for DocFlow.

Defines operational metrics for the document lifecycle engine.
"""

from prometheus_client import Counter

# Lifecycle metrics
document_transitions_total = Counter(
    "docflow_document_transitions_total",
    "Total number of committed document status transitions",
    ["from_status", "to_status"]
)

bulk_send_items_total = Counter(
    "docflow_bulk_send_items_total",
    "Documents processed by bulk send, by outcome",
    ["outcome"]  # outcome: sent|skipped
)

# Access control metrics
access_denials_total = Counter(
    "docflow_access_denials_total",
    "Requests rejected by a role, permission or branch gate",
    ["reason"]  # reason: document|branch|transition_role|permission
)

permission_resolution_failures_total = Counter(
    "docflow_permission_resolution_failures_total",
    "Permission resolutions that failed closed because the store was unavailable"
)

# Collaborators
notification_failures_total = Counter(
    "docflow_notification_failures_total",
    "Notification dispatches that failed and were swallowed",
    ["kind"]  # kind: document|bulk
)
