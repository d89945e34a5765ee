"""Lazada Logistics auto-processor: answers "No" to delivery re-attempts for refused or failed shipments."""
