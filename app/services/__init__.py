"""
Services module for analytics logic.

- event_store / summary_store / redirect_service: store access
- rollup_service: daily aggregation of raw visits into summaries
- stats_service: dashboard queries with raw-visit fallback
- background_tasks / scheduler: running rollups off the request path
"""
