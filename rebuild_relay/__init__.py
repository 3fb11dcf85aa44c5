"""rebuild-relay: debounced webhook-to-CI rebuild relay."""
