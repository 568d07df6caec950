"""Infrastructure layer: persistence, upstream clients, observability and realtime."""
