"""API middleware: timing, request ids, API-key auth and error mapping."""
