"""API routers; each module owns one domain and delegates to ``rankbrnd.ops``."""
