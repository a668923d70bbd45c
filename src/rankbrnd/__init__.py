"""Rank.brnd: multi-tenant SEO content operations.

Publishing queue with retry and backoff, CMS adapters, rank tracking
against DataForSEO, and persisted setup/onboarding flows.
"""

__version__ = "0.1.0"
