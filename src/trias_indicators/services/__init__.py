"""
Shared utilities for outbound calls.

- http.py - GBIF requests session: retry/backoff honouring Retry-After,
  default timeout and API base URL, all from Settings
"""
