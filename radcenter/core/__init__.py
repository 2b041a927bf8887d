"""
Cross-cutting utilities: access policy, credentials, ids, request lock, middleware.
"""
