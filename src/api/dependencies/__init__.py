"""
FastAPI dependencies for request processing.

Dependencies provide reusable objects that can be injected into API endpoints
and swapped out in tests via app.dependency_overrides.
"""
