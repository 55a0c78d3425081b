"""
API route handlers for different endpoint groups.

Each router handles one concern: the relay API, the health probes and the browser page.
"""
