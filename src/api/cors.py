"""
Permissive CORS policy attached to API responses and to every OPTIONS preflight.
"""

ALLOW_METHODS = ["POST", "GET", "OPTIONS"]
ALLOW_HEADERS = ["Content-Type"]


def cors_headers() -> dict:
    return {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Methods": ", ".join(ALLOW_METHODS),
        "Access-Control-Allow-Headers": ", ".join(ALLOW_HEADERS),
    }
