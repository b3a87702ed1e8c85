"""
CORS for the browser client.

CORSMiddleware answers real pre-flight requests (those carrying
Access-Control-Request-Method). A bare OPTIONS request still gets an empty
200 with the same headers from `preflight`.
"""

from fastapi import Response

ALLOW_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": ", ".join(ALLOW_HEADERS),
}


async def preflight() -> Response:
    return Response(status_code=200, headers=CORS_HEADERS)
