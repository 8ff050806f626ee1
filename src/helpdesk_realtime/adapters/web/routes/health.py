"""Health check route."""

from typing import Any

from starlette.responses import Response
from starlette.routing import Route


def create_health_routes() -> list[Route]:
    """Create the health check route."""

    async def healthz(_request: Any) -> Response:
        """Health check endpoint for load balancers and monitoring."""
        return Response(content="Ok", media_type="text/plain")

    return [Route("/healthz", healthz, methods=["GET"])]
