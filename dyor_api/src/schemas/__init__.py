"""
Public Pydantic schemas used by FastAPI routes, services, and tests.

Schemas are grouped by domain module (comments, token calls, etc.) and also
include common reusable models such as pagination metadata and standard responses.
"""

from .common import MessageResponse  # noqa: F401
