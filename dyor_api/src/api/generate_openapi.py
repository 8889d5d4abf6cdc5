"""
Export the OpenAPI document of the API to interfaces/openapi.json.

Usage:
    python -m src.api.generate_openapi
"""

import json
import os

from src.api.main import app, websocket_info

# Get the OpenAPI schema (note: all REST routes are under /api/v1)
openapi_schema = app.openapi()

# WebSocket endpoints are not part of OpenAPI; publish them as an extension
openapi_schema["x-websocket-endpoints"] = websocket_info()["endpoints"]

# Write to file
output_dir = "interfaces"
os.makedirs(output_dir, exist_ok=True)
output_path = os.path.join(output_dir, "openapi.json")

with open(output_path, "w") as f:
    json.dump(openapi_schema, f, indent=2)
