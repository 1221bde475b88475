import json
import os

from property_api.api.main import app
from property_api.core.errors import DomainError

# Get the OpenAPI schema (note: all REST routes are under /api/v1)
openapi_schema = app.openapi()


def _error_classes(cls):
    for sub in cls.__subclasses__():
        yield sub
        yield from _error_classes(sub)


# Every domain error code with its HTTP status, as rendered in ErrorResponse.error.type
openapi_schema["x-error-types"] = sorted(
    (
        {"type": err.code, "status": err.kind.http_status, "kind": err.kind.value}
        for err in _error_classes(DomainError)
    ),
    key=lambda item: (item["status"], item["type"]),
)

# Write to file
output_dir = "interfaces"
os.makedirs(output_dir, exist_ok=True)
output_path = os.path.join(output_dir, "openapi.json")

with open(output_path, "w") as f:
    json.dump(openapi_schema, f, indent=2)
