"""Browser-facing service and HTTP layer."""
