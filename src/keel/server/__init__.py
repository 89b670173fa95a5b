"""Server glue — ASGI translation, error responses, logging setup."""
