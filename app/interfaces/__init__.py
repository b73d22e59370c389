"""
Interfaces layer package.

FastAPI routers and Pydantic request/response schemas. Routes
validate input, call a use case and shape the response.
"""
