"""
Schemas module - Request/Response schemas for API endpoints.

Everything lives in app.schemas.schemas:
- Enums shared by documents and requests (statuses, room types, ...)
- Request schemas (what the API accepts)
- ApiResponse envelope (what the API returns)
"""
