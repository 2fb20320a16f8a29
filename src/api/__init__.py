"""
API Layer - FastAPI Presentation Layer

Responsibility:
    HTTP interface for the application. Handles requests and responses
    and delegates to Application Layer handlers. No business logic.

Contains:
    - FastAPI routers (tasks, effects)
    - Request/Response models (Pydantic)
    - Dependency injection setup
    - Middleware configuration (CORS, logging)

Does NOT contain:
    - Business logic (belongs to Domain layer)
    - Task polling (belongs to Application layer, Celery)
    - Redis or remote HTTP access (belongs to Infrastructure layer)
"""
