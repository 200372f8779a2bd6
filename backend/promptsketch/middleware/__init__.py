# Middleware package init
"""
PromptSketch Backend - Middleware Package
===========================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (order matters!):
    Request → [Well-Known Guard] → [Request ID] → [Logging] → [CORS] → [Body Size] → Route Handler

    1. Well-Known Guard first: browser probes get an empty 404 and nothing else
    2. Request ID: correlation ID for logging and error responses
    3. Logging: method, path, status and duration with the request ID
    4. CORS: FastAPI's CORSMiddleware (handles preflight)
    5. Body Size: 413 for a declared body over max_upload_size, before parsing
"""
