# Routes package init
"""
PromptSketch Backend - API Routes Package
===========================================

Route Inventory:
    - chat.py:       POST /api/chat                  (streamed prompt suggestions)
    - openai.py:     POST /api/openai/chat           (streamed sketch feedback)
                     POST /api/openai/completion     (single completion)
                     POST /api/openai/describe       (image description)
    - imgbb.py:      POST /api/imgbb/upload          (image hosting)
    - stability.py:  POST /api/stability/generate    (image generation)
    - health.py:     GET  /health                    (credential status)

Routes stay thin: parse the request, call a service, return the success
model. Errors are raised, never returned, and formatted by the global
handlers in main.py.
"""
