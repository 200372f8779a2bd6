"""
PromptSketch Backend - Application Package Initializer
========================================================

What:  Backend for the PromptSketch sketch-to-image assistant. It proxies
       browser requests to OpenAI, Stability AI and ImgBB, attaching the
       server's credentials and reshaping the answers.

Architecture Note:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns, form/JSON parsing
    ├─────────────────────────────────────┤
    │   Validator  │  Provider Services   │  ← input checks, payload building
    ├─────────────────────────────────────┤
    │ Upstream Client │ Normalizer/Relay  │  ← one POST per request, error mapping
    └─────────────────────────────────────┘

    Every request flows Validator → Upstream Client → Normalizer → client.
    Nothing is shared between requests except immutable Settings and the
    pooled HTTP client.
"""

__version__ = "1.0.0"
