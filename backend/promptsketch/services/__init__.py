# Services package init
"""
PromptSketch Backend - Services Layer
=======================================

What:  Everything between the route handlers and the network.

Service Inventory:
    - validation:        Request Validator (fields, uploads)
    - upstream:          UpstreamClient, the single outbound HTTP seam
    - normalizer:        Provider response → outward result / exception
    - relay:             StreamRelay, bounded channel for streamed chat
    - provider_base:     ProviderService, shared credential + decode plumbing
    - openai_service:    Chat streaming, completion, image description
    - stability_service: Image generation (text-to-image, image-to-image)
    - imgbb_service:     Image hosting
"""
