"""Model access configuration and the prompt optimizer.

Architectural role:
    Provides provider configuration and credential lookup for every remote call,
    plus the text-model transport used to rewrite prompts.

Module split:
    - `provider_config`: environment-driven model, endpoint, and pacing settings.
    - `client`: Gemini text-model HTTP transport.
    - `service`: fail-soft prompt optimizer.
"""
