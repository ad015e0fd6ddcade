"""Core session package.

Architectural role:
    Holds the request data model and the stateful session that sits between the
    API/CLI adapters and the image, prompting, and memory layers.

Composition:
    - `request_types`: immutable request and history-entry contracts.
    - `asset_slots`: bounded product/background/reference collections.
    - `engine`: `StudioSession`, the per-process session state and control flow.
"""
