"""Multimodal intake package for API adapters.

Architectural role:
- Converts dropped or uploaded image files into slot payloads.
- Applies file type/size constraints before a payload reaches a slot.

Scope:
- Intake only; no HTTP endpoint definitions.
"""
